"""
Pytest configuration and shared fixtures.
"""

import pytest
from unittest.mock import AsyncMock

from clients.aladin import AladinClient
from clients.library_api import LibraryApiClient
from services.directory import LibraryDirectory
from services.optimal_library import OptimalLibraryService
from tests.factories import LIBRARY_A, LIBRARY_B, LIBRARY_C, book_found, holdings_empty, make_library


@pytest.fixture
def sample_libraries():
    """Directory snapshot ordered by code."""
    return [
        make_library(LIBRARY_A, "테스트 도서관 A", "서울시 강남구"),
        make_library(LIBRARY_B, "테스트 도서관 B", "서울시 서초구",
                     latitude="37.5678", longitude="127.5678",
                     operating_hours="10:00-19:00", closed_days="화요일"),
        make_library(LIBRARY_C, "테스트 도서관 C", None),
    ]


@pytest.fixture
def mock_directory(sample_libraries):
    """Create a mock library directory."""
    directory = AsyncMock(spec=LibraryDirectory)
    directory.get_all_libraries.return_value = sample_libraries
    return directory


@pytest.fixture
def mock_catalog():
    """Create a mock catalog client that knows every book by a default title."""
    catalog = AsyncMock(spec=AladinClient)
    catalog.search_by_isbn.side_effect = lambda isbn: book_found(isbn, f"Title {isbn}")
    return catalog


@pytest.fixture
def mock_holdings():
    """Create a mock holdings client that finds nothing by default."""
    holdings = AsyncMock(spec=LibraryApiClient)
    holdings.search_by_isbn.side_effect = lambda isbn: holdings_empty(isbn)
    return holdings


@pytest.fixture
def optimal_library_service(mock_directory, mock_catalog, mock_holdings):
    """Service wired to mocked collaborators."""
    return OptimalLibraryService(
        directory=mock_directory,
        catalog_client=mock_catalog,
        holdings_client=mock_holdings
    )
