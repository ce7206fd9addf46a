"""
Unit tests for the optimal library set calculation.
Tests validation, upstream failure handling, per-ISBN degradation and ranking.
"""

import pytest

from services.exceptions import DirectoryFetchError, InvalidInputError, UpstreamFailureError
from tests.factories import (
    ISBN_1, ISBN_2, ISBN_3, LIBRARY_A, LIBRARY_B, LIBRARY_C, NON_EXISTENT,
    book_failed, book_found, holdings_empty, holdings_found
)


def holdings_by_isbn(mapping):
    """side_effect returning holdings for the ISBNs in mapping, EMPTY otherwise."""
    def lookup(isbn):
        codes = mapping.get(isbn)
        return holdings_found(isbn, *codes) if codes else holdings_empty(isbn)
    return lookup


def assert_no_io(mock_directory, mock_catalog, mock_holdings):
    mock_directory.get_all_libraries.assert_not_awaited()
    mock_catalog.search_by_isbn.assert_not_awaited()
    mock_holdings.search_by_isbn.assert_not_awaited()


class TestValidation:
    """Input is rejected before any external call."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("isbns", [[], [ISBN_1, ISBN_2, ISBN_3, "9788901234567"]])
    async def test_wrong_count(self, optimal_library_service, mock_directory, mock_catalog, mock_holdings, isbns):
        with pytest.raises(InvalidInputError, match="ISBN list must contain 1-3 items"):
            await optimal_library_service.calculate_optimal_library_set(isbns)

        assert_no_io(mock_directory, mock_catalog, mock_holdings)

    @pytest.mark.asyncio
    async def test_invalid_format(self, optimal_library_service, mock_directory, mock_catalog, mock_holdings):
        with pytest.raises(InvalidInputError) as exc_info:
            await optimal_library_service.calculate_optimal_library_set([ISBN_1, "abc", "978 89"])

        assert str(exc_info.value) == "Invalid ISBN format: abc, 978 89"
        assert_no_io(mock_directory, mock_catalog, mock_holdings)

    @pytest.mark.asyncio
    async def test_non_string_isbn(self, optimal_library_service):
        with pytest.raises(InvalidInputError, match="Invalid ISBN format: 9788936433529"):
            await optimal_library_service.calculate_optimal_library_set([9788936433529])

    @pytest.mark.asyncio
    async def test_hyphens_and_lowercase_check_digit_accepted(self, optimal_library_service):
        result = await optimal_library_service.calculate_optimal_library_set(["89-364-3352-x"])

        assert result.optimal_sets == []


class TestUpstreamFailure:

    @pytest.mark.asyncio
    async def test_directory_failure(self, optimal_library_service, mock_directory, mock_catalog, mock_holdings):
        """Test a directory failure aborts before any lookup."""
        mock_directory.get_all_libraries.side_effect = DirectoryFetchError("connection refused")

        with pytest.raises(UpstreamFailureError, match="Failed to fetch libraries from database"):
            await optimal_library_service.calculate_optimal_library_set([ISBN_1])

        mock_catalog.search_by_isbn.assert_not_awaited()
        mock_holdings.search_by_isbn.assert_not_awaited()


class TestCalculation:
    """Test cases for successful calculations."""

    @pytest.mark.asyncio
    async def test_fans_out_two_calls_per_isbn(self, optimal_library_service, mock_directory, mock_catalog, mock_holdings):
        await optimal_library_service.calculate_optimal_library_set([ISBN_1, ISBN_2, ISBN_3])

        mock_directory.get_all_libraries.assert_awaited_once()
        assert mock_catalog.search_by_isbn.await_count == 3
        assert mock_holdings.search_by_isbn.await_count == 3

    @pytest.mark.asyncio
    async def test_no_known_holders(self, optimal_library_service, mock_holdings):
        """Test empty result when no directory library holds anything."""
        mock_holdings.search_by_isbn.side_effect = holdings_by_isbn({ISBN_1: [NON_EXISTENT]})

        result = await optimal_library_service.calculate_optimal_library_set([ISBN_1, ISBN_2])

        assert result.optimal_sets == []

    @pytest.mark.asyncio
    async def test_single_book_single_library(self, optimal_library_service, mock_catalog, mock_holdings):
        mock_catalog.search_by_isbn.side_effect = lambda isbn: book_found(isbn, "소년이 온다", "https://image.example.com/1.jpg")
        mock_holdings.search_by_isbn.side_effect = holdings_by_isbn({ISBN_1: [LIBRARY_A]})

        result = await optimal_library_service.calculate_optimal_library_set([ISBN_1])

        assert len(result.optimal_sets) == 1
        optimal_set = result.optimal_sets[0]
        assert optimal_set.coverage_rate == 100
        assert len(optimal_set.books) == 1

        book = optimal_set.books[0]
        assert book.isbn == ISBN_1
        assert book.title == "소년이 온다"
        assert book.cover == "https://image.example.com/1.jpg"
        assert len(book.libraries) == 1
        assert book.libraries[0].lib_code == LIBRARY_A
        assert book.libraries[0].lib_name == "테스트 도서관 A"
        assert book.libraries[0].address == "서울시 강남구"

    @pytest.mark.asyncio
    async def test_split_holdings(self, optimal_library_service, mock_holdings):
        """Test books held by different libraries combine into one full set."""
        mock_holdings.search_by_isbn.side_effect = holdings_by_isbn({ISBN_1: [LIBRARY_A], ISBN_2: [LIBRARY_B]})

        result = await optimal_library_service.calculate_optimal_library_set([ISBN_1, ISBN_2])

        top = result.optimal_sets[0]
        assert top.coverage_rate == 100
        by_isbn = {book.isbn: [lib.lib_code for lib in book.libraries] for book in top.books}
        assert by_isbn == {ISBN_1: [LIBRARY_A], ISBN_2: [LIBRARY_B]}

    @pytest.mark.asyncio
    async def test_partial_coverage_rounding(self, optimal_library_service, mock_holdings):
        mock_holdings.search_by_isbn.side_effect = holdings_by_isbn({ISBN_2: [LIBRARY_C]})

        result = await optimal_library_service.calculate_optimal_library_set([ISBN_1, ISBN_2, ISBN_3])

        assert [s.coverage_rate for s in result.optimal_sets] == [33.33]
        assert result.optimal_sets[0].books[0].libraries[0].address is None

    @pytest.mark.asyncio
    async def test_unknown_codes_never_returned(self, optimal_library_service, mock_holdings):
        mock_holdings.search_by_isbn.side_effect = holdings_by_isbn({
            ISBN_1: [LIBRARY_A, NON_EXISTENT],
            ISBN_2: [NON_EXISTENT, LIBRARY_B],
        })

        result = await optimal_library_service.calculate_optimal_library_set([ISBN_1, ISBN_2])

        codes = {
            lib.lib_code
            for optimal_set in result.optimal_sets
            for book in optimal_set.books
            for lib in book.libraries
        }
        assert NON_EXISTENT not in codes
        assert codes == {LIBRARY_A, LIBRARY_B}

    @pytest.mark.asyncio
    async def test_ranking_order(self, optimal_library_service, mock_holdings):
        """Test sets are ordered by coverage, then by fewer libraries."""
        mock_holdings.search_by_isbn.side_effect = holdings_by_isbn({
            ISBN_1: [LIBRARY_A, LIBRARY_B],
            ISBN_2: [LIBRARY_B],
            ISBN_3: [LIBRARY_C],
        })

        result = await optimal_library_service.calculate_optimal_library_set([ISBN_1, ISBN_2, ISBN_3])

        assert len(result.optimal_sets) <= 5
        keys = [(-s.coverage_rate, s.library_count()) for s in result.optimal_sets]
        assert keys == sorted(keys)
        assert result.optimal_sets[0].coverage_rate == 100
        assert result.optimal_sets[0].library_count() == 2
        assert all(0 <= s.coverage_rate <= 100 for s in result.optimal_sets)

    @pytest.mark.asyncio
    async def test_duplicate_isbns_collapsed(self, optimal_library_service, mock_catalog, mock_holdings):
        mock_holdings.search_by_isbn.side_effect = holdings_by_isbn({ISBN_1: [LIBRARY_A]})

        result = await optimal_library_service.calculate_optimal_library_set([ISBN_1, ISBN_1])

        assert mock_catalog.search_by_isbn.await_count == 1
        assert mock_holdings.search_by_isbn.await_count == 1
        assert result.optimal_sets[0].coverage_rate == 100
        assert [book.isbn for book in result.optimal_sets[0].books] == [ISBN_1]

    @pytest.mark.asyncio
    async def test_serialized_field_names(self, optimal_library_service, mock_holdings):
        mock_holdings.search_by_isbn.side_effect = holdings_by_isbn({ISBN_1: [LIBRARY_A]})

        result = await optimal_library_service.calculate_optimal_library_set([ISBN_1])
        payload = result.model_dump(by_alias=True)

        assert payload["optimalSets"][0]["coverageRate"] == 100
        assert payload["optimalSets"][0]["books"][0]["libraries"][0]["lib_code"] == LIBRARY_A


class TestDegradation:
    """Per-ISBN failures never fail the request."""

    @pytest.mark.asyncio
    async def test_catalog_failure_uses_placeholder(self, optimal_library_service, mock_catalog, mock_holdings):
        mock_catalog.search_by_isbn.side_effect = lambda isbn: book_failed(isbn)
        mock_holdings.search_by_isbn.side_effect = holdings_by_isbn({ISBN_1: [LIBRARY_A]})

        result = await optimal_library_service.calculate_optimal_library_set([ISBN_1])

        book = result.optimal_sets[0].books[0]
        assert book.title == f"Book {ISBN_1}"
        assert book.cover == ""
        assert result.optimal_sets[0].coverage_rate == 100

    @pytest.mark.asyncio
    async def test_adapter_exception_is_absorbed(self, optimal_library_service, mock_catalog, mock_holdings):
        """Test an exception in one lookup leaves the other ISBNs intact."""
        def holdings(isbn):
            if isbn == ISBN_2:
                raise RuntimeError("socket closed")
            return holdings_found(isbn, LIBRARY_A)

        def catalog(isbn):
            if isbn == ISBN_1:
                raise RuntimeError("timeout")
            return book_found(isbn, "Known")

        mock_holdings.search_by_isbn.side_effect = holdings
        mock_catalog.search_by_isbn.side_effect = catalog

        result = await optimal_library_service.calculate_optimal_library_set([ISBN_1, ISBN_2])

        top = result.optimal_sets[0]
        assert top.coverage_rate == 50
        assert top.books[0].isbn == ISBN_1
        assert top.books[0].title == f"Book {ISBN_1}"

    @pytest.mark.asyncio
    async def test_all_lookups_failed(self, optimal_library_service, mock_catalog, mock_holdings):
        mock_catalog.search_by_isbn.side_effect = RuntimeError("down")
        mock_holdings.search_by_isbn.side_effect = RuntimeError("down")

        result = await optimal_library_service.calculate_optimal_library_set([ISBN_1, ISBN_2])

        assert result.optimal_sets == []
