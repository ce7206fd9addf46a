"""
Optimal library set calculation.
Fetches the directory, fans out catalog and holdings lookups per ISBN, then ranks library combinations.
"""

import asyncio
from typing import Dict, List, Sequence

import structlog

from clients.aladin import AladinClient
from clients.library_api import LibraryApiClient
from clients.models import BookInfo, BookLookup, HoldingsLookup, LookupStatus
from .directory import LibraryDirectory
from .exceptions import DirectoryFetchError, InvalidInputError, UpstreamFailureError
from .models import MAX_ISBNS, MIN_ISBNS, OptimalLibraryResponse, is_valid_isbn
from .optimizer import HoldingIndex, find_optimal_library_sets

logger = structlog.get_logger(__name__)


class OptimalLibraryService:
    """
    Finds which combinations of directory libraries best cover a list of 1-3 books.
    """

    def __init__(
        self,
        directory: LibraryDirectory,
        catalog_client: AladinClient,
        holdings_client: LibraryApiClient
    ):
        """
        Initialize the service.

        Args:
            directory: Authoritative library directory
            catalog_client: Book metadata lookups by ISBN
            holdings_client: Holding-library lookups by ISBN
        """
        self.directory = directory
        self.catalog_client = catalog_client
        self.holdings_client = holdings_client

    async def calculate_optimal_library_set(self, isbns: Sequence[str]) -> OptimalLibraryResponse:
        """
        Rank library combinations for the requested books.

        Args:
            isbns: 1-3 ISBN strings

        Returns:
            OptimalLibraryResponse with at most five sets (possibly none)

        Raises:
            InvalidInputError: bad ISBN count or format; raised before any I/O
            UpstreamFailureError: the library directory could not be read
        """
        requested = self._validate(isbns)

        try:
            libraries = await self.directory.get_all_libraries()
        except DirectoryFetchError as e:
            logger.error("Library directory unavailable", error=str(e))
            raise UpstreamFailureError("Failed to fetch libraries from database") from e

        book_lookups, holdings_lookups = await self._fetch_per_isbn(requested)

        book_info = self._resolve_book_info(requested, book_lookups)
        index = HoldingIndex.build(
            requested,
            holdings_lookups,
            known_codes={library.lib_code for library in libraries}
        )
        if index.dropped_codes:
            logger.debug("Ignored holdings for libraries outside the directory",
                          lib_codes=sorted(index.dropped_codes))

        optimal_sets = find_optimal_library_sets(requested, libraries, index, book_info)

        logger.info(
            "Optimal library sets calculated",
            requested_isbns=len(requested),
            directory_size=len(libraries),
            holding_libraries=len(index.library_to_isbns),
            sets_returned=len(optimal_sets)
        )
        return OptimalLibraryResponse(optimal_sets=optimal_sets)

    @staticmethod
    def _validate(isbns: Sequence[str]) -> List[str]:
        """Check count and format, then collapse duplicates keeping first occurrence."""
        if not isbns or len(isbns) < MIN_ISBNS or len(isbns) > MAX_ISBNS:
            raise InvalidInputError("ISBN list must contain 1-3 items")

        invalid = [str(isbn) for isbn in isbns if not is_valid_isbn(isbn)]
        if invalid:
            raise InvalidInputError(f"Invalid ISBN format: {', '.join(invalid)}")

        return list(dict.fromkeys(isbns))

    async def _fetch_per_isbn(self, isbns: List[str]):
        """
        Run every catalog and holdings lookup concurrently.

        A failure in one branch never cancels or fails the others; exceptions are
        turned into FAILED lookups for that ISBN.
        """
        results = await asyncio.gather(
            *(self.catalog_client.search_by_isbn(isbn) for isbn in isbns),
            *(self.holdings_client.search_by_isbn(isbn) for isbn in isbns),
            return_exceptions=True
        )

        book_lookups: List[BookLookup] = []
        holdings_lookups: List[HoldingsLookup] = []
        for position, result in enumerate(results):
            isbn = isbns[position % len(isbns)]
            is_catalog = position < len(isbns)

            if isinstance(result, BaseException):
                logger.warning(
                    "Per-ISBN lookup raised",
                    isbn=isbn,
                    lookup="catalog" if is_catalog else "holdings",
                    error=str(result)
                )
                failed = {"isbn": isbn, "status": LookupStatus.FAILED, "reason": str(result)}
                result = BookLookup(**failed) if is_catalog else HoldingsLookup(**failed)
            elif result.status == LookupStatus.FAILED:
                logger.warning(
                    "Per-ISBN lookup failed",
                    isbn=isbn,
                    lookup="catalog" if is_catalog else "holdings",
                    reason=result.reason
                )

            if is_catalog:
                book_lookups.append(result)
            else:
                holdings_lookups.append(result)

        return book_lookups, holdings_lookups

    @staticmethod
    def _resolve_book_info(isbns: List[str], lookups: List[BookLookup]) -> Dict[str, BookInfo]:
        """Use catalog metadata where found, a placeholder otherwise."""
        found = {
            lookup.isbn: lookup.book
            for lookup in lookups
            if lookup.status == LookupStatus.FOUND and lookup.book is not None
        }
        return {isbn: found.get(isbn) or BookInfo.placeholder(isbn) for isbn in isbns}
