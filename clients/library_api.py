"""
Client for the data4library (도서관 정보나루) holdings API.
"""

from typing import List, Optional

import structlog
from pydantic import ValidationError

from .gateway import ExternalApiClient
from .models import HoldingLibrary, HoldingsLookup, LookupStatus

logger = structlog.get_logger(__name__)


class LibraryApiClient:
    """Holdings adapter: which libraries own a given ISBN."""

    SEARCH_ENDPOINT = "libSrchByBook"

    def __init__(
        self,
        gateway: ExternalApiClient,
        auth_key: str,
        region: Optional[int] = 11,
        page_size: int = 10
    ):
        if not auth_key:
            raise ValueError("LIBRARY_API_KEY is required in environment variables")
        self.gateway = gateway
        self.auth_key = auth_key
        self.region = region
        self.page_size = page_size

    async def search_by_isbn(self, isbn: str, region: Optional[int] = None, page_no: int = 1) -> HoldingsLookup:
        """
        Find libraries holding a book.

        Args:
            isbn: Book ISBN
            region: Region code override (defaults to the client's region)
            page_no: Result page

        Returns:
            HoldingsLookup tagged FOUND, EMPTY or FAILED
        """
        params = {
            "authKey": self.auth_key,
            "isbn": isbn,
            "format": "json",
            "pageNo": page_no,
            "pageSize": self.page_size,
            "region": region if region is not None else self.region,
        }

        result = await self.gateway.get(self.SEARCH_ENDPOINT, params=params)
        if not result.success:
            return HoldingsLookup(isbn=isbn, status=LookupStatus.FAILED, reason=result.error)

        body = result.data.get("response") if isinstance(result.data, dict) else None
        if not isinstance(body, dict):
            return HoldingsLookup(isbn=isbn, status=LookupStatus.FAILED, reason="Malformed response from holdings API")

        if body.get("error"):
            logger.warning("Holdings API reported an error", isbn=isbn, error=body["error"])
            return HoldingsLookup(isbn=isbn, status=LookupStatus.EMPTY, reason=str(body["error"]))

        libraries = self._parse_libraries(isbn, body.get("libs") or [])
        if not libraries:
            return HoldingsLookup(isbn=isbn, status=LookupStatus.EMPTY)

        return HoldingsLookup(isbn=isbn, status=LookupStatus.FOUND, libraries=libraries)

    def _parse_libraries(self, isbn: str, entries: list) -> List[HoldingLibrary]:
        """Unwrap libs[].lib entries, dropping those without a usable numeric code."""
        libraries = []
        for entry in entries:
            lib = entry.get("lib") if isinstance(entry, dict) else None
            if not isinstance(lib, dict):
                continue
            try:
                libraries.append(HoldingLibrary(**lib))
            except ValidationError as e:
                logger.warning(
                    "Skipping library with invalid code",
                    isbn=isbn,
                    lib_code=lib.get("libCode"),
                    error=str(e)
                )
        return libraries
