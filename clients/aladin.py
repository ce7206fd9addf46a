"""
Client for the Aladin TTB book catalog API.
"""

from typing import Any, Dict

import structlog
from pydantic import ValidationError

from .gateway import ExternalApiClient
from .models import AladinSearchResponse, BookInfo, BookLookup, LookupStatus, ServiceResult

logger = structlog.get_logger(__name__)


class AladinClient:
    """Book catalog adapter: ISBN lookups and title searches against ItemSearch."""

    API_VERSION = "20131101"
    SEARCH_ENDPOINT = "ItemSearch.aspx"

    def __init__(self, gateway: ExternalApiClient, ttb_key: str):
        if not ttb_key:
            raise ValueError("ALADIN_API_KEY is required in environment variables")
        self.gateway = gateway
        self.ttb_key = ttb_key

    async def search_books(self, query: str, query_type: str = "Keyword", **options) -> ServiceResult:
        """
        Run an ItemSearch query.

        Args:
            query: Search text (title, ISBN, keyword)
            query_type: Aladin QueryType (Keyword, Title, Author, Publisher)
            **options: Extra ItemSearch parameters overriding the defaults

        Returns:
            ServiceResult whose data is an AladinSearchResponse on success
        """
        params: Dict[str, Any] = {
            "TTBKey": self.ttb_key,
            "Version": self.API_VERSION,
            "output": "js",
            "SearchTarget": "Book",
            "QueryType": query_type,
            "Start": 1,
            "MaxResults": 10,
            "Cover": "Mid",
            "Sort": "Accuracy",
            "Query": query,
        }
        params.update(options)

        result = await self.gateway.get(self.SEARCH_ENDPOINT, params=params)
        if not result.success:
            return result

        payload = result.data
        if isinstance(payload, dict) and payload.get("errorMessage"):
            # Aladin reports bad keys and quota errors with HTTP 200
            return ServiceResult(success=False, error=str(payload["errorMessage"]), status_code=result.status_code)

        try:
            response = AladinSearchResponse(**payload)
        except (TypeError, ValidationError) as e:
            logger.warning("Unexpected Aladin response shape", query=query, error=str(e))
            return ServiceResult(success=False, error="Malformed response from book catalog", status_code=result.status_code)

        logger.debug(
            "Aladin search completed",
            query=query,
            query_type=query_type,
            max_results=params["MaxResults"],
            results_count=response.total_results
        )
        return ServiceResult(success=True, data=response, status_code=result.status_code, attempts=result.attempts)

    async def search_books_by_title(self, title: str, start: int = 1, max_results: int = 10) -> ServiceResult:
        """Search by title with Aladin's 1-based Start offset."""
        return await self.search_books(title, query_type="Title", Start=start, MaxResults=max_results)

    async def search_by_isbn(self, isbn: str) -> BookLookup:
        """
        Look up one book by ISBN.

        Never fabricates metadata: callers decide what to show for EMPTY and FAILED.
        """
        result = await self.search_books(isbn, query_type="Keyword", MaxResults=1)
        if not result.success:
            return BookLookup(isbn=isbn, status=LookupStatus.FAILED, reason=result.error)

        response: AladinSearchResponse = result.data
        if not response.item:
            return BookLookup(isbn=isbn, status=LookupStatus.EMPTY)

        item = response.item[0]
        return BookLookup(
            isbn=isbn,
            status=LookupStatus.FOUND,
            book=BookInfo(title=item.title, cover=item.cover)
        )
