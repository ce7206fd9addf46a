"""
Title search pass-through to the book catalog.
"""

import math

import structlog

from clients.aladin import AladinClient
from clients.models import AladinSearchResponse
from .exceptions import InvalidInputError, UpstreamFailureError
from .models import BookSearchResult, PaginationMeta

logger = structlog.get_logger(__name__)

DEFAULT_PAGE = 1
MIN_PAGE = 1
DEFAULT_LIMIT = 10
MIN_LIMIT = 5
MAX_LIMIT = 50


def clamp_page(page) -> int:
    if page is None:
        return DEFAULT_PAGE
    return max(MIN_PAGE, page)


def clamp_limit(limit) -> int:
    if limit is None:
        return DEFAULT_LIMIT
    return min(MAX_LIMIT, max(MIN_LIMIT, limit))


class BookSearchService:
    """Paginated title search."""

    def __init__(self, catalog_client: AladinClient):
        self.catalog_client = catalog_client

    async def search_by_title(self, title: str, page: int = DEFAULT_PAGE, limit: int = DEFAULT_LIMIT) -> BookSearchResult:
        """
        Search books by title.

        Args:
            title: Title text; surrounding whitespace is ignored
            page: 1-based page number, clamped to at least 1
            limit: Page size, clamped to 5..50

        Returns:
            BookSearchResult with the page of books and pagination metadata

        Raises:
            InvalidInputError: empty title
            UpstreamFailureError: catalog call failed
        """
        title = (title or "").strip()
        if not title:
            raise InvalidInputError("Title parameter is required")

        page = clamp_page(page)
        limit = clamp_limit(limit)
        start = (page - 1) * limit + 1

        result = await self.catalog_client.search_books_by_title(title, start=start, max_results=limit)
        if not result.success:
            logger.warning("Title search failed", title=title, error=result.error)
            raise UpstreamFailureError(result.error or "Failed to search books")

        response: AladinSearchResponse = result.data
        if response is None:
            raise UpstreamFailureError("No data received from search API")

        return BookSearchResult(
            books=response.item,
            pagination=PaginationMeta(
                page=page,
                limit=limit,
                total=response.total_results,
                total_pages=math.ceil(response.total_results / limit)
            )
        )
