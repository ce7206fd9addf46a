"""
Pydantic models for the library directory and optimal library set results.
"""

import re
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from clients.models import AladinItem

ISBN_PATTERN = re.compile(r'^[\d\-X]+$', re.IGNORECASE)

MIN_ISBNS = 1
MAX_ISBNS = 3


def is_valid_isbn(isbn: Any) -> bool:
    """Character-pattern check only; no checksum validation."""
    return isinstance(isbn, str) and bool(ISBN_PATTERN.fullmatch(isbn))


class LibraryRecord(BaseModel):
    """
    A library in the authoritative directory, keyed by numeric code.
    """
    lib_code: int = Field(..., description="Unique library code")
    lib_name: str = Field(..., description="Library name")
    address: Optional[str] = Field(None, description="Street address")
    website: Optional[str] = Field(None, description="Homepage URL")
    detailed_address: Optional[str] = Field(None, description="Detailed address")
    latitude: Optional[str] = Field(None, description="Latitude")
    longitude: Optional[str] = Field(None, description="Longitude")
    operating_hours: Optional[str] = Field(None, description="Operating hours")
    closed_days: Optional[str] = Field(None, description="Regular closing days")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")

    model_config = {
        "extra": "ignore",
        "json_schema_extra": {
            "example": {
                "lib_code": 111001,
                "lib_name": "강남도서관",
                "address": "서울특별시 강남구 선릉로116길 45",
                "website": "https://library.gangnam.go.kr",
                "latitude": "37.5134",
                "longitude": "127.0471",
                "operating_hours": "09:00-22:00",
                "closed_days": "매월 둘째·넷째 월요일"
            }
        }
    }


class LibrarySummary(BaseModel):
    """Library fields shown alongside a covered book."""
    lib_code: int
    lib_name: str
    address: Optional[str] = None


class BookWithLibraries(BaseModel):
    """A covered book and the libraries of one combination that hold it."""
    isbn: str
    title: str
    cover: str
    libraries: List[LibrarySummary] = Field(default_factory=list)


class OptimalLibrarySet(BaseModel):
    """One ranked library combination."""
    books: List[BookWithLibraries] = Field(default_factory=list)
    coverage_rate: float = Field(..., ge=0, le=100, alias="coverageRate",
                                 description="Percentage of requested books covered")

    model_config = {"populate_by_name": True}

    def library_count(self) -> int:
        """Distinct libraries actually used across all covered books."""
        return len({lib.lib_code for book in self.books for lib in book.libraries})


class OptimalLibraryResponse(BaseModel):
    """Up to five ranked library combinations."""
    optimal_sets: List[OptimalLibrarySet] = Field(default_factory=list, alias="optimalSets")

    model_config = {"populate_by_name": True}


class PaginationMeta(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int = Field(..., alias="totalPages")

    model_config = {"populate_by_name": True}


class BookSearchResult(BaseModel):
    """A page of title search results."""
    books: List[AladinItem] = Field(default_factory=list)
    pagination: PaginationMeta
