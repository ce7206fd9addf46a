"""
Pydantic models for external API payloads and normalized lookup results.
"""

from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field, validator


class ServiceResult(BaseModel):
    """Uniform outcome of an outbound HTTP call."""
    success: bool = Field(..., description="Whether the call succeeded")
    data: Optional[Any] = Field(None, description="Decoded JSON payload on success")
    error: Optional[str] = Field(None, description="Error message on failure")
    status_code: Optional[int] = Field(None, description="HTTP status code, if a response arrived")
    attempts: int = Field(1, ge=1, description="Number of attempts made")


class LookupStatus(str, Enum):
    """Tagged outcome of a single-ISBN adapter lookup."""
    FOUND = "found"
    EMPTY = "empty"
    FAILED = "failed"


class AladinItem(BaseModel):
    """A single item from the Aladin ItemSearch response."""
    title: str = ""
    cover: str = ""
    author: Optional[str] = None
    publisher: Optional[str] = None
    pub_date: Optional[str] = Field(None, alias="pubDate")
    description: Optional[str] = None
    isbn: Optional[str] = None
    isbn13: Optional[str] = None
    price_sales: Optional[int] = Field(None, alias="priceSales")
    price_standard: Optional[int] = Field(None, alias="priceStandard")
    category_name: Optional[str] = Field(None, alias="categoryName")
    link: Optional[str] = None

    model_config = {"populate_by_name": True, "extra": "allow"}


class AladinSearchResponse(BaseModel):
    """Aladin ItemSearch response envelope."""
    total_results: int = Field(0, alias="totalResults")
    start_index: int = Field(1, alias="startIndex")
    items_per_page: int = Field(0, alias="itemsPerPage")
    query: Optional[str] = None
    item: List[AladinItem] = Field(default_factory=list)

    model_config = {"populate_by_name": True, "extra": "ignore"}


class BookInfo(BaseModel):
    """Display metadata for a requested book."""
    title: str = Field(..., description="Book title")
    cover: str = Field("", description="Cover image URL")

    @classmethod
    def placeholder(cls, isbn: str) -> 'BookInfo':
        """Stand-in metadata used when the catalog has nothing for an ISBN."""
        return cls(title=f"Book {isbn}", cover="")


class BookLookup(BaseModel):
    """Result of a catalog lookup by ISBN."""
    isbn: str
    status: LookupStatus
    book: Optional[BookInfo] = None
    reason: Optional[str] = None


class HoldingLibrary(BaseModel):
    """A library reported by the holdings API as owning a book."""
    lib_code: int = Field(..., alias="libCode")
    lib_name: str = Field("", alias="libName")
    address: Optional[str] = None
    tel: Optional[str] = None
    latitude: Optional[str] = None
    longitude: Optional[str] = None
    homepage: Optional[str] = None
    closed: Optional[str] = None
    operating_time: Optional[str] = Field(None, alias="operatingTime")

    model_config = {"populate_by_name": True, "extra": "ignore"}

    @validator('lib_code', pre=True)
    def coerce_lib_code(cls, v):
        """Library codes arrive as strings or numbers; the directory keys on int."""
        if isinstance(v, bool):
            raise ValueError('lib_code must be numeric')
        if isinstance(v, str):
            v = v.strip()
        try:
            return int(v)
        except (TypeError, ValueError):
            raise ValueError(f'lib_code must be numeric, got {v!r}')


class HoldingsLookup(BaseModel):
    """Result of a holdings lookup by ISBN."""
    isbn: str
    status: LookupStatus
    libraries: List[HoldingLibrary] = Field(default_factory=list)
    reason: Optional[str] = None
