"""
API models and schemas for the FastAPI application.
"""

from datetime import datetime, timezone
from typing import Any, List, Optional

from pydantic import BaseModel, Field


class OptimalLibraryRequest(BaseModel):
    """Request body for the optimal library set calculation."""
    isbns: Optional[Any] = Field(None, description="1-3 ISBN strings", examples=[["9788936433529", "9788937460777"]])


class ResponseMeta(BaseModel):
    """Metadata attached to every API response."""
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), description="Response timestamp")
    request_id: Optional[str] = Field(None, alias="requestId", description="Request identifier")

    model_config = {"populate_by_name": True}


class ApiResponse(BaseModel):
    """Success envelope."""
    success: bool = Field(True, description="Whether the request succeeded")
    data: Optional[Any] = Field(None, description="Response payload")
    message: Optional[str] = Field(None, description="Human-readable message")
    meta: Optional[ResponseMeta] = None


class ErrorResponse(BaseModel):
    """Error response model."""
    success: bool = Field(False, description="Always false")
    message: str = Field(..., description="Error message")
    errors: Optional[List[str]] = Field(None, description="Field-level error details")
    detail: Optional[str] = Field(None, description="Additional error details (debug only)")
    status_code: int = Field(..., description="HTTP status code")
    meta: Optional[ResponseMeta] = None


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(..., description="API version")
    database_status: str = Field(..., description="Library directory status")
