"""
FastAPI main application for the Bookshore Library Finder API.
"""

import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import structlog
from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.config import config as api_config
from api.models import ApiResponse, ErrorResponse, HealthResponse, OptimalLibraryRequest, ResponseMeta
from services.book_search import DEFAULT_LIMIT, DEFAULT_PAGE, BookSearchService
from services.exceptions import LibraryFinderError
from services.factory import (
    build_book_search_service, build_directory, build_http_client, build_optimal_library_service
)
from services.optimal_library import OptimalLibraryService
from utilities.config import config
from utilities.logger import setup_logging

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.get_log_file_path(),
        debug=config.debug
    )
    logger.info("Starting Bookshore Library Finder API")

    http_client = build_http_client(config)
    directory = build_directory(config)
    try:
        await directory.connect()
    except Exception as e:
        # Requests report the directory as unavailable until MongoDB is reachable
        logger.error("Failed to connect to library directory", error=str(e))

    app.state.directory = directory
    app.state.optimal_library_service = build_optimal_library_service(config, directory, http_client)
    app.state.book_search_service = build_book_search_service(config, http_client)

    yield

    logger.info("Shutting down Bookshore Library Finder API")
    await http_client.aclose()
    await directory.disconnect()


app = FastAPI(
    title=api_config.api_title,
    description="""
    Find which public libraries to visit to borrow a set of books.

    ## Features

    * **Optimal library sets**: for up to three ISBNs, rank library combinations by how many
      of the books they cover and how few libraries they need
    * **Book search**: paginated title search against the Aladin catalog
    """,
    version=api_config.api_version,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=api_config.cors_origins,
    allow_credentials=api_config.cors_allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_context(request: Request, call_next):
    """Tag each request with an id and log its outcome."""
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id
    start_time = time.monotonic()

    response = await call_next(request)

    response.headers["x-request-id"] = request_id
    logger.info(
        "Request completed",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=int((time.monotonic() - start_time) * 1000),
        request_id=request_id
    )
    return response


def _meta(request: Request) -> ResponseMeta:
    return ResponseMeta(request_id=getattr(request.state, "request_id", None))


def _error_content(request: Request, message: str, status_code: int, **extra) -> dict:
    return ErrorResponse(
        message=message,
        status_code=status_code,
        meta=_meta(request),
        **extra
    ).model_dump(mode="json", by_alias=True, exclude_none=True)


# Exception handlers
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_content(request, str(exc.detail), exc.status_code),
        headers=exc.headers
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report malformed requests as 400s with field messages."""
    errors = [
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}"
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_content(request, "Validation Error", status.HTTP_400_BAD_REQUEST, errors=errors)
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions."""
    logger.error("Unhandled exception", error=str(exc), path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_content(
            request,
            "Internal server error",
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc) if api_config.debug else None
        )
    )


# Dependencies
def get_optimal_library_service(request: Request) -> OptimalLibraryService:
    service = getattr(request.app.state, "optimal_library_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Optimal library service not available"
        )
    return service


def get_book_search_service(request: Request) -> BookSearchService:
    service = getattr(request.app.state, "book_search_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Book search service not available"
        )
    return service


# Health check endpoint
@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(request: Request):
    """Health check endpoint."""
    db_status = "unknown"
    directory = getattr(request.app.state, "directory", None)
    if directory:
        try:
            health_info = await directory.health_check()
            db_status = health_info.get("status", "unknown")
        except Exception as e:
            logger.error("Health check failed", error=str(e))
            db_status = "unhealthy"

    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        timestamp=datetime.now(timezone.utc),
        version=api_config.api_version,
        database_status=db_status
    )


# Library endpoints
@app.post("/api/libraries/calculate-optimal-library-set", tags=["Libraries"])
async def calculate_optimal_library_set(
    request: Request,
    body: Optional[OptimalLibraryRequest] = None,
    service: OptimalLibraryService = Depends(get_optimal_library_service)
):
    """
    Rank combinations of libraries that together hold the requested books.

    - **isbns**: 1-3 ISBNs (digits, hyphens and X only)
    """
    if body is None or not isinstance(body.isbns, list):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="isbns array is required"
        )

    try:
        result = await service.calculate_optimal_library_set(body.isbns)
    except LibraryFinderError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except Exception as e:
        logger.error("Failed to calculate optimal library set", error=str(e), isbns=body.isbns)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error"
        )

    return JSONResponse(
        content=ApiResponse(data=result, meta=_meta(request)).model_dump(mode="json", by_alias=True)
    )


# Book endpoints
@app.get("/api/books/search", tags=["Books"])
async def search_books(
    request: Request,
    title: str = "",
    page: int = DEFAULT_PAGE,
    limit: int = DEFAULT_LIMIT,
    service: BookSearchService = Depends(get_book_search_service)
):
    """
    Search books by title.

    - **title**: Title text (required)
    - **page**: Page number, at least 1
    - **limit**: Page size, clamped to 5-50
    """
    try:
        result = await service.search_by_title(title, page=page, limit=limit)
    except LibraryFinderError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except Exception as e:
        logger.error("Failed to search books", error=str(e), title=title)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error"
        )

    return JSONResponse(
        content=ApiResponse(
            data=result,
            message="Books retrieved successfully",
            meta=_meta(request)
        ).model_dump(mode="json", by_alias=True)
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host=api_config.host,
        port=api_config.port,
        reload=api_config.debug,
        log_level="info"
    )
