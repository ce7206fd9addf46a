"""
Construction of the service collaborators from configuration.
Entry points (API lifespan, CLI scripts) build everything here once and pass it down.
"""

from typing import Optional

import httpx

from clients.aladin import AladinClient
from clients.gateway import ExternalApiClient
from clients.library_api import LibraryApiClient
from utilities.config import AppConfig
from .book_search import BookSearchService
from .directory import LibraryDirectory
from .optimal_library import OptimalLibraryService


def build_http_client(cfg: AppConfig) -> httpx.AsyncClient:
    """Shared connection pool for every outbound API."""
    return httpx.AsyncClient(
        timeout=cfg.request_timeout,
        headers=cfg.get_headers(),
        follow_redirects=True,
        limits=httpx.Limits(max_keepalive_connections=20, max_connections=100)
    )


def build_gateway(
    api_name: str,
    base_url: str,
    cfg: AppConfig,
    client: Optional[httpx.AsyncClient] = None
) -> ExternalApiClient:
    return ExternalApiClient(
        api_name=api_name,
        base_url=base_url,
        client=client,
        timeout=cfg.request_timeout,
        retry_attempts=cfg.retry_attempts,
        retry_delay=cfg.retry_delay,
        rate_limit_per_second=cfg.rate_limit_per_second,
        headers=cfg.get_headers()
    )


def build_catalog_client(cfg: AppConfig, client: Optional[httpx.AsyncClient] = None) -> AladinClient:
    gateway = build_gateway("Aladin", cfg.aladin_base_url, cfg, client)
    return AladinClient(gateway, cfg.aladin_api_key)


def build_holdings_client(cfg: AppConfig, client: Optional[httpx.AsyncClient] = None) -> LibraryApiClient:
    gateway = build_gateway("Data4Library", cfg.library_api_base_url, cfg, client)
    return LibraryApiClient(
        gateway,
        cfg.library_api_key,
        region=cfg.library_api_region,
        page_size=cfg.library_api_page_size
    )


def build_directory(cfg: AppConfig) -> LibraryDirectory:
    return LibraryDirectory(
        connection_url=cfg.mongodb_url,
        database_name=cfg.mongodb_database,
        collection_name=cfg.libraries_collection
    )


def build_optimal_library_service(
    cfg: AppConfig,
    directory: LibraryDirectory,
    client: Optional[httpx.AsyncClient] = None
) -> OptimalLibraryService:
    return OptimalLibraryService(
        directory=directory,
        catalog_client=build_catalog_client(cfg, client),
        holdings_client=build_holdings_client(cfg, client)
    )


def build_book_search_service(cfg: AppConfig, client: Optional[httpx.AsyncClient] = None) -> BookSearchService:
    return BookSearchService(build_catalog_client(cfg, client))
