"""
Retrying HTTP gateway shared by the external API clients.
Normalizes every outcome (response, HTTP error, network failure) into a ServiceResult.
"""

import asyncio
import time
from typing import Any, Dict, Optional

import httpx
from asyncio_throttle import Throttler

from .models import ServiceResult
from utilities.logger import ExternalApiLogger


class ExternalApiClient:
    """
    Async HTTP client with bounded retries and linear backoff.

    Network errors and 5xx responses are retried; 4xx responses fail immediately.
    """

    def __init__(
        self,
        api_name: str,
        base_url: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 15.0,
        retry_attempts: int = 2,
        retry_delay: float = 1.0,
        rate_limit_per_second: float = 10.0,
        headers: Optional[Dict[str, str]] = None
    ):
        """
        Initialize the gateway.

        Args:
            api_name: Name used in log events
            base_url: Base URL every endpoint is resolved against
            client: Shared httpx client; one is created (and owned) when omitted
            timeout: Per-call timeout in seconds
            retry_attempts: Retries after the first attempt
            retry_delay: Base delay in seconds, multiplied by the attempt number
            rate_limit_per_second: Outbound request rate for this gateway
            headers: Default request headers
        """
        self.api_name = api_name
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.retry_attempts = retry_attempts
        self.retry_delay = retry_delay
        self.headers = headers or {}
        self.throttler = Throttler(rate_limit=rate_limit_per_second)
        self.api_logger = ExternalApiLogger(api_name).bind_context(base_url=self.base_url)

        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            limits=httpx.Limits(max_keepalive_connections=20, max_connections=100)
        )

    async def get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> ServiceResult:
        """Issue a GET request with retries."""
        return await self.request("GET", endpoint, params=params)

    async def request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None
    ) -> ServiceResult:
        """
        Issue a request and normalize the outcome.

        Args:
            method: HTTP method
            endpoint: Path relative to the base URL
            params: Query parameters (None values are dropped)
            json: Optional JSON body

        Returns:
            ServiceResult with the decoded JSON payload or an error message
        """
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        query = {k: v for k, v in (params or {}).items() if v is not None}
        max_attempts = self.retry_attempts + 1
        start_time = time.monotonic()

        attempt = 1
        while True:
            self.api_logger.log_request(method, endpoint)
            status_code = None
            try:
                async with self.throttler:
                    response = await self._client.request(
                        method,
                        url,
                        params=query,
                        json=json,
                        headers=self.headers,
                        timeout=self.timeout
                    )
                status_code = response.status_code
                response.raise_for_status()
                data = response.json()

                self.api_logger.log_call(
                    endpoint, True, self._elapsed_ms(start_time), status_code, attempts=attempt
                )
                return ServiceResult(success=True, data=data, status_code=status_code, attempts=attempt)

            except (httpx.HTTPStatusError, httpx.RequestError) as e:
                if attempt < max_attempts and self._should_retry(e):
                    delay = self.retry_delay * attempt
                    self.api_logger.log_retry(endpoint, attempt, max_attempts, delay, self._extract_error_message(e))
                    await asyncio.sleep(delay)
                    attempt += 1
                    continue
                error = self._extract_error_message(e)

            except ValueError as e:
                # Body was not valid JSON
                error = f"Invalid JSON response: {e}"

            self.api_logger.log_call(
                endpoint, False, self._elapsed_ms(start_time), status_code, attempts=attempt, error=error
            )
            return ServiceResult(success=False, error=error, status_code=status_code, attempts=attempt)

    @staticmethod
    def _should_retry(error: Exception) -> bool:
        """Retry on network errors or 5xx server errors."""
        if isinstance(error, httpx.TransportError):
            return True
        if isinstance(error, httpx.HTTPStatusError):
            return 500 <= error.response.status_code < 600
        return False

    @staticmethod
    def _extract_error_message(error: Exception) -> str:
        """Prefer the error text carried in a JSON body over the exception text."""
        if isinstance(error, httpx.HTTPStatusError):
            try:
                body = error.response.json()
            except ValueError:
                body = None
            if isinstance(body, dict):
                if body.get("message"):
                    return str(body["message"])
                if body.get("error"):
                    return str(body["error"])
            return f"HTTP {error.response.status_code} error"
        return str(error) or error.__class__.__name__

    @staticmethod
    def _elapsed_ms(start_time: float) -> int:
        return int((time.monotonic() - start_time) * 1000)

    async def close(self) -> None:
        """Close the underlying client if this gateway created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
