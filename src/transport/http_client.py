"""
Shared HTTP transport for the WorkflowMax and Dropbox clients.

Transient failures (connection drops, timeouts, 429 and the 5xx family)
are retried with capped exponential backoff. Anything else at or above
400 is raised straight away as HTTPClientError with the response body
attached, because Dropbox reports expected conditions such as
``path/conflict`` as 409 and the caller has to read them. Other httpx
transport errors (protocol, write, proxy) are not retried but still
surface as HTTPClientError.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any

import httpx

logger = logging.getLogger(__name__)

RETRYABLE_STATUSES = frozenset({429, 500, 502, 503, 504})
RETRYABLE_EXCEPTIONS = (httpx.TimeoutException, httpx.ConnectError, httpx.ReadError)


@dataclass
class RetryConfig:
    """
    Backoff policy.

    Delay before retry ``n`` (0-indexed) is
    ``min(max_backoff_seconds, base_delay * 2**n)`` plus up to
    ``jitter_factor`` of that value at random.
    """

    max_retries: int = 3
    max_backoff_seconds: float = 60.0
    base_delay: float = 1.0
    jitter_factor: float = 0.1

    def calculate_backoff(self, attempt: int) -> float:
        delay = min(self.base_delay * (2**attempt), self.max_backoff_seconds)
        return delay * (1 + self.jitter_factor * random.random())

    def is_retryable_status(self, status_code: int) -> bool:
        return status_code in RETRYABLE_STATUSES

    def is_retryable_exception(self, exc: Exception) -> bool:
        return isinstance(exc, RETRYABLE_EXCEPTIONS)


class HTTPClientError(Exception):
    """A request failed; carries the last status code and body when there was one."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class RateLimitError(HTTPClientError):
    """Still rate limited after the last retry."""


class HTTPClient:
    """
    Async HTTP client with retries, shared by every API client in a process.

    Example:
        async with HTTPClient(RetryConfig(max_retries=3)) as client:
            response = await client.post(
                "https://api.dropboxapi.com/2/files/get_metadata",
                headers={"Authorization": "Bearer ..."},
                json_body={"path": "/jobs"},
            )
    """

    def __init__(
        self,
        retry_config: RetryConfig | None = None,
        timeout: float = 30.0,
    ):
        self.retry_config = retry_config or RetryConfig()
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_settings(cls, settings: Any) -> "HTTPClient":
        """Build a client using the retry and timeout fields of Settings."""
        return cls(
            RetryConfig(
                max_retries=settings.max_http_retries,
                max_backoff_seconds=settings.max_backoff_seconds,
            ),
            timeout=settings.http_timeout_seconds,
        )

    async def __aenter__(self) -> "HTTPClient":
        self._client = httpx.AsyncClient(timeout=self.timeout)
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def get(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """
        GET with retries.

        Raises:
            HTTPClientError: Status >= 400, or retries exhausted
            RateLimitError: Still 429 after the last retry
        """
        return await self._send("GET", url, params=params or None, headers=headers or None)

    async def post(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        json_body: dict[str, Any] | None = None,
        form_data: dict[str, str] | None = None,
    ) -> httpx.Response:
        """
        POST with retries.

        Args:
            url: Request URL
            params: Query parameters
            headers: Request headers
            json_body: JSON body to send
            form_data: Form fields, sent as application/x-www-form-urlencoded

        Raises:
            HTTPClientError: Status >= 400, or retries exhausted
            RateLimitError: Still 429 after the last retry
        """
        return await self._send(
            "POST",
            url,
            params=params or None,
            headers=headers or None,
            json=json_body,
            data=form_data,
        )

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        if self._client is None:
            raise RuntimeError("HTTPClient must be used as async context manager")

        attempts = self.retry_config.max_retries + 1
        for attempt in range(attempts):
            last_attempt = attempt == attempts - 1
            try:
                response = await self._client.request(method, url, **kwargs)
            except RETRYABLE_EXCEPTIONS as e:
                if last_attempt:
                    raise HTTPClientError(
                        f"{method} {url} failed after {attempts} attempts: {e}"
                    ) from e
                await self._backoff(attempt, url, type(e).__name__)
                continue
            except httpx.HTTPError as e:
                raise HTTPClientError(f"{method} {url} failed: {type(e).__name__}: {e}") from e

            status = response.status_code
            if self.retry_config.is_retryable_status(status) and not last_attempt:
                await self._backoff(attempt, url, f"status {status}")
                continue

            if status == 429:
                raise RateLimitError(
                    f"Rate limit exceeded for {url} after {attempts} attempts",
                    status_code=status,
                    response_body=response.text,
                )
            if status >= 400:
                raise HTTPClientError(
                    f"{method} {url} failed with status {status}",
                    status_code=status,
                    response_body=response.text,
                )
            return response

        raise AssertionError("unreachable")

    async def _backoff(self, attempt: int, url: str, reason: str) -> None:
        delay = self.retry_config.calculate_backoff(attempt)
        logger.warning(
            f"Retrying {url} after {reason} "
            f"(attempt {attempt + 1}/{self.retry_config.max_retries + 1}, waiting {delay:.2f}s)"
        )
        await asyncio.sleep(delay)
