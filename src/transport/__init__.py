"""HTTP transport shared by the tracking and storage clients."""

from src.transport.http_client import HTTPClient, HTTPClientError, RateLimitError, RetryConfig

__all__ = ["HTTPClient", "HTTPClientError", "RateLimitError", "RetryConfig"]
