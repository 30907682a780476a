"""Exceptions raised by the Dropbox storage layer."""

import json

from src.transport.http_client import HTTPClientError


class StorageApiError(Exception):
    """
    A Dropbox API call failed.

    Dropbox reports endpoint errors as HTTP 409 with an ``error_summary``
    such as ``path/not_found/..`` or ``to/conflict/folder/...``; the
    summary segments are exposed as ``tags`` for classification.
    """

    def __init__(
        self,
        message: str,
        error_summary: str | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.error_summary = error_summary
        self.status_code = status_code

    @property
    def tags(self) -> list[str]:
        if not self.error_summary:
            return []
        return [part for part in self.error_summary.split("/") if part and part.strip(".")]

    @property
    def is_not_found(self) -> bool:
        return "not_found" in self.tags

    @property
    def is_conflict(self) -> bool:
        return "conflict" in self.tags

    @classmethod
    def from_http_error(cls, endpoint: str, exc: HTTPClientError) -> "StorageApiError":
        summary = None
        if exc.response_body:
            try:
                body = json.loads(exc.response_body)
            except ValueError:
                body = None
            if isinstance(body, dict):
                summary = body.get("error_summary")
        detail = summary or (exc.response_body or str(exc))[:300]
        return cls(
            f"{endpoint} failed: {detail}",
            error_summary=summary,
            status_code=exc.status_code,
        )


class FolderResolutionError(Exception):
    """Not every destination category could be matched in the namespace root."""

    def __init__(self, message: str, missing: list[str] | None = None):
        super().__init__(message)
        self.missing = missing or []


class IdentityResolutionError(Exception):
    """The operating-context team member could not be determined."""

    def __init__(self, message: str, available: list[str] | None = None):
        super().__init__(message)
        self.available = available or []
