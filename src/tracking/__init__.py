"""Tracking system (WorkflowMax): tokens, job list client, response parsing."""

from src.tracking.client import TrackingClient
from src.tracking.errors import AuthError, FetchError, TrackingError
from src.tracking.parser import parse_job_list
from src.tracking.schemas import Credential, Item
from src.tracking.tokens import TokenManager, TokenStore

__all__ = [
    "AuthError",
    "Credential",
    "FetchError",
    "Item",
    "TokenManager",
    "TokenStore",
    "TrackingClient",
    "TrackingError",
    "parse_job_list",
]
