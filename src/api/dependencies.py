"""
Dependency injection for FastAPI endpoints.
"""

import secrets
import time
from collections import OrderedDict
from collections.abc import Callable, Iterator

from src.config.settings import get_settings
from src.services.sync_service import SyncService
from src.tracking.tokens import TokenManager
from src.transport.http_client import HTTPClient

# Global instances. The CLI injects the ones it built; otherwise they are
# created on first request.
_http_client: HTTPClient | None = None
_token_manager: TokenManager | None = None
_sync_service: SyncService | None = None


class OAuthStateStore:
    """
    Authorization states issued by /oauth/login and not yet redeemed.

    States expire after ``ttl_seconds`` and at most ``max_states`` are held;
    issuing past the cap evicts the oldest.
    """

    def __init__(
        self,
        ttl_seconds: float = 600.0,
        max_states: int = 50,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._ttl = ttl_seconds
        self._max = max_states
        self._clock = clock
        self._issued: OrderedDict[str, float] = OrderedDict()

    def __len__(self) -> int:
        return len(self._issued)

    def __contains__(self, state: object) -> bool:
        return state in self._issued

    def __iter__(self) -> Iterator[str]:
        return iter(self._issued)

    def issue(self) -> str:
        self._prune()
        state = secrets.token_urlsafe(16)
        self._issued[state] = self._clock()
        while len(self._issued) > self._max:
            self._issued.popitem(last=False)
        return state

    def redeem(self, state: str | None) -> bool:
        """Consume ``state``; False if it was never issued, already used or expired."""
        self._prune()
        if not state:
            return False
        return self._issued.pop(state, None) is not None

    def clear(self) -> None:
        self._issued.clear()

    def _prune(self) -> None:
        cutoff = self._clock() - self._ttl
        while self._issued:
            oldest, issued_at = next(iter(self._issued.items()))
            if issued_at > cutoff:
                break
            del self._issued[oldest]


_oauth_states = OAuthStateStore()


def set_token_manager(manager: TokenManager | None) -> None:
    global _token_manager
    _token_manager = manager


def set_sync_service(service: SyncService | None) -> None:
    global _sync_service
    _sync_service = service


async def get_token_manager() -> TokenManager:
    """
    Get the token manager.

    Creates one on its own HTTP client when none was injected, which is
    the case for the web-only ``serve`` command.
    """
    global _http_client, _token_manager

    if _token_manager is None:
        settings = get_settings()
        _http_client = HTTPClient.from_settings(settings)
        await _http_client.__aenter__()
        _token_manager = TokenManager.from_settings(settings, _http_client)

    return _token_manager


async def get_sync_service() -> SyncService | None:
    """The running sync service, or None when only the web surface is up."""
    return _sync_service


def get_oauth_states() -> OAuthStateStore:
    """Authorization states issued by /oauth/login and not yet redeemed."""
    return _oauth_states


async def cleanup_dependencies() -> None:
    """Release resources created by the dependency getters."""
    global _http_client, _token_manager

    if _http_client is not None:
        await _http_client.__aexit__(None, None, None)
        _http_client = None
        _token_manager = None

    _oauth_states.clear()
