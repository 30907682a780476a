"""
WorkflowMax OAuth token lifecycle.

TokenStore persists the token set to a JSON file so a restart does not
require logging in again. TokenManager hands out a valid access token,
refreshing it through the refresh_token grant when it is missing or
within the safety margin of expiry, and also performs the initial
authorization-code exchange for the login callback.
"""

import asyncio
import json
import os
import tempfile
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from urllib.parse import urlencode

import structlog
from pydantic import ValidationError

from src.config.settings import Settings
from src.observability.metrics import MetricsCollector, get_metrics
from src.tracking.errors import AuthError
from src.tracking.schemas import Credential
from src.transport.http_client import HTTPClient, HTTPClientError

logger = structlog.get_logger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TokenStore:
    """JSON file holding {access_token, refresh_token, expires_in, obtained_at}."""

    def __init__(self, path: str | Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Credential:
        """Read the stored credential. Missing or corrupt files read as empty."""
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            return Credential.model_validate(raw)
        except FileNotFoundError:
            return Credential()
        except (json.JSONDecodeError, ValidationError, OSError) as e:
            logger.warning("Token file unreadable", path=str(self._path), error=str(e))
            return Credential()

    def save(self, credential: Credential) -> None:
        """Write the credential, replacing the file atomically."""
        directory = self._path.parent
        directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=directory, prefix=".tokens-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(credential.model_dump(), fh, indent=2)
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


class TokenManager:
    """
    Supplies valid WorkflowMax access tokens.

    Refreshes are serialized with a lock so the OAuth callback and the
    polling loop never exchange or write tokens at the same time.

    Usage:
        manager = TokenManager.from_settings(settings, http)
        token = await manager.get_valid_access_token()
    """

    def __init__(
        self,
        http: HTTPClient,
        store: TokenStore,
        client_id: str | None,
        client_secret: str | None,
        token_url: str,
        auth_url: str,
        scope: str,
        margin_seconds: int = 60,
        clock: Callable[[], datetime] = _utc_now,
        metrics: MetricsCollector | None = None,
    ):
        self._http = http
        self._store = store
        self._client_id = client_id
        self._client_secret = client_secret
        self._token_url = token_url
        self._auth_url = auth_url
        self._scope = scope
        self._margin_seconds = margin_seconds
        self._clock = clock
        self._metrics = metrics or get_metrics()
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: Settings, http: HTTPClient) -> "TokenManager":
        return cls(
            http=http,
            store=TokenStore(settings.token_file),
            client_id=settings.wfx_client_id,
            client_secret=settings.wfx_client_secret,
            token_url=settings.wfx_token_url,
            auth_url=settings.wfx_auth_url,
            scope=settings.wfx_scope,
            margin_seconds=settings.token_refresh_margin_seconds,
        )

    @property
    def store(self) -> TokenStore:
        return self._store

    def has_credential(self) -> bool:
        """True if a refresh token is on file."""
        return bool(self._store.load().refresh_token)

    async def get_valid_access_token(self) -> str:
        """
        Return a usable access token, refreshing it first if needed.

        Raises:
            AuthError: No refresh token on file, or the refresh was rejected
        """
        async with self._lock:
            credential = await asyncio.to_thread(self._store.load)
            now = self._clock()

            if credential.is_usable(now, self._margin_seconds):
                logger.debug("Using cached access token", expires_at=credential.expires_at.isoformat())
                return credential.access_token

            logger.info("Access token expired or missing, refreshing")
            refreshed = await self._refresh(credential)
            return refreshed.access_token

    async def _refresh(self, credential: Credential) -> Credential:
        if not credential.refresh_token:
            self._metrics.record_token_refresh(False)
            raise AuthError(
                "No refresh token available; complete the OAuth login first",
            )

        payload = await self._token_request({
            "grant_type": "refresh_token",
            "refresh_token": credential.refresh_token,
        })
        refreshed = Credential.from_token_response(
            payload,
            previous=credential,
            obtained_at=self._now_millis(),
        )
        await asyncio.to_thread(self._store.save, refreshed)
        self._metrics.record_token_refresh(True)
        logger.info("Token refresh successful", expires_in=refreshed.expires_in)
        return refreshed

    def build_authorization_url(self, redirect_uri: str, state: str) -> str:
        """URL that starts the authorization-code login in the browser."""
        params = {
            "response_type": "code",
            "client_id": self._client_id or "",
            "redirect_uri": redirect_uri,
            "scope": self._scope,
            "state": state,
            "prompt": "consent",
        }
        return f"{self._auth_url}?{urlencode(params)}"

    async def exchange_authorization_code(self, code: str, redirect_uri: str) -> Credential:
        """
        Exchange a login callback code for tokens and persist them.

        Raises:
            AuthError: The token endpoint rejected the code
        """
        async with self._lock:
            payload = await self._token_request({
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": redirect_uri,
            })
            credential = Credential.from_token_response(
                payload,
                obtained_at=self._now_millis(),
            )
            await asyncio.to_thread(self._store.save, credential)
            logger.info("Token exchange successful", expires_in=credential.expires_in)
            return credential

    async def _token_request(self, fields: dict[str, str]) -> dict:
        if not self._client_id or not self._client_secret:
            self._metrics.record_token_refresh(False)
            raise AuthError("WorkflowMax client id/secret are not configured")

        form = {
            **fields,
            "client_id": self._client_id,
            "client_secret": self._client_secret,
        }
        try:
            response = await self._http.post(self._token_url, form_data=form)
            payload = response.json()
        except HTTPClientError as e:
            self._metrics.record_token_refresh(False)
            logger.error(
                "Token request rejected",
                grant_type=fields["grant_type"],
                status_code=e.status_code,
                detail=e.response_body,
            )
            raise AuthError(
                f"Token endpoint rejected {fields['grant_type']} grant",
                detail=e.response_body,
            ) from e
        except ValueError as e:
            self._metrics.record_token_refresh(False)
            raise AuthError("Token endpoint returned a non-JSON body") from e

        if not isinstance(payload, dict) or not payload.get("access_token"):
            self._metrics.record_token_refresh(False)
            raise AuthError("Token endpoint response has no access_token", detail=str(payload)[:500])
        return payload

    def _now_millis(self) -> int:
        return int(self._clock().timestamp() * 1000)
