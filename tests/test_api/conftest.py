"""Shared fixtures for API tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from src.api.app import create_app
from src.api.dependencies import (
    OAuthStateStore,
    get_oauth_states,
    get_sync_service,
    get_token_manager,
)
from src.tracking.schemas import Credential


@pytest.fixture
def mock_token_manager():
    """Mock TokenManager."""
    manager = MagicMock()
    manager.build_authorization_url = MagicMock(
        side_effect=lambda redirect_uri, state: f"https://oauth.example.com/authorize?state={state}"
    )
    manager.exchange_authorization_code = AsyncMock(
        return_value=Credential(access_token="a", refresh_token="r", expires_in=1800)
    )
    manager.has_credential = MagicMock(return_value=True)
    return manager


@pytest.fixture
def oauth_states() -> OAuthStateStore:
    return OAuthStateStore()


@pytest.fixture
def mock_sync_service():
    """Mock SyncService reporting a healthy loop."""
    service = AsyncMock()
    service.health_check = AsyncMock(return_value={
        "running": True,
        "cycles_run": 3,
        "last_checked": "2025-05-01T09:00:00+00:00",
        "identity_resolved": True,
        "destinations": {"project_jobs": "/isa project jobs (2-5)"},
        "last_cycle": {"status": "completed", "items": 2},
    })
    return service


def _client(token_manager, states, sync_service=None):
    app = create_app()
    app.dependency_overrides[get_token_manager] = lambda: token_manager
    app.dependency_overrides[get_oauth_states] = lambda: states
    app.dependency_overrides[get_sync_service] = lambda: sync_service
    return app


@pytest.fixture
def client(mock_token_manager, oauth_states):
    """FastAPI TestClient with no sync loop attached."""
    app = _client(mock_token_manager, oauth_states)

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture
def client_with_service(mock_token_manager, oauth_states, mock_sync_service):
    """FastAPI TestClient with a running sync loop attached."""
    app = _client(mock_token_manager, oauth_states, mock_sync_service)

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()
