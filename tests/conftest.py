"""Pytest fixtures for job-folder-sync tests."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from src.config.settings import Settings
from src.storage.errors import StorageApiError
from src.storage.schemas import FolderEntry
from src.sync.schemas import (
    Checkpoint,
    DestinationCategory,
    DestinationFolder,
    SyncContext,
)
from src.tracking.schemas import Item

PROJECT_JOBS_PATH = "/isa project jobs (2-5)"
SURVEY_PATH = "/isa survey pty ltd (7-8)"
SURVEYORS_PATH = "/isa surveyors pty ltd (6 or 9)"
TEMPLATE_PATH = "/isa surveyors pty ltd (6 or 9)/00_isa surveyors job folder template"

START = datetime(2025, 5, 1, 9, 0, tzinfo=timezone.utc)


def _parent(path: str) -> str:
    return path.rsplit("/", 1)[0]


def _conflict(endpoint: str, tag: str = "path") -> StorageApiError:
    return StorageApiError(
        f"{endpoint} failed: {tag}/conflict/folder/..",
        error_summary=f"{tag}/conflict/folder/..",
        status_code=409,
    )


def _not_found(endpoint: str, tag: str = "path") -> StorageApiError:
    return StorageApiError(
        f"{endpoint} failed: {tag}/not_found/..",
        error_summary=f"{tag}/not_found/..",
        status_code=409,
    )


class FakeNamespace:
    """
    In-memory stand-in for NamespaceClient.

    Paths are compared lower-cased, like Dropbox. ``failures`` maps an
    operation name to an error raised on every call to it.
    """

    namespace_id = "ns-1037"
    member_id = "dbmid:operator"

    def __init__(self, folders: list[str] | None = None):
        self.folders: dict[str, str] = {}
        self.calls: list[tuple[str, str]] = []
        self.failures: dict[str, StorageApiError] = {}
        for path in folders or []:
            self.add_folder(path)

    def add_folder(self, path: str) -> FolderEntry:
        self.folders[path.lower()] = path
        return self._entry(path)

    @staticmethod
    def _entry(path: str) -> FolderEntry:
        return FolderEntry.model_validate({
            ".tag": "folder",
            "name": path.rsplit("/", 1)[-1],
            "id": f"id:{abs(hash(path.lower()))}",
            "path_lower": path.lower(),
            "path_display": path,
        })

    def _check_failure(self, operation: str) -> None:
        if operation in self.failures:
            raise self.failures[operation]

    def count(self, operation: str) -> int:
        return sum(1 for op, _ in self.calls if op == operation)

    async def get_metadata(self, path: str) -> FolderEntry:
        self.calls.append(("get_metadata", path))
        self._check_failure("get_metadata")
        if path.lower() not in self.folders:
            raise _not_found("files/get_metadata")
        return self._entry(self.folders[path.lower()])

    async def list_folder(self, path: str, include_mounted_folders: bool = False) -> list[FolderEntry]:
        self.calls.append(("list_folder", path))
        self._check_failure("list_folder")
        wanted = path.lower().rstrip("/")
        return [self._entry(display) for lower, display in self.folders.items() if _parent(lower) == wanted]

    async def copy(self, from_path: str, to_path: str) -> FolderEntry | None:
        self.calls.append(("copy", to_path))
        self._check_failure("copy")
        if from_path.lower() not in self.folders:
            raise _not_found("files/copy_v2", tag="from_lookup")
        if to_path.lower() in self.folders:
            raise _conflict("files/copy_v2", tag="to")
        return self.add_folder(to_path)

    async def create_folder(self, path: str) -> FolderEntry | None:
        self.calls.append(("create_folder", path))
        self._check_failure("create_folder")
        if path.lower() in self.folders:
            raise _conflict("files/create_folder_v2")
        return self.add_folder(path)


class MutableClock:
    """Clock whose time only moves when a test advances it."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Settings configured for testing."""
    return Settings(
        environment="development",
        log_level="DEBUG",
        wfx_client_id="client-id",
        wfx_client_secret="client-secret",
        wfx_account_id="account-1",
        token_file=str(tmp_path / "tokens.json"),
        dropbox_token="dbx-team-token",
        dropbox_namespace_id="ns-1037",
        dropbox_api_select_user_email="operator@example.com",
        max_http_retries=0,
    )


@pytest.fixture
def namespace() -> FakeNamespace:
    """Namespace holding the three destination folders and the template."""
    return FakeNamespace([PROJECT_JOBS_PATH, SURVEY_PATH, SURVEYORS_PATH, TEMPLATE_PATH])


@pytest.fixture
def destinations() -> dict[DestinationCategory, DestinationFolder]:
    return {
        DestinationCategory.PROJECT_JOBS: DestinationFolder(
            DestinationCategory.PROJECT_JOBS, DestinationCategory.PROJECT_JOBS.label, PROJECT_JOBS_PATH
        ),
        DestinationCategory.SURVEY: DestinationFolder(
            DestinationCategory.SURVEY, DestinationCategory.SURVEY.label, SURVEY_PATH
        ),
        DestinationCategory.SURVEYORS: DestinationFolder(
            DestinationCategory.SURVEYORS, DestinationCategory.SURVEYORS.label, SURVEYORS_PATH
        ),
    }


@pytest.fixture
def clock() -> MutableClock:
    return MutableClock()


@pytest.fixture
def sync_context(destinations) -> SyncContext:
    """Ready context whose window opens 24 hours before START."""
    return SyncContext(
        checkpoint=Checkpoint.initial(START, timedelta(hours=24)),
        destinations=destinations,
        member_id="dbmid:operator",
        namespace_id="ns-1037",
    )


@pytest.fixture
def token_manager() -> AsyncMock:
    manager = AsyncMock()
    manager.get_valid_access_token = AsyncMock(return_value="access-token")
    return manager


@pytest.fixture
def sample_items() -> list[Item]:
    """One job per routed category plus an unrouted one."""
    created = datetime(2025, 5, 1, 8, 30, tzinfo=timezone.utc)
    return [
        Item(identifier="2000123", title="Smith &amp; Sons (Lot 4) Boundary_Survey", created_at=created),
        Item(identifier="7000456", title="Harbour View Subdivision", created_at=created),
        Item(identifier="9000549", title="Jones Residence", created_at=created),
        Item(identifier="1000001", title="Internal admin", created_at=created),
    ]
