"""Tests for the Dropbox team and namespace clients."""

import json

import httpx
import pytest
import respx
from prometheus_client import CollectorRegistry

from src.observability.metrics import MetricsCollector
from src.storage.client import NamespaceClient, TeamClient
from src.storage.errors import StorageApiError
from src.sync.checker import FolderChecker
from src.sync.provisioner import FolderProvisioner, ProvisionState
from src.transport.http_client import HTTPClient

API = "https://api.dropboxapi.com/2"


def _namespace(http) -> NamespaceClient:
    return NamespaceClient(http, "team-token", namespace_id="1037", member_id="dbmid:op")


def _conflict(summary: str) -> httpx.Response:
    return httpx.Response(409, json={"error_summary": summary, "error": {".tag": "path"}})


class TestTeamClient:
    """Tests for TeamClient."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_list_members_paginates(self):
        first = respx.post(f"{API}/team/members/list").mock(
            return_value=httpx.Response(200, json={
                "members": [{"profile": {"team_member_id": "dbmid:a", "email": "a@example.com", "status": {".tag": "active"}}}],
                "has_more": True,
                "cursor": "c1",
            })
        )
        second = respx.post(f"{API}/team/members/list/continue").mock(
            return_value=httpx.Response(200, json={
                "members": [
                    {"profile": {"team_member_id": "dbmid:b", "email": "b@example.com"}},
                    {"profile": {"team_member_id": "dbmid:c"}},
                ],
                "has_more": False,
            })
        )

        async with HTTPClient() as http:
            members = await TeamClient(http, "team-token").list_members()

        assert [m.team_member_id for m in members] == ["dbmid:a", "dbmid:b"]
        assert members[0].status == "active"
        assert json.loads(second.calls.last.request.content) == {"cursor": "c1"}
        headers = first.calls.last.request.headers
        assert headers["Authorization"] == "Bearer team-token"
        assert "Dropbox-API-Select-User" not in headers


class TestNamespaceClient:
    """Tests for NamespaceClient."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_operating_context_headers(self):
        route = respx.post(f"{API}/files/get_metadata").mock(
            return_value=httpx.Response(200, json={".tag": "folder", "name": "Jobs", "id": "id:1", "path_lower": "/jobs"})
        )

        async with HTTPClient() as http:
            entry = await _namespace(http).get_metadata("/jobs")

        assert entry.is_folder
        assert entry.location == "/jobs"
        headers = route.calls.last.request.headers
        assert headers["Dropbox-API-Select-User"] == "dbmid:op"
        assert json.loads(headers["Dropbox-API-Path-Root"]) == {".tag": "namespace_id", "namespace_id": "1037"}

    @pytest.mark.asyncio
    @respx.mock
    async def test_get_metadata_not_found(self):
        respx.post(f"{API}/files/get_metadata").mock(return_value=_conflict("path/not_found/.."))

        async with HTTPClient() as http:
            with pytest.raises(StorageApiError) as exc_info:
                await _namespace(http).get_metadata("/missing")

        assert exc_info.value.is_not_found
        assert exc_info.value.status_code == 409

    @pytest.mark.asyncio
    @respx.mock
    async def test_list_folder_paginates(self):
        first = respx.post(f"{API}/files/list_folder").mock(
            return_value=httpx.Response(200, json={
                "entries": [{".tag": "folder", "name": "A", "path_lower": "/a"}],
                "has_more": True,
                "cursor": "cur",
            })
        )
        respx.post(f"{API}/files/list_folder/continue").mock(
            return_value=httpx.Response(200, json={
                "entries": [{".tag": "file", "name": "b.txt", "path_lower": "/b.txt"}],
                "has_more": False,
            })
        )

        async with HTTPClient() as http:
            entries = await _namespace(http).list_folder("", include_mounted_folders=True)

        assert [(e.name, e.is_folder) for e in entries] == [("A", True), ("b.txt", False)]
        body = json.loads(first.calls.last.request.content)
        assert body["path"] == ""
        assert body["include_mounted_folders"] is True
        assert body["recursive"] is False

    @pytest.mark.asyncio
    @respx.mock
    async def test_copy_without_autorename(self):
        route = respx.post(f"{API}/files/copy_v2").mock(
            return_value=httpx.Response(200, json={"metadata": {"name": "2000123 - A", "path_lower": "/jobs/2000123 - a"}})
        )

        async with HTTPClient() as http:
            entry = await _namespace(http).copy("/template", "/jobs/2000123 - A")

        assert entry.path_lower == "/jobs/2000123 - a"
        assert json.loads(route.calls.last.request.content) == {
            "from_path": "/template",
            "to_path": "/jobs/2000123 - A",
            "autorename": False,
        }

    @pytest.mark.asyncio
    @respx.mock
    async def test_copy_conflict(self):
        respx.post(f"{API}/files/copy_v2").mock(return_value=_conflict("to/conflict/folder/.."))

        async with HTTPClient() as http:
            with pytest.raises(StorageApiError) as exc_info:
                await _namespace(http).copy("/template", "/jobs/x")

        assert exc_info.value.is_conflict
        assert exc_info.value.error_summary == "to/conflict/folder/.."

    @pytest.mark.asyncio
    @respx.mock
    async def test_create_folder(self):
        route = respx.post(f"{API}/files/create_folder_v2").mock(
            return_value=httpx.Response(200, json={"metadata": {"name": "x", "path_lower": "/jobs/x", "id": "id:9"}})
        )

        async with HTTPClient() as http:
            entry = await _namespace(http).create_folder("/jobs/x")

        assert entry.is_folder
        assert json.loads(route.calls.last.request.content) == {"path": "/jobs/x", "autorename": False}

    @pytest.mark.asyncio
    @respx.mock
    async def test_create_folder_without_metadata(self):
        respx.post(f"{API}/files/create_folder_v2").mock(return_value=httpx.Response(200, json={}))

        async with HTTPClient() as http:
            assert await _namespace(http).create_folder("/jobs/x") is None


class TestDroppedConnections:
    """A connection dropped mid-request behaves like any other storage error."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_get_metadata_raises_storage_error(self):
        respx.post(f"{API}/files/get_metadata").mock(
            side_effect=httpx.RemoteProtocolError("Server disconnected")
        )

        async with HTTPClient() as http:
            with pytest.raises(StorageApiError) as exc_info:
                await _namespace(http).get_metadata("/jobs/x")

        assert exc_info.value.status_code is None
        assert exc_info.value.is_not_found is False

    @pytest.mark.asyncio
    @respx.mock
    async def test_existence_check_fails_open(self):
        respx.post(f"{API}/files/get_metadata").mock(
            side_effect=httpx.RemoteProtocolError("Server disconnected")
        )

        async with HTTPClient() as http:
            exists = await FolderChecker(_namespace(http)).exists("/jobs", "9000549 - X")

        assert exists is False

    @pytest.mark.asyncio
    @respx.mock
    async def test_copy_failure_falls_back_to_create(self):
        respx.post(f"{API}/files/copy_v2").mock(
            side_effect=httpx.RemoteProtocolError("Server disconnected")
        )
        create = respx.post(f"{API}/files/create_folder_v2").mock(
            return_value=httpx.Response(
                200,
                json={"metadata": {"name": "x", "id": "id:2", "path_lower": "/jobs/x", "path_display": "/jobs/x"}},
            )
        )
        metrics = MetricsCollector(registry=CollectorRegistry())

        async with HTTPClient() as http:
            provisioner = FolderProvisioner(_namespace(http), "/templates/job", metrics=metrics)
            result = await provisioner.provision("/jobs", "x")

        assert result.state == ProvisionState.MATERIALIZED
        assert [a.step for a in result.attempts] == [
            ProvisionState.COPY_TEMPLATE,
            ProvisionState.CREATE_EMPTY,
        ]
        assert create.call_count == 1
