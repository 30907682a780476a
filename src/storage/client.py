"""
Dropbox Business API clients.

TeamClient talks to the team endpoints with the team token alone.
NamespaceClient performs file operations inside the team namespace on
behalf of one team member: every call carries the
``Dropbox-API-Select-User`` and ``Dropbox-API-Path-Root`` headers.
"""

import json
from typing import Any

import structlog

from src.storage.errors import StorageApiError
from src.storage.schemas import FolderEntry, TeamMember
from src.transport.http_client import HTTPClient, HTTPClientError

logger = structlog.get_logger(__name__)

DEFAULT_API_URL = "https://api.dropboxapi.com/2"


class _DropboxClient:
    """Shared request plumbing for the Dropbox RPC endpoints."""

    def __init__(self, http: HTTPClient, token: str, api_url: str = DEFAULT_API_URL):
        self._http = http
        self._token = token
        self._api_url = api_url.rstrip("/")

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token}",
            "Content-Type": "application/json",
        }

    async def _call(self, endpoint: str, body: dict[str, Any]) -> dict[str, Any]:
        """
        POST to an RPC endpoint and return the decoded JSON body.

        Raises:
            StorageApiError: Any HTTP-level failure, with the Dropbox
                error_summary attached when one was returned
        """
        try:
            response = await self._http.post(
                f"{self._api_url}/{endpoint}",
                headers=self._headers(),
                json_body=body,
            )
        except HTTPClientError as e:
            raise StorageApiError.from_http_error(endpoint, e) from e

        try:
            return response.json()
        except ValueError as e:
            raise StorageApiError(f"{endpoint} returned a non-JSON body") from e


class TeamClient(_DropboxClient):
    """Team-level endpoints (no user or namespace selection)."""

    async def list_members(self, limit: int = 100) -> list[TeamMember]:
        """List all team members, following pagination."""
        data = await self._call("team/members/list", {"limit": limit})
        members = self._parse_members(data)

        while data.get("has_more") and data.get("cursor"):
            data = await self._call("team/members/list/continue", {"cursor": data["cursor"]})
            members.extend(self._parse_members(data))

        return members

    @staticmethod
    def _parse_members(data: dict[str, Any]) -> list[TeamMember]:
        members = []
        for raw in data.get("members") or []:
            profile = raw.get("profile") or {}
            if not (profile.get("team_member_id") and profile.get("email")):
                continue
            status = profile.get("status")
            members.append(
                TeamMember(
                    team_member_id=profile["team_member_id"],
                    email=profile["email"],
                    status=status.get(".tag") if isinstance(status, dict) else status,
                )
            )
        return members


class NamespaceClient(_DropboxClient):
    """
    File operations inside a team namespace, as a selected team member.

    Usage:
        client = NamespaceClient(http, token, namespace_id="1037...", member_id="dbmid:...")
        entries = await client.list_folder("")
    """

    def __init__(
        self,
        http: HTTPClient,
        token: str,
        namespace_id: str,
        member_id: str,
        api_url: str = DEFAULT_API_URL,
    ):
        super().__init__(http, token, api_url)
        self._namespace_id = namespace_id
        self._member_id = member_id

    @property
    def namespace_id(self) -> str:
        return self._namespace_id

    @property
    def member_id(self) -> str:
        return self._member_id

    def _headers(self) -> dict[str, str]:
        headers = super()._headers()
        headers["Dropbox-API-Select-User"] = self._member_id
        headers["Dropbox-API-Path-Root"] = json.dumps(
            {".tag": "namespace_id", "namespace_id": self._namespace_id}
        )
        return headers

    async def get_metadata(self, path: str) -> FolderEntry:
        """Metadata for one path. Raises StorageApiError (``path/not_found``) if absent."""
        data = await self._call(
            "files/get_metadata",
            {"path": path, "include_deleted": False},
        )
        return FolderEntry.model_validate(data)

    async def list_folder(
        self,
        path: str,
        include_mounted_folders: bool = False,
    ) -> list[FolderEntry]:
        """Immediate children of ``path``, following pagination."""
        body: dict[str, Any] = {
            "path": path,
            "recursive": False,
            "include_deleted": False,
        }
        if include_mounted_folders:
            body["include_mounted_folders"] = True

        data = await self._call("files/list_folder", body)
        entries = [FolderEntry.model_validate(e) for e in data.get("entries") or []]

        while data.get("has_more") and data.get("cursor"):
            data = await self._call("files/list_folder/continue", {"cursor": data["cursor"]})
            entries.extend(FolderEntry.model_validate(e) for e in data.get("entries") or [])

        return entries

    async def copy(self, from_path: str, to_path: str) -> FolderEntry | None:
        """
        Copy ``from_path`` to ``to_path`` without autorename.

        Returns the new entry, or None if the response carried no metadata.
        """
        data = await self._call(
            "files/copy_v2",
            {"from_path": from_path, "to_path": to_path, "autorename": False},
        )
        return self._metadata(data)

    async def create_folder(self, path: str) -> FolderEntry | None:
        """
        Create an empty folder at ``path`` without autorename.

        Returns the new entry, or None if the response carried no metadata.
        """
        data = await self._call(
            "files/create_folder_v2",
            {"path": path, "autorename": False},
        )
        return self._metadata(data)

    @staticmethod
    def _metadata(data: dict[str, Any]) -> FolderEntry | None:
        raw = data.get("metadata") if isinstance(data, dict) else None
        if not raw:
            return None
        raw = dict(raw)
        raw.setdefault(".tag", "folder")
        return FolderEntry.model_validate(raw)
