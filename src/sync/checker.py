"""
Existence and duplicate screening against the namespace.

Two independent screens: an exact-name lookup, and a sibling scan that
catches a base job folder (``9000549 - ...``) before a suffixed variant
(``9000549_1``) of the same job gets its own folder.
"""

import re

import structlog

from src.storage.client import NamespaceClient
from src.storage.errors import StorageApiError
from src.storage.schemas import join_path

logger = structlog.get_logger(__name__)


def sibling_pattern(base_identifier: str) -> re.Pattern[str]:
    """Case-insensitive match for folder names of the form ``{base} - ...``."""
    return re.compile(rf"^{re.escape(base_identifier)}\s*-\s*", re.IGNORECASE)


class FolderChecker:
    """Read-only lookups used to keep provisioning idempotent."""

    def __init__(self, client: NamespaceClient):
        self._client = client

    async def exists(self, parent_path: str, name: str) -> bool:
        """
        True if ``parent_path/name`` exists.

        Only a successful lookup counts as existing. ``not_found`` and every
        other failure read as False, so a transient error can lead to a
        provisioning attempt; the provisioner's conflict handling absorbs it.
        """
        path = join_path(parent_path, name)
        try:
            await self._client.get_metadata(path)
            return True
        except StorageApiError as e:
            if not e.is_not_found:
                logger.warning(
                    "Existence check failed, treating as absent",
                    path=path,
                    error_summary=e.error_summary,
                    error=str(e),
                )
            return False

    async def find_siblings(self, parent_path: str, base_identifier: str) -> list[str]:
        """
        Names of folders under ``parent_path`` that belong to ``base_identifier``.

        A listing failure is logged and returns an empty list.
        """
        pattern = sibling_pattern(base_identifier)
        try:
            entries = await self._client.list_folder(parent_path)
        except StorageApiError as e:
            logger.warning(
                "Sibling listing failed",
                path=parent_path,
                base_identifier=base_identifier,
                error_summary=e.error_summary,
                error=str(e),
            )
            return []

        return [e.name for e in entries if e.is_folder and pattern.match(e.name)]
