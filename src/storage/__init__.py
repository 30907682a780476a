"""Storage service (Dropbox Business): team and namespace clients."""

from src.storage.client import NamespaceClient, TeamClient
from src.storage.errors import FolderResolutionError, IdentityResolutionError, StorageApiError
from src.storage.schemas import FolderEntry, TeamMember, join_path, normalize_path

__all__ = [
    "FolderEntry",
    "FolderResolutionError",
    "IdentityResolutionError",
    "NamespaceClient",
    "StorageApiError",
    "TeamClient",
    "TeamMember",
    "join_path",
    "normalize_path",
]
