"""Data models for Dropbox metadata and team members."""

from pydantic import BaseModel, ConfigDict, Field


class FolderEntry(BaseModel):
    """A file or folder metadata entry as returned by the files endpoints."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    tag: str = Field(default="folder", alias=".tag")
    name: str
    id: str | None = None
    path_lower: str | None = None
    path_display: str | None = None

    @property
    def is_folder(self) -> bool:
        return self.tag == "folder"

    @property
    def location(self) -> str:
        """Path used to address the entry in later calls."""
        return self.path_lower or self.id or ""


class TeamMember(BaseModel):
    """A Dropbox Business team member profile."""

    model_config = ConfigDict(extra="ignore")

    team_member_id: str
    email: str
    status: str | None = None


def join_path(parent: str, name: str) -> str:
    """Join a Dropbox parent path and a child name."""
    return f"{parent.rstrip('/')}/{name}"


def normalize_path(path: str) -> str:
    """
    Make a configured path absolute within the namespace.

    Dropbox rejects relative paths; ``id:`` and ``ns:`` forms pass through.
    """
    path = path.strip()
    if not path or path.startswith(("/", "id:", "ns:")):
        return path
    return f"/{path}"
