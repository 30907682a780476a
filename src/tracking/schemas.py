"""
Data models for the WorkflowMax side of the sync.

Item is what the engine works on; Credential is what the token file holds.
"""

import time
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

SUFFIX_DELIMITER = "_"


class Item(BaseModel):
    """
    A job fetched from the tracking system.

    The identifier may carry a variant suffix (``9000549_1``) when the job
    was duplicated or renamed in WorkflowMax.
    """

    model_config = ConfigDict(frozen=True)

    identifier: str = Field(..., min_length=1, examples=["9000549", "9000549_1"])
    title: str = Field(default="", description="Job name, may contain HTML entities")
    created_at: datetime | None = None
    modified_at: datetime | None = None

    @property
    def has_suffix(self) -> bool:
        return SUFFIX_DELIMITER in self.identifier

    @property
    def base_identifier(self) -> str:
        """Identifier with any ``_N`` variant marker removed."""
        return self.identifier.split(SUFFIX_DELIMITER)[0]


class Credential(BaseModel):
    """
    OAuth token set as persisted in the token file.

    ``obtained_at`` is epoch milliseconds, the format existing token files
    already use.
    """

    model_config = ConfigDict(extra="allow")

    access_token: str | None = None
    refresh_token: str | None = None
    expires_in: int = 0
    obtained_at: int = 0

    @property
    def expires_at(self) -> datetime:
        seconds = self.obtained_at / 1000 + self.expires_in
        return datetime.fromtimestamp(seconds, tz=timezone.utc)

    def is_usable(self, now: datetime, margin_seconds: int) -> bool:
        """True if the access token is present and not within the margin of expiry."""
        if not self.access_token:
            return False
        return now.timestamp() < self.expires_at.timestamp() - margin_seconds

    @classmethod
    def from_token_response(
        cls,
        payload: dict,
        previous: "Credential | None" = None,
        obtained_at: int | None = None,
    ) -> "Credential":
        """
        Build a credential from a token endpoint response.

        Keeps the previous refresh token when the server does not rotate it.
        """
        data = dict(payload)
        if not data.get("refresh_token") and previous is not None:
            data["refresh_token"] = previous.refresh_token
        data["obtained_at"] = obtained_at if obtained_at is not None else int(time.time() * 1000)
        return cls.model_validate(data)
