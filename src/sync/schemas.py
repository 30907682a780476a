"""
Data models for the sync engine.

SyncContext carries everything a cycle needs that was resolved at startup
(destinations, operating identity) plus the mutable checkpoint, so the
engine and its collaborators never reach for module-level state.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum


class DestinationCategory(str, Enum):
    """The three team folders jobs are filed under."""

    PROJECT_JOBS = "project_jobs"
    SURVEY = "survey"
    SURVEYORS = "surveyors"

    @property
    def label(self) -> str:
        return CATEGORY_LABELS[self]


CATEGORY_LABELS = {
    DestinationCategory.PROJECT_JOBS: "ISA PROJECT JOBS (2-5)",
    DestinationCategory.SURVEY: "ISA SURVEY PTY LTD (7-8)",
    DestinationCategory.SURVEYORS: "ISA SURVEYORS PTY LTD (6 or 9)",
}


@dataclass(frozen=True)
class DestinationFolder:
    """A resolved destination: category plus the Dropbox path to file into."""

    category: DestinationCategory
    label: str
    path: str


@dataclass
class Checkpoint:
    """
    Exclusive lower bound of the next fetch window.

    Held in memory only; a restart re-opens the look-back window.
    """

    last_checked: datetime

    @classmethod
    def initial(cls, now: datetime, lookback: timedelta) -> "Checkpoint":
        return cls(last_checked=now - lookback)

    def advance(self, to: datetime) -> None:
        """Move the bound forward to ``to``; an earlier time leaves it unchanged."""
        if to > self.last_checked:
            self.last_checked = to


@dataclass
class SyncContext:
    """State resolved at startup and threaded through every cycle."""

    checkpoint: Checkpoint
    destinations: dict[DestinationCategory, DestinationFolder] = field(default_factory=dict)
    member_id: str | None = None
    namespace_id: str | None = None

    @property
    def ready(self) -> bool:
        """Both preconditions for running a cycle hold."""
        return bool(self.destinations) and bool(self.member_id)


class ItemOutcome(str, Enum):
    """What happened to one item during a cycle."""

    PROVISIONED = "provisioned"
    ROUTE_SKIP = "route_skip"
    DUPLICATE_SKIP = "duplicate_skip"
    BATCH_DUPLICATE = "batch_duplicate"
    PROVISION_FAILED = "provision_failed"


class CycleStatus(str, Enum):
    COMPLETED = "completed"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class ItemResult:
    identifier: str
    outcome: ItemOutcome
    folder_name: str | None = None
    path: str | None = None
    detail: str | None = None


@dataclass
class CycleResult:
    """Summary of one polling cycle."""

    status: CycleStatus
    window_start: datetime
    window_end: datetime | None = None
    items: list[ItemResult] = field(default_factory=list)
    error: str | None = None

    def count(self, outcome: ItemOutcome) -> int:
        return sum(1 for r in self.items if r.outcome == outcome)

    def summary(self) -> dict:
        return {
            "status": self.status.value,
            "window_start": self.window_start.isoformat(),
            "window_end": self.window_end.isoformat() if self.window_end else None,
            "items": len(self.items),
            "outcomes": {o.value: self.count(o) for o in ItemOutcome if self.count(o)},
            "error": self.error,
        }
