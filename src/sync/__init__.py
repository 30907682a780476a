"""Sync engine: routing, naming, duplicate screening, provisioning, cycles."""

from src.sync.checker import FolderChecker
from src.sync.engine import SyncEngine
from src.sync.errors import ProvisionFailure, SyncConfigError
from src.sync.naming import format_name
from src.sync.provisioner import FolderProvisioner, ProvisionResult, ProvisionState
from src.sync.routing import select_destination
from src.sync.schemas import (
    Checkpoint,
    CycleResult,
    CycleStatus,
    DestinationCategory,
    DestinationFolder,
    ItemOutcome,
    SyncContext,
)

__all__ = [
    "Checkpoint",
    "CycleResult",
    "CycleStatus",
    "DestinationCategory",
    "DestinationFolder",
    "FolderChecker",
    "FolderProvisioner",
    "ItemOutcome",
    "ProvisionFailure",
    "ProvisionResult",
    "ProvisionState",
    "SyncConfigError",
    "SyncContext",
    "SyncEngine",
    "format_name",
    "select_destination",
]
