"""Services that orchestrate the sync loop."""

from src.services.sync_service import SyncService

__all__ = ["SyncService"]
