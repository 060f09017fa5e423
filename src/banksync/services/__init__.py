"""Application services composed from the connector, poller and store."""

from .sync_service import ItemSyncOutcome, SyncService, build_sync_service

__all__ = ["ItemSyncOutcome", "SyncService", "build_sync_service"]
