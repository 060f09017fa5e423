"""Incremental transaction sync: poller, data types and display projection."""

from .display import recent_transactions
from .models import (
    ChangeBatch,
    ItemContext,
    SyncCursor,
    SyncPage,
    SyncResult,
    SyncState,
)
from .poller import TransactionSyncPoller

__all__ = [
    "ChangeBatch",
    "ItemContext",
    "SyncCursor",
    "SyncPage",
    "SyncResult",
    "SyncState",
    "TransactionSyncPoller",
    "recent_transactions",
]
