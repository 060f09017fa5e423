"""Sync orchestration: credential context, poller, cursor store and output.

``SyncService.sync_item`` is the caller-facing "run one full sync" operation.
It reads the item's last committed cursor, drains the change feed, and only
when the sync completes writes the output and commits the new cursor. A
failure anywhere leaves the store untouched.
"""

import logging
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from banksync.config import BankSyncSettings, SyncConfig
from banksync.connectors.plaid_client import PlaidClient, TokenExchange
from banksync.exceptions import PlaidApiError, SyncInProgressError
from banksync.storage.cursor_store import CursorStore
from banksync.storage.parquet_writer import ParquetWriter
from banksync.sync.display import recent_transactions
from banksync.sync.models import ItemContext, SyncResult
from banksync.sync.poller import TransactionSyncPoller
from banksync.utils.secrets_manager import AccessTokenStore, normalize_item_name

logger = logging.getLogger(__name__)


@dataclass
class ItemSyncOutcome:
    """What happened to one item during a sync run."""

    item_name: str
    result: SyncResult | None = None
    error: Exception | None = None
    run_id: str | None = None
    files: list[Path] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.result is not None


class SyncService:
    """Runs transaction syncs for linked items."""

    def __init__(
        self,
        client: PlaidClient,
        store: CursorStore,
        sync_config: SyncConfig | None = None,
        writer: ParquetWriter | None = None,
        sleep: Callable[[float], None] | None = None,
    ):
        self.client = client
        self.store = store
        self.sync_config = sync_config or SyncConfig()
        self.writer = writer
        self._sleep = sleep
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _item_lock(self, item_name: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(item_name, threading.Lock())

    def _make_poller(
        self, max_pages: int | None, cancel_event: threading.Event | None
    ) -> TransactionSyncPoller:
        kwargs: dict[str, Any] = {}
        if self._sleep is not None:
            kwargs["sleep"] = self._sleep
        return TransactionSyncPoller(
            fetch_page=self.client.fetch_sync_page,
            pause_seconds=self.sync_config.pause_seconds,
            max_pages=max_pages if max_pages is not None else self.sync_config.max_pages,
            cancel_event=cancel_event,
            **kwargs,
        )

    def sync_item(
        self,
        item: ItemContext,
        force_full_sync: bool = False,
        max_pages: int | None = None,
        cancel_event: threading.Event | None = None,
    ) -> ItemSyncOutcome:
        """Run one full sync for an item and commit its cursor.

        Args:
            item: Credential context for the item
            force_full_sync: Ignore the stored cursor and start from the beginning
            max_pages: Override the configured bound on feed calls
            cancel_event: Optional event that cancels the sync when set

        Returns:
            ItemSyncOutcome: The result, run ID and files written

        Raises:
            SyncInProgressError: If the item is already being synced
            Exception: Any sync failure; nothing is persisted in that case
        """
        lock = self._item_lock(item.name)
        if not lock.acquire(blocking=False):
            raise SyncInProgressError(f"A sync for {item.name} is already running")

        try:
            started_at = datetime.now()
            cursor = None if force_full_sync else self.store.get_cursor(item)
            mode = "FULL" if cursor is None else "INCREMENTAL"
            logger.info(f"Starting {mode} sync for {item.name}")

            poller = self._make_poller(max_pages, cancel_event)
            try:
                result = poller.run(item.access_token, cursor)
            except PlaidApiError as e:
                if e.is_login_required:
                    logger.warning(
                        f"⚠️  {item.name} needs to be re-linked before it can sync again"
                    )
                raise

            files: list[Path] = []
            if self.writer is not None:
                files = self.writer.write(item.name, result)

            run_id = self.store.save_result(item, result, started_at)
            summary = result.summary()
            logger.info(
                f"Synced {item.name}: +{summary['added']} ~{summary['modified']} "
                f"-{summary['removed']} in {result.calls} call(s)"
            )
            return ItemSyncOutcome(
                item_name=item.name, result=result, run_id=run_id, files=files
            )
        finally:
            lock.release()

    def sync_all(
        self,
        items: Iterable[ItemContext],
        force_full_sync: bool = False,
        max_pages: int | None = None,
    ) -> list[ItemSyncOutcome]:
        """Sync items one after another; one item's failure does not stop the rest."""
        outcomes: list[ItemSyncOutcome] = []
        for item in items:
            try:
                outcomes.append(
                    self.sync_item(item, force_full_sync=force_full_sync, max_pages=max_pages)
                )
            except Exception as e:
                logger.error(f"❌ Failed to sync {item.name}: {e}")
                outcomes.append(ItemSyncOutcome(item_name=item.name, error=e))
        return outcomes

    def recent(self, result: SyncResult) -> list[Any]:
        """Most recent added transactions, oldest first."""
        return recent_transactions(result.added, self.sync_config.display_limit)

    def link_item(
        self,
        item_name: str,
        public_token: str,
        token_store: AccessTokenStore | None = None,
    ) -> tuple[ItemContext, TokenExchange]:
        """Exchange a public token and register the resulting item.

        Any cursor stored under the same item name is dropped so the new
        credential starts from the beginning of its history.
        """
        exchange = self.client.exchange_public_token(public_token)
        return self._register(item_name, exchange, token_store), exchange

    def link_sandbox_item(
        self,
        item_name: str,
        institution_id: str = "ins_109508",
        token_store: AccessTokenStore | None = None,
    ) -> tuple[ItemContext, TokenExchange]:
        """Create a Sandbox item and register it like a linked one."""
        exchange = self.client.create_sandbox_access_token(institution_id)
        return self._register(item_name, exchange, token_store), exchange

    def _register(
        self,
        item_name: str,
        exchange: TokenExchange,
        token_store: AccessTokenStore | None,
    ) -> ItemContext:
        name = normalize_item_name(item_name)
        (token_store or AccessTokenStore()).store_token(name, exchange.access_token)
        self.store.reset_cursor(name)
        return ItemContext(name=name, access_token=exchange.access_token)


def build_sync_service(settings: BankSyncSettings) -> SyncService:
    """Build a service from application settings."""
    client = PlaidClient(settings.plaid, page_size=settings.sync.page_size)
    store = CursorStore(settings.database.path)
    writer = ParquetWriter(settings.data.raw_data_path) if settings.data.save_raw_data else None
    return SyncService(client, store, sync_config=settings.sync, writer=writer)
