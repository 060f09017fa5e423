# ruff: noqa: S101,S106
"""Tests for sync orchestration: cursor commit, failure handling and linking."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest
from conftest import FakeFeed

from banksync.config import BankSyncSettings, DataConfig, SyncConfig
from banksync.connectors.plaid_client import TokenExchange
from banksync.exceptions import (
    PlaidApiError,
    SyncInProgressError,
    SyncLimitExceededError,
)
from banksync.services.sync_service import SyncService, build_sync_service
from banksync.storage.cursor_store import CursorStore
from banksync.storage.parquet_writer import ParquetWriter
from banksync.sync.models import ItemContext


@pytest.fixture
def store(tmp_path: Path) -> CursorStore:
    return CursorStore(tmp_path / "cursors.duckdb")


@pytest.fixture
def client(fake_feed: FakeFeed) -> MagicMock:
    client = MagicMock()
    client.fetch_sync_page.side_effect = fake_feed
    return client


@pytest.fixture
def service(client: MagicMock, store: CursorStore) -> SyncService:
    return SyncService(client, store, sync_config=SyncConfig(), sleep=MagicMock())


@pytest.fixture
def item() -> ItemContext:
    return ItemContext(name="chase", access_token="access-sandbox-chase")


class TestSyncItem:
    """Running one full sync and committing its cursor."""

    @pytest.mark.unit
    def test_first_sync_commits_cursor(
        self,
        service: SyncService,
        store: CursorStore,
        fake_feed: FakeFeed,
        item: ItemContext,
    ) -> None:
        for i in range(3):
            fake_feed.add(f"t{i}")

        outcome = service.sync_item(item)

        assert outcome.succeeded
        assert outcome.result is not None
        assert len(outcome.result.added) == 3
        assert outcome.run_id is not None
        assert store.get_cursor(item) == "c3"
        assert fake_feed.calls[0] == ("access-sandbox-chase", None)

    @pytest.mark.unit
    def test_second_sync_resumes_from_stored_cursor(
        self, service: SyncService, fake_feed: FakeFeed, item: ItemContext
    ) -> None:
        fake_feed.add("t0")
        service.sync_item(item)
        fake_feed.add("t1")

        outcome = service.sync_item(item)

        assert outcome.result is not None
        assert [r["transaction_id"] for r in outcome.result.added] == ["t1"]
        assert fake_feed.calls[-1] == ("access-sandbox-chase", "c1")

    @pytest.mark.unit
    def test_force_full_sync_ignores_stored_cursor(
        self, service: SyncService, fake_feed: FakeFeed, item: ItemContext
    ) -> None:
        fake_feed.add("t0")
        service.sync_item(item)

        outcome = service.sync_item(item, force_full_sync=True)

        assert outcome.result is not None
        assert len(outcome.result.added) == 1
        assert fake_feed.calls[-1][1] is None

    @pytest.mark.unit
    def test_failure_leaves_cursor_untouched(
        self,
        service: SyncService,
        store: CursorStore,
        client: MagicMock,
        fake_feed: FakeFeed,
        item: ItemContext,
    ) -> None:
        fake_feed.add("t0")
        service.sync_item(item)
        client.fetch_sync_page.side_effect = PlaidApiError("Transactions sync failed")

        with pytest.raises(PlaidApiError):
            service.sync_item(item)

        assert store.get_cursor(item) == "c1"
        assert len(store.list_runs()) == 1

    @pytest.mark.unit
    def test_login_required_is_logged_and_raised(
        self,
        service: SyncService,
        client: MagicMock,
        item: ItemContext,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        client.fetch_sync_page.side_effect = PlaidApiError(
            "Transactions sync failed", error_code="ITEM_LOGIN_REQUIRED"
        )

        with pytest.raises(PlaidApiError):
            service.sync_item(item)

        assert "re-linked" in caplog.text

    @pytest.mark.unit
    def test_concurrent_sync_of_same_item_rejected(
        self, service: SyncService, item: ItemContext
    ) -> None:
        lock = service._item_lock(item.name)  # pyright: ignore[reportPrivateUsage]
        lock.acquire()
        try:
            with pytest.raises(SyncInProgressError):
                service.sync_item(item)
        finally:
            lock.release()

    @pytest.mark.unit
    def test_lock_released_after_failure(
        self,
        service: SyncService,
        client: MagicMock,
        fake_feed: FakeFeed,
        item: ItemContext,
    ) -> None:
        client.fetch_sync_page.side_effect = ConnectionError("down")
        with pytest.raises(ConnectionError):
            service.sync_item(item)

        client.fetch_sync_page.side_effect = fake_feed
        assert service.sync_item(item).succeeded

    @pytest.mark.unit
    def test_configured_page_bound_applies(
        self, client: MagicMock, store: CursorStore, item: ItemContext
    ) -> None:
        client.fetch_sync_page.side_effect = None
        client.fetch_sync_page.return_value = {
            "next_cursor": "again",
            "has_more": True,
            "added": [],
            "modified": [],
            "removed": [],
        }
        service = SyncService(client, store, sync_config=SyncConfig(max_pages=4))

        with pytest.raises(SyncLimitExceededError):
            service.sync_item(item)

        assert client.fetch_sync_page.call_count == 4
        assert store.get_cursor(item) is None

    @pytest.mark.unit
    def test_writer_receives_result(
        self,
        client: MagicMock,
        store: CursorStore,
        fake_feed: FakeFeed,
        item: ItemContext,
        tmp_path: Path,
    ) -> None:
        fake_feed.add("t0", account_id="acc", amount=5.25)
        service = SyncService(client, store, writer=ParquetWriter(tmp_path / "raw"))

        outcome = service.sync_item(item)

        assert len(outcome.files) == 1
        assert outcome.files[0].exists()

    @pytest.mark.unit
    def test_write_failure_leaves_cursor_untouched(
        self,
        client: MagicMock,
        store: CursorStore,
        fake_feed: FakeFeed,
        item: ItemContext,
    ) -> None:
        writer = MagicMock()
        writer.write.return_value = []
        service = SyncService(client, store, writer=writer)
        fake_feed.add("t0")
        service.sync_item(item)

        fake_feed.add("t1")
        writer.write.side_effect = OSError("disk full")

        with pytest.raises(OSError, match="disk full"):
            service.sync_item(item)

        assert store.get_cursor(item) == "c1"
        assert len(store.list_runs()) == 1

        # The same changes are fetched again once the write succeeds
        writer.write.side_effect = None
        outcome = service.sync_item(item)
        assert outcome.result is not None
        assert [r["transaction_id"] for r in outcome.result.added] == ["t1"]
        assert store.get_cursor(item) == "c2"


class TestSyncAll:
    """Syncing every configured item."""

    @pytest.mark.unit
    def test_one_failure_does_not_stop_others(
        self, service: SyncService, client: MagicMock, fake_feed: FakeFeed
    ) -> None:
        fake_feed.add("t0")

        def fetch(access_token: str, cursor: str | None) -> object:
            if access_token == "bad-token":
                raise PlaidApiError("Transactions sync failed")
            return fake_feed(access_token, cursor)

        client.fetch_sync_page.side_effect = fetch
        items = [
            ItemContext(name="broken", access_token="bad-token"),
            ItemContext(name="chase", access_token="good-token"),
        ]

        outcomes = service.sync_all(items)

        assert [o.item_name for o in outcomes] == ["broken", "chase"]
        assert not outcomes[0].succeeded
        assert isinstance(outcomes[0].error, PlaidApiError)
        assert outcomes[1].succeeded


class TestRecent:
    """Display projection using the configured limit."""

    @pytest.mark.unit
    def test_recent_uses_display_limit(
        self, client: MagicMock, store: CursorStore, fake_feed: FakeFeed, item: ItemContext
    ) -> None:
        for day in range(1, 6):
            fake_feed.add(f"t{day}", date=f"2024-02-0{day}")
        service = SyncService(
            client, store, sync_config=SyncConfig(display_limit=2), sleep=MagicMock()
        )
        outcome = service.sync_item(item)
        assert outcome.result is not None

        recent = service.recent(outcome.result)

        assert [r["transaction_id"] for r in recent] == ["t4", "t5"]


class TestLinking:
    """Registering newly linked items."""

    @pytest.mark.unit
    def test_link_item_registers_token_and_resets_cursor(
        self,
        service: SyncService,
        store: CursorStore,
        client: MagicMock,
        fake_feed: FakeFeed,
    ) -> None:
        old = ItemContext(name="wells fargo", access_token="access-old")
        fake_feed.add("t0")
        service.sync_item(old)
        client.exchange_public_token.return_value = TokenExchange(
            access_token="access-new", item_id="item-1"
        )
        token_store = MagicMock()

        item, exchange = service.link_item(
            "Wells_Fargo", "public-token", token_store=token_store
        )

        assert item == ItemContext(name="wells fargo", access_token="access-new")
        assert exchange.item_id == "item-1"
        token_store.store_token.assert_called_once_with("wells fargo", "access-new")
        assert store.get_cursor(old) is None

    @pytest.mark.unit
    def test_link_sandbox_item(self, service: SyncService, client: MagicMock) -> None:
        client.create_sandbox_access_token.return_value = TokenExchange(
            access_token="access-sandbox", item_id="item-2"
        )
        token_store = MagicMock()

        item, _ = service.link_sandbox_item("demo", token_store=token_store)

        client.create_sandbox_access_token.assert_called_once_with("ins_109508")
        assert item.name == "demo"


@pytest.mark.unit
def test_build_sync_service_from_settings(tmp_path: Path, plaid_env: None) -> None:
    settings = BankSyncSettings(
        database={"path": tmp_path / "db" / "banksync.duckdb"},
        data=DataConfig(raw_data_path=tmp_path / "raw", save_raw_data=False),
        sync=SyncConfig(page_size=50),
    )

    service = build_sync_service(settings)

    assert service.client.page_size == 50
    assert service.writer is None
    assert service.store.database_path == tmp_path / "db" / "banksync.duckdb"
    assert service.sync_config.page_size == 50
    assert service.sync_config.pause_seconds == 2.0
