"""Incremental sync poller for cursor-based change feeds.

The poller drains a paginated change feed starting from a cursor:

1. FETCHING: request a page with the current cursor.
2. If the page's ``next_cursor`` is the empty string the feed has nothing new
   yet but is not finished. Move to WAITING, pause, then fetch again with the
   same cursor.
3. Otherwise merge the page and advance the cursor to ``next_cursor``.
4. Repeat while ``has_more`` is true; stop (DONE) when it is false.

Any failure from the feed aborts the sync. The accumulated records are
discarded and nothing partial is returned, so the caller's last persisted
cursor stays the resume point.
"""

import logging
import threading
import time
from collections.abc import Callable, Mapping
from typing import Any

from banksync.exceptions import SyncCancelledError, SyncLimitExceededError
from banksync.sync.models import (
    ChangeBatch,
    SyncCursor,
    SyncPage,
    SyncResult,
    SyncState,
    parse_sync_page,
)

logger = logging.getLogger(__name__)

DEFAULT_PAUSE_SECONDS = 2.0

PageFetcher = Callable[[str, SyncCursor], SyncPage | Mapping[str, Any]]


class TransactionSyncPoller:
    """Drains a change feed into a single :class:`SyncResult`.

    Args:
        fetch_page: Callable taking ``(access_token, cursor)`` and returning a
            :class:`SyncPage` or a mapping with the same fields.
        pause_seconds: Delay applied when the feed reports it is caught up.
        max_pages: Optional bound on feed calls per sync. ``None`` keeps the
            loop unbounded.
        sleep: Pause function, replaceable in tests.
        cancel_event: Optional event checked before every call and used to
            interrupt pauses.
    """

    def __init__(
        self,
        fetch_page: PageFetcher,
        pause_seconds: float = DEFAULT_PAUSE_SECONDS,
        max_pages: int | None = None,
        sleep: Callable[[float], None] = time.sleep,
        cancel_event: threading.Event | None = None,
    ):
        if pause_seconds < 0:
            raise ValueError("pause_seconds cannot be negative")
        if max_pages is not None and max_pages < 1:
            raise ValueError("max_pages must be at least 1")

        self.fetch_page = fetch_page
        self.pause_seconds = pause_seconds
        self.max_pages = max_pages
        self.sleep = sleep
        self.cancel_event = cancel_event
        self.state = SyncState.DONE

    def run(self, access_token: str, cursor: SyncCursor = None) -> SyncResult:
        """Run one full sync from ``cursor`` until the feed reports no more pages.

        Args:
            access_token: Opaque credential for the feed
            cursor: Cursor from the previous completed sync, or None for a
                first-ever sync

        Returns:
            SyncResult: All pages merged plus the cursor to persist

        Raises:
            MalformedResponseError: If a page is missing required fields
            SyncLimitExceededError: If ``max_pages`` is set and exceeded
            SyncCancelledError: If the cancel event is set mid-sync
            Exception: Any error raised by ``fetch_page`` propagates unchanged
        """
        changes = ChangeBatch()
        calls = 0
        pauses = 0
        self.state = SyncState.FETCHING

        try:
            while True:
                self._check_cancelled()
                if self.max_pages is not None and calls >= self.max_pages:
                    raise SyncLimitExceededError(
                        f"Sync stopped after {calls} feed calls (max_pages={self.max_pages})"
                    )

                page = parse_sync_page(self.fetch_page(access_token, cursor))
                calls += 1

                if page.is_caught_up:
                    self.state = SyncState.WAITING
                    pauses += 1
                    logger.debug(
                        f"Feed caught up at call {calls}; pausing {self.pause_seconds}s"
                    )
                    self._pause()
                    self.state = SyncState.FETCHING
                    continue

                changes.extend(page)
                cursor = page.next_cursor
                logger.debug(
                    f"Page {calls}: +{len(page.added)} ~{len(page.modified)} "
                    f"-{len(page.removed)} has_more={page.has_more}"
                )

                if not page.has_more:
                    break
        finally:
            self.state = SyncState.DONE

        return SyncResult(changes=changes, cursor=cursor, calls=calls, pauses=pauses)

    def _pause(self) -> None:
        if self.cancel_event is None:
            self.sleep(self.pause_seconds)
            return
        if self.cancel_event.wait(self.pause_seconds):
            raise SyncCancelledError("Sync cancelled while waiting for new data")

    def _check_cancelled(self) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise SyncCancelledError("Sync cancelled")
