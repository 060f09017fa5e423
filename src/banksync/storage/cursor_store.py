"""DuckDB-backed store for sync cursors and sync run history.

The cursor saved for an item is the resume point for its next sync. It is only
written after a sync completes, together with a row describing the run, so a
failed sync leaves the previous cursor in place.

Access tokens are never stored; rows are keyed by the item name and a
truncated SHA-256 hash of the token, so re-linking an item with a new token
starts a fresh history.
"""

import hashlib
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any
from uuid import uuid4

import duckdb

from banksync.sync.models import ItemContext, SyncCursor, SyncResult

logger = logging.getLogger(__name__)

_SCHEMA = (
    """
CREATE TABLE IF NOT EXISTS sync_cursors (
    item_name VARCHAR,
    token_hash VARCHAR,
    next_cursor VARCHAR,
    updated_at TIMESTAMP,
    PRIMARY KEY (item_name, token_hash)
)
""",
    """
CREATE TABLE IF NOT EXISTS sync_runs (
    run_id VARCHAR PRIMARY KEY,
    item_name VARCHAR,
    token_hash VARCHAR,
    started_at TIMESTAMP,
    finished_at TIMESTAMP,
    added_count INTEGER,
    modified_count INTEGER,
    removed_count INTEGER,
    feed_calls INTEGER,
    next_cursor VARCHAR
)
""",
)


def hash_token(access_token: str) -> str:
    """Hash a token for lookup (don't store raw tokens)."""
    return hashlib.sha256(access_token.encode()).hexdigest()[:16]


@dataclass(frozen=True)
class SyncRun:
    """One completed sync as recorded in the store."""

    run_id: str
    item_name: str
    started_at: datetime
    finished_at: datetime
    added_count: int
    modified_count: int
    removed_count: int
    feed_calls: int


class CursorStore:
    """Persists the last committed cursor per item."""

    def __init__(self, database_path: Path | str):
        self.database_path = Path(database_path)
        self.database_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            for statement in _SCHEMA:
                conn.execute(statement)

    def _connect(self) -> duckdb.DuckDBPyConnection:
        return duckdb.connect(str(self.database_path))

    def get_cursor(self, item: ItemContext) -> SyncCursor:
        """Return the cursor from the item's last completed sync, or None."""
        with self._connect() as conn:
            row = conn.execute(
                """
                SELECT next_cursor FROM sync_cursors
                WHERE item_name = ? AND token_hash = ?
                """,
                [item.name, hash_token(item.access_token)],
            ).fetchone()
        return row[0] if row else None

    def save_result(
        self, item: ItemContext, result: SyncResult, started_at: datetime
    ) -> str:
        """Commit a completed sync's cursor and record the run.

        Both writes happen in one transaction.

        Returns:
            str: The run ID
        """
        run_id = str(uuid4())
        token_hash = hash_token(item.access_token)
        now = datetime.now()
        summary = result.summary()

        with self._connect() as conn:
            conn.execute("BEGIN TRANSACTION")
            try:
                conn.execute(
                    """
                    INSERT OR REPLACE INTO sync_cursors
                    (item_name, token_hash, next_cursor, updated_at)
                    VALUES (?, ?, ?, ?)
                    """,
                    [item.name, token_hash, result.cursor, now],
                )
                conn.execute(
                    """
                    INSERT INTO sync_runs
                    (run_id, item_name, token_hash, started_at, finished_at,
                     added_count, modified_count, removed_count, feed_calls, next_cursor)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    [
                        run_id,
                        item.name,
                        token_hash,
                        started_at,
                        now,
                        summary["added"],
                        summary["modified"],
                        summary["removed"],
                        result.calls,
                        result.cursor,
                    ],
                )
                conn.execute("COMMIT")
            except Exception:
                conn.execute("ROLLBACK")
                raise

        logger.debug(f"Saved cursor for {item.name} (run {run_id})")
        return run_id

    def reset_cursor(self, item_name: str) -> int:
        """Forget every stored cursor for an item.

        Used when an item's credential is revoked or a full re-sync is wanted.

        Returns:
            int: Number of cursors removed
        """
        with self._connect() as conn:
            row = conn.execute(
                "SELECT count(*) FROM sync_cursors WHERE item_name = ?", [item_name]
            ).fetchone()
            conn.execute("DELETE FROM sync_cursors WHERE item_name = ?", [item_name])
        removed = int(row[0]) if row else 0
        logger.info(f"Reset {removed} cursor(s) for {item_name}")
        return removed

    def list_runs(self, item_name: str | None = None, limit: int = 20) -> list[SyncRun]:
        """Return recent sync runs, newest first."""
        query = """
            SELECT run_id, item_name, started_at, finished_at,
                   added_count, modified_count, removed_count, feed_calls
            FROM sync_runs
        """
        params: list[Any] = []
        if item_name is not None:
            query += " WHERE item_name = ?"
            params.append(item_name)
        query += " ORDER BY finished_at DESC LIMIT ?"
        params.append(limit)

        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [SyncRun(*row) for row in rows]
