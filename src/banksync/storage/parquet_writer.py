"""Write completed syncs to Parquet files.

Each completed sync produces up to two files in the item's directory:
``transactions_<timestamp>.parquet`` for added and modified records (with a
``change_type`` column) and ``removed_<timestamp>.parquet`` for removals.
"""

import json
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Any

import polars as pl

from banksync.schemas import RemovedTransactionSchema, TransactionSchema, to_rows
from banksync.sync.models import SyncResult

logger = logging.getLogger(__name__)

_NESTED_COLUMNS = ("category", "location", "personal_finance_category")


def _slug(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "_", name.lower()).strip("_") or "item"


def _flatten(row: dict[str, Any]) -> dict[str, Any]:
    # Nested payloads vary per record; store them as JSON text
    for column in _NESTED_COLUMNS:
        value = row.get(column)
        if value is not None:
            row[column] = json.dumps(value, default=str, sort_keys=True)
    return row


def transactions_frame(result: SyncResult) -> pl.DataFrame:
    """Build a DataFrame of added and modified transactions."""
    rows: list[dict[str, Any]] = []
    for change_type, records in (("added", result.added), ("modified", result.modified)):
        for row in to_rows(TransactionSchema, records):
            row["change_type"] = change_type
            rows.append(_flatten(row))
    if not rows:
        return pl.DataFrame()
    return pl.DataFrame(rows, infer_schema_length=None)


def removed_frame(result: SyncResult) -> pl.DataFrame:
    """Build a DataFrame of removed transaction IDs."""
    rows = to_rows(RemovedTransactionSchema, result.removed)
    if not rows:
        return pl.DataFrame()
    return pl.DataFrame(rows, infer_schema_length=None)


class ParquetWriter:
    """Saves sync output under ``raw_data_path/<item>/``."""

    def __init__(self, raw_data_path: Path):
        self.raw_data_path = Path(raw_data_path)

    def write(self, item_name: str, result: SyncResult) -> list[Path]:
        """Write a completed sync and return the paths written.

        Nothing is written for an empty sync. Files are staged under a
        ``.tmp`` suffix and only renamed once every write has succeeded, so a
        failed write leaves no output behind.
        """
        output_dir = self.raw_data_path / _slug(item_name)
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        staged: list[tuple[Path, Path, int]] = []

        try:
            for prefix, df in (
                ("transactions", transactions_frame(result)),
                ("removed", removed_frame(result)),
            ):
                if df.is_empty():
                    continue
                output_dir.mkdir(parents=True, exist_ok=True)
                output_path = output_dir / f"{prefix}_{stamp}.parquet"
                tmp_path = output_path.with_suffix(".parquet.tmp")
                staged.append((tmp_path, output_path, df.height))
                df.write_parquet(tmp_path)
        except Exception:
            for tmp_path, _, _ in staged:
                tmp_path.unlink(missing_ok=True)
            raise

        written: list[Path] = []
        for tmp_path, output_path, rows in staged:
            tmp_path.replace(output_path)
            logger.info(f"Saved {rows} rows to {output_path}")
            written.append(output_path)
        return written
