"""Local persistence: the cursor store and Parquet output."""

from .cursor_store import CursorStore, SyncRun, hash_token
from .parquet_writer import ParquetWriter

__all__ = ["CursorStore", "ParquetWriter", "SyncRun", "hash_token"]
