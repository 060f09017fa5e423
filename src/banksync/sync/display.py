"""Projection of synced transactions for display."""

from collections.abc import Iterable, Mapping
from datetime import date, datetime
from typing import Any

DEFAULT_DISPLAY_LIMIT = 8


def _date_key(record: Mapping[str, Any]) -> str:
    value = record.get("date")
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if value is None:
        return ""
    return str(value)


def recent_transactions(
    added: Iterable[Mapping[str, Any]], limit: int = DEFAULT_DISPLAY_LIMIT
) -> list[Mapping[str, Any]]:
    """Return the most recent ``limit`` records, oldest first.

    Records are ordered by their ``date`` field (ISO dates compare correctly as
    strings). The sort is stable, so records sharing a date keep feed order.
    Records without a date sort before dated ones.
    """
    if limit < 0:
        raise ValueError("limit cannot be negative")
    if limit == 0:
        return []
    ordered = sorted(added, key=_date_key)
    return ordered[-limit:]
