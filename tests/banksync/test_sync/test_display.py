# ruff: noqa: S101
"""Tests for the recent-transactions projection."""

import random
from datetime import date, timedelta

import pytest

from banksync.sync.display import DEFAULT_DISPLAY_LIMIT, recent_transactions


@pytest.mark.unit
def test_returns_most_recent_eight_in_ascending_order() -> None:
    start = date(2024, 1, 1)
    records = [
        {"transaction_id": f"t{i}", "date": (start + timedelta(days=i)).isoformat()}
        for i in range(20)
    ]
    random.Random(7).shuffle(records)

    recent = recent_transactions(records)

    assert len(recent) == DEFAULT_DISPLAY_LIMIT
    assert [r["transaction_id"] for r in recent] == [f"t{i}" for i in range(12, 20)]
    dates = [r["date"] for r in recent]
    assert dates == sorted(dates)


@pytest.mark.unit
def test_fewer_records_than_limit_are_all_returned_sorted() -> None:
    records = [
        {"transaction_id": "b", "date": "2024-03-02"},
        {"transaction_id": "a", "date": "2024-03-01"},
        {"transaction_id": "c", "date": "2024-02-28"},
    ]

    recent = recent_transactions(records)

    assert [r["transaction_id"] for r in recent] == ["c", "a", "b"]


@pytest.mark.unit
def test_accepts_date_objects() -> None:
    records = [
        {"transaction_id": "late", "date": date(2024, 5, 2)},
        {"transaction_id": "early", "date": date(2024, 5, 1)},
    ]

    assert [r["transaction_id"] for r in recent_transactions(records, 1)] == ["late"]


@pytest.mark.unit
def test_same_date_keeps_feed_order() -> None:
    records = [{"transaction_id": f"t{i}", "date": "2024-01-01"} for i in range(4)]

    recent = recent_transactions(records, limit=3)

    assert [r["transaction_id"] for r in recent] == ["t1", "t2", "t3"]


@pytest.mark.unit
def test_undated_records_sort_first() -> None:
    records = [
        {"transaction_id": "dated", "date": "2024-01-01"},
        {"transaction_id": "undated"},
    ]

    recent = recent_transactions(records)

    assert [r["transaction_id"] for r in recent] == ["undated", "dated"]


@pytest.mark.unit
def test_empty_input_and_zero_limit() -> None:
    assert recent_transactions([]) == []
    assert recent_transactions([{"date": "2024-01-01"}], limit=0) == []


@pytest.mark.unit
def test_negative_limit_is_rejected() -> None:
    with pytest.raises(ValueError):
        recent_transactions([], limit=-1)
