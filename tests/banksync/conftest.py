"""Shared pytest fixtures for banksync tests."""

from collections.abc import Generator
from typing import Any

import pytest

from banksync.config import clear_settings_cache, set_current_profile


class FakeFeed:
    """In-memory change feed that tracks cursor state like the remote service.

    Cursors are ``"c<offset>"`` where offset is the number of change events
    already delivered. Events are appended with :meth:`add`, :meth:`modify`
    and :meth:`remove`.
    """

    def __init__(self, page_size: int = 2):
        self.page_size = page_size
        self.events: list[tuple[str, dict[str, Any]]] = []
        self.calls: list[tuple[str, str | None]] = []
        self.caught_up_responses = 0

    def add(self, transaction_id: str, date: str = "2024-01-01", **extra: Any) -> None:
        self.events.append((
            "added",
            {"transaction_id": transaction_id, "date": date, **extra},
        ))

    def modify(self, transaction_id: str, date: str = "2024-01-01", **extra: Any) -> None:
        self.events.append((
            "modified",
            {"transaction_id": transaction_id, "date": date, **extra},
        ))

    def remove(self, transaction_id: str) -> None:
        self.events.append(("removed", {"transaction_id": transaction_id}))

    def __call__(self, access_token: str, cursor: str | None) -> dict[str, Any]:
        self.calls.append((access_token, cursor))

        if self.caught_up_responses > 0:
            self.caught_up_responses -= 1
            return {
                "next_cursor": "",
                "has_more": True,
                "added": [],
                "modified": [],
                "removed": [],
            }

        offset = int(cursor[1:]) if cursor else 0
        page = self.events[offset : offset + self.page_size]
        end = offset + len(page)
        return {
            "next_cursor": f"c{end}",
            "has_more": end < len(self.events),
            "added": [r for kind, r in page if kind == "added"],
            "modified": [r for kind, r in page if kind == "modified"],
            "removed": [r for kind, r in page if kind == "removed"],
        }


@pytest.fixture
def fake_feed() -> FakeFeed:
    """An empty in-memory change feed."""
    return FakeFeed()


@pytest.fixture
def plaid_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Dummy Plaid API keys so settings validate."""
    monkeypatch.setenv("PLAID_CLIENT_ID", "dummy-client")
    monkeypatch.setenv("PLAID_SECRET", "dummy-secret")
    monkeypatch.setenv("PLAID_ENV", "sandbox")


@pytest.fixture(autouse=True)
def clean_profile_state() -> Generator[None, None, None]:
    """Reset the settings cache and profile around every test."""
    clear_settings_cache()
    set_current_profile("test")

    yield

    clear_settings_cache()
    set_current_profile("test")
