"""Data types for the incremental transaction sync.

Records inside a batch are opaque payloads owned by the remote service; they
are kept as plain dicts and never inspected by the poller.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from banksync.exceptions import MalformedResponseError

# None = start of history, "" = caught up but not finished
SyncCursor = str | None

Record = dict[str, Any]


class SyncState(Enum):
    """Poller states."""

    FETCHING = "fetching"
    WAITING = "waiting"
    DONE = "done"


class SyncPage(BaseModel):
    """One response from the change feed.

    Every field is required so a truncated response is rejected before any of
    its records are merged.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    next_cursor: str
    has_more: bool
    added: list[Record]
    modified: list[Record]
    removed: list[Record]

    @property
    def is_caught_up(self) -> bool:
        """The feed has nothing new yet but is not finished."""
        return self.next_cursor == ""


@dataclass
class ChangeBatch:
    """Added, modified and removed records accumulated across pages."""

    added: list[Record] = field(default_factory=list)
    modified: list[Record] = field(default_factory=list)
    removed: list[Record] = field(default_factory=list)

    def extend(self, page: SyncPage) -> None:
        """Append a page's records, preserving feed order."""
        self.added.extend(page.added)
        self.modified.extend(page.modified)
        self.removed.extend(page.removed)

    @property
    def total(self) -> int:
        return len(self.added) + len(self.modified) + len(self.removed)

    def is_empty(self) -> bool:
        return self.total == 0


@dataclass(frozen=True)
class SyncResult:
    """Outcome of one full drain of the change feed.

    ``cursor`` is the value to persist and pass as the starting cursor of the
    next sync.
    """

    changes: ChangeBatch
    cursor: SyncCursor
    calls: int = 0
    pauses: int = 0

    @property
    def added(self) -> list[Record]:
        return self.changes.added

    @property
    def modified(self) -> list[Record]:
        return self.changes.modified

    @property
    def removed(self) -> list[Record]:
        return self.changes.removed

    def summary(self) -> dict[str, int]:
        return {
            "added": len(self.changes.added),
            "modified": len(self.changes.modified),
            "removed": len(self.changes.removed),
        }


@dataclass(frozen=True)
class ItemContext:
    """Credential context for one linked item.

    Passed explicitly through the exchange, sync and read paths.
    """

    name: str
    access_token: str = field(repr=False)


def parse_sync_page(response: SyncPage | Mapping[str, Any]) -> SyncPage:
    """Validate a raw feed response.

    Raises:
        MalformedResponseError: If any required field is missing or mistyped
    """
    if isinstance(response, SyncPage):
        return response
    try:
        return SyncPage.model_validate(response)
    except ValidationError as e:
        raise MalformedResponseError(f"Malformed sync response: {e}") from e
