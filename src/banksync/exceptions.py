"""Exception hierarchy for banksync."""

import json
from typing import Any

LOGIN_REQUIRED_CODES = frozenset({
    "ITEM_LOGIN_REQUIRED",
    "INVALID_ACCESS_TOKEN",
    "ITEM_NOT_FOUND",
    "ACCESS_NOT_GRANTED",
})


class BankSyncError(Exception):
    """Base class for all banksync errors."""


class PlaidApiError(BankSyncError):
    """A call to the Plaid API failed.

    Carries the remote error payload when Plaid returned one. The payload is
    the only thing separating a revoked credential from a transient failure.
    """

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        error_type: str | None = None,
        error_code: str | None = None,
        request_id: str | None = None,
    ):
        super().__init__(message)
        self.status = status
        self.error_type = error_type
        self.error_code = error_code
        self.request_id = request_id

    @property
    def is_login_required(self) -> bool:
        """True when the item must be re-authorized before syncing again."""
        return self.error_code in LOGIN_REQUIRED_CODES

    @classmethod
    def from_api_exception(cls, exc: Any, operation: str) -> "PlaidApiError":
        """Build an error from a ``plaid.ApiException``.

        The SDK puts the JSON error document in ``exc.body``; parsing is
        best-effort and a non-JSON body leaves the detail fields empty.
        """
        details: dict[str, Any] = {}
        body = getattr(exc, "body", None)
        if isinstance(body, (str, bytes)):
            try:
                parsed = json.loads(body)
            except ValueError:
                parsed = None
            if isinstance(parsed, dict):
                details = parsed

        error_code = details.get("error_code")
        error_message = details.get("error_message") or str(exc)
        prefix = f"{operation} failed"
        if error_code:
            prefix = f"{prefix} ({error_code})"

        return cls(
            f"{prefix}: {error_message}",
            status=getattr(exc, "status", None),
            error_type=details.get("error_type"),
            error_code=error_code,
            request_id=details.get("request_id"),
        )


class MalformedResponseError(BankSyncError):
    """A change-feed page was missing required fields."""


class SyncLimitExceededError(BankSyncError):
    """The poller issued more feed calls than its configured bound."""


class SyncCancelledError(BankSyncError):
    """The sync was cancelled before the feed was drained."""


class SyncInProgressError(BankSyncError):
    """Another sync of the same item is already running."""


class ItemNotFoundError(BankSyncError):
    """No access token is configured for the requested item."""
