"""Plaid API client using straightforward SDK calls.

This module wraps the Plaid Python SDK with minimal logic: a credential
exchange, one call per change-feed page, and a few pass-through reads. SDK
response objects are converted to plain dicts before they leave this module,
and SDK exceptions are converted to :class:`PlaidApiError`.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from plaid.api import plaid_api
from plaid.api_client import ApiClient
from plaid.configuration import Configuration
from plaid.exceptions import ApiException
from plaid.model.accounts_balance_get_request import AccountsBalanceGetRequest
from plaid.model.accounts_get_request import AccountsGetRequest
from plaid.model.item_get_request import ItemGetRequest
from plaid.model.item_public_token_exchange_request import (
    ItemPublicTokenExchangeRequest,
)
from plaid.model.transactions_sync_request import TransactionsSyncRequest

from banksync.config import PlaidConfig
from banksync.exceptions import PlaidApiError
from banksync.sync.models import SyncCursor, SyncPage, parse_sync_page

logger = logging.getLogger(__name__)

PLAID_HOSTS = {
    "sandbox": "https://sandbox.plaid.com",
    "development": "https://development.plaid.com",
    "production": "https://production.plaid.com",
}


@dataclass(frozen=True)
class TokenExchange:
    """Result of exchanging a public token."""

    access_token: str
    item_id: str


def _to_dict(obj: Any) -> dict[str, Any]:
    if isinstance(obj, dict):
        return dict(obj)  # pyright: ignore[reportUnknownArgumentType]
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        converted = to_dict()
        if isinstance(converted, dict):
            return converted  # pyright: ignore[reportUnknownVariableType]
    raise TypeError(f"Cannot convert {type(obj).__name__} to dict")


class PlaidClient:
    """Thin client over the Plaid SDK for one set of API credentials."""

    def __init__(self, config: PlaidConfig, page_size: int = 500, api: Any = None):
        """Initialize the client.

        Args:
            config: Plaid credentials and environment
            page_size: Records requested per /transactions/sync call
            api: Optional pre-built ``PlaidApi``; built from ``config`` when omitted
        """
        if not config.client_id or not config.secret:
            raise ValueError("Plaid client_id and secret are required")

        self.config = config
        self.page_size = page_size

        if api is None:
            configuration = Configuration(
                host=PLAID_HOSTS[config.environment],
                api_key={
                    "clientId": config.client_id,
                    "secret": config.secret,
                },
            )
            api = plaid_api.PlaidApi(ApiClient(configuration))
        # Typed as Any to avoid partial-unknowns from the SDK stubs
        self.api: Any = api

        logger.debug(f"Initialized Plaid client for {config.environment} environment")

    def _call(self, operation: str, method_name: str, request: Any) -> Any:
        try:
            return getattr(self.api, method_name)(request)
        except ApiException as e:
            error = PlaidApiError.from_api_exception(e, operation)
            logger.error(f"❌ {error}")
            raise error from e

    def exchange_public_token(self, public_token: str) -> TokenExchange:
        """Exchange a Link public token for a long-lived access token.

        Args:
            public_token: Short-lived token produced by the Link flow

        Returns:
            TokenExchange: The access token and its item ID

        Raises:
            PlaidApiError: If Plaid rejects the exchange
        """
        request = ItemPublicTokenExchangeRequest(public_token=public_token)
        response = self._call("Public token exchange", "item_public_token_exchange", request)

        access_token = getattr(response, "access_token", None)
        item_id = getattr(response, "item_id", None)
        if not isinstance(access_token, str) or not access_token:
            raise PlaidApiError("Public token exchange returned no access token")

        logger.info(f"Exchanged public token for item {item_id}")
        return TokenExchange(access_token=access_token, item_id=str(item_id or ""))

    def create_sandbox_access_token(
        self,
        institution_id: str = "ins_109508",
        initial_products: Sequence[str] | None = None,
    ) -> TokenExchange:
        """Create and exchange a Sandbox public token.

        This method exists to support integration tests and local development.

        Args:
            institution_id: Plaid Sandbox institution ID
            initial_products: Product names; defaults to the configured products

        Returns:
            TokenExchange: Sandbox access token and item ID
        """
        if self.config.environment != "sandbox":
            raise ValueError("create_sandbox_access_token is only available in sandbox")

        # Sandbox-only models
        from plaid.model.products import Products
        from plaid.model.sandbox_public_token_create_request import (
            SandboxPublicTokenCreateRequest,
        )

        products = list(initial_products or self.config.products)
        request = SandboxPublicTokenCreateRequest(
            institution_id=institution_id,
            initial_products=[Products(p) for p in products],
        )

        logger.info("Creating Plaid sandbox public token…")
        response = self._call(
            "Sandbox public token creation", "sandbox_public_token_create", request
        )
        public_token = getattr(response, "public_token", None)
        if not isinstance(public_token, str) or not public_token:
            raise PlaidApiError("Sandbox public token creation returned no token")

        return self.exchange_public_token(public_token)

    def fetch_sync_page(self, access_token: str, cursor: SyncCursor) -> SyncPage:
        """Fetch one page of the /transactions/sync change feed.

        Args:
            access_token: Item access token
            cursor: Cursor from the previous page, or None for the start of history

        Returns:
            SyncPage: The page with records converted to plain dicts

        Raises:
            PlaidApiError: If the call fails
            MalformedResponseError: If the response lacks required fields
        """
        params: dict[str, Any] = {"access_token": access_token, "count": self.page_size}
        # The SDK rejects a None cursor; omitting it means start of history
        if cursor is not None:
            params["cursor"] = cursor

        response = self._call(
            "Transactions sync", "transactions_sync", TransactionsSyncRequest(**params)
        )
        return parse_sync_page(_to_dict(response))

    def get_accounts(self, access_token: str) -> list[dict[str, Any]]:
        """Fetch the item's accounts (cached balances)."""
        response = self._call(
            "Accounts get", "accounts_get", AccountsGetRequest(access_token=access_token)
        )
        return [_to_dict(a) for a in getattr(response, "accounts", [])]

    def get_balances(self, access_token: str) -> list[dict[str, Any]]:
        """Fetch accounts with real-time balances."""
        response = self._call(
            "Balance get",
            "accounts_balance_get",
            AccountsBalanceGetRequest(access_token=access_token),
        )
        return [_to_dict(a) for a in getattr(response, "accounts", [])]

    def get_item(self, access_token: str) -> dict[str, Any]:
        """Fetch item metadata (institution, products, status)."""
        response = self._call(
            "Item get", "item_get", ItemGetRequest(access_token=access_token)
        )
        return _to_dict(getattr(response, "item", {}))
