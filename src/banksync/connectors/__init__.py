"""Connectors for external banking-data APIs."""

from .plaid_client import PLAID_HOSTS, PlaidClient, TokenExchange

__all__ = ["PLAID_HOSTS", "PlaidClient", "TokenExchange"]
