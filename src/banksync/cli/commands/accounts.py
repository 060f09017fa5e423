"""Pass-through read commands: accounts, balances and item details."""

import json
import logging
from typing import Any

import typer

from banksync.config import get_settings
from banksync.connectors.plaid_client import PlaidClient
from banksync.schemas import AccountSchema
from banksync.utils.secrets_manager import AccessTokenStore

app = typer.Typer(help="Read account data for a linked item")
item_app = typer.Typer(help="Inspect a linked item")
logger = logging.getLogger(__name__)

ItemOption = typer.Option(..., "--item", "-i", help="Linked item name")


def _client() -> PlaidClient:
    settings = get_settings()
    return PlaidClient(settings.plaid, page_size=settings.sync.page_size)


def _parse_accounts(raw_accounts: list[dict[str, Any]]) -> list[AccountSchema]:
    return [AccountSchema.model_validate(raw) for raw in raw_accounts]


def _log_accounts(accounts: list[AccountSchema]) -> None:
    for account in accounts:
        balances = account.balances
        currency = balances.iso_currency_code or balances.unofficial_currency_code or ""
        mask = f" ••{account.mask}" if account.mask else ""
        logger.info(
            f"  {account.name}{mask} [{account.type}/{account.subtype or '-'}] "
            f"current={balances.current} available={balances.available} {currency}"
        )


@app.command("list")
def list_accounts(item: str = ItemOption) -> None:
    """List the item's accounts with cached balances."""
    try:
        context = AccessTokenStore().get_item(item)
        accounts = _parse_accounts(_client().get_accounts(context.access_token))
    except Exception as e:
        logger.error(f"❌ Could not fetch accounts: {e}")
        raise typer.Exit(1) from e

    logger.info(f"🏦 {len(accounts)} account(s) for {context.name}")
    _log_accounts(accounts)


@app.command("balances")
def balances(item: str = ItemOption) -> None:
    """Fetch real-time balances for the item's accounts."""
    try:
        context = AccessTokenStore().get_item(item)
        accounts = _parse_accounts(_client().get_balances(context.access_token))
    except Exception as e:
        logger.error(f"❌ Could not fetch balances: {e}")
        raise typer.Exit(1) from e

    logger.info(f"💰 Real-time balances for {context.name}")
    _log_accounts(accounts)


@item_app.command("info")
def item_info(item: str = ItemOption) -> None:
    """Show item metadata as JSON."""
    try:
        context = AccessTokenStore().get_item(item)
        details = _client().get_item(context.access_token)
    except Exception as e:
        logger.error(f"❌ Could not fetch item: {e}")
        raise typer.Exit(1) from e

    typer.echo(json.dumps(details, indent=2, default=str))
