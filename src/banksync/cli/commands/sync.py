"""Transaction sync commands for the banksync CLI."""

import logging
from typing import Any

import typer

from banksync.config import get_current_profile, get_settings
from banksync.logging import setup_logging
from banksync.services.sync_service import build_sync_service
from banksync.storage.cursor_store import CursorStore
from banksync.sync.models import ItemContext
from banksync.utils.secrets_manager import AccessTokenStore, normalize_item_name

app = typer.Typer(help="Sync transactions from linked items")
logger = logging.getLogger(__name__)


def _format_transaction(tx: Any) -> str:
    amount = str(tx.get("amount", ""))
    name = tx.get("merchant_name") or tx.get("name") or tx.get("transaction_id")
    return f"  {tx.get('date')}  {amount:>10}  {name}"


def _select_items(item: str | None) -> list[ItemContext]:
    token_store = AccessTokenStore()
    if item:
        return [token_store.get_item(item)]
    return token_store.get_items()


@app.command("transactions")
def sync_transactions(
    item: str | None = typer.Option(
        None, "--item", "-i", help="Sync only this item (default: all items)"
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Ignore the stored cursor and sync full history"
    ),
    max_pages: int | None = typer.Option(
        None, "--max-pages", min=1, help="Stop with an error after this many feed calls"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable verbose logging"
    ),
) -> None:
    """Drain the transaction change feed for linked items.

    Each item resumes from the cursor committed by its last successful sync.
    The cursor is only advanced when the whole feed has been drained.
    """
    setup_logging(cli_mode=True, verbose=verbose)
    logger.info(f"Starting transaction sync (Profile: {get_current_profile()})")

    try:
        settings = get_settings()
        items = _select_items(item)
        if not items:
            logger.warning("No linked items found")
            logger.info("Add items with environment variables like:")
            logger.info("PLAID_TOKEN_WELLS_FARGO=access-sandbox-xxx")
            raise typer.Exit(1)

        if force:
            logger.info("🔄 FULL sync requested - stored cursors will be ignored")

        service = build_sync_service(settings)
        outcomes = service.sync_all(items, force_full_sync=force, max_pages=max_pages)
    except typer.Exit:
        raise
    except Exception as e:
        logger.error(f"❌ Sync failed: {e}")
        raise typer.Exit(1) from e

    failed = [o for o in outcomes if not o.succeeded]
    for outcome in outcomes:
        if outcome.result is None:
            continue
        summary = outcome.result.summary()
        logger.info(
            f"✅ {outcome.item_name}: {summary['added']} added, "
            f"{summary['modified']} modified, {summary['removed']} removed"
        )
        recent = service.recent(outcome.result)
        if recent:
            logger.info(f"📈 Most recent {len(recent)} transaction(s):")
            for tx in recent:
                logger.info(_format_transaction(tx))

    if failed:
        logger.error(f"❌ {len(failed)}/{len(outcomes)} item(s) failed to sync")
        raise typer.Exit(1)


@app.command("history")
def sync_history(
    item: str | None = typer.Option(None, "--item", "-i", help="Filter by item"),
    limit: int = typer.Option(20, "--limit", "-n", min=1, help="Number of runs"),
) -> None:
    """Show recent completed syncs."""
    try:
        store = CursorStore(get_settings().database.path)
        runs = store.list_runs(normalize_item_name(item) if item else None, limit=limit)
    except Exception as e:
        logger.error(f"❌ Could not read sync history: {e}")
        raise typer.Exit(1) from e

    if not runs:
        logger.info("No completed syncs recorded")
        return

    for run in runs:
        logger.info(
            f"{run.finished_at:%Y-%m-%d %H:%M:%S}  {run.item_name}: "
            f"+{run.added_count} ~{run.modified_count} -{run.removed_count} "
            f"({run.feed_calls} call(s))"
        )


@app.command("reset")
def sync_reset(
    item: str = typer.Option(..., "--item", "-i", help="Item whose cursor to forget"),
) -> None:
    """Forget an item's stored cursor so the next sync starts from the beginning."""
    try:
        store = CursorStore(get_settings().database.path)
        removed = store.reset_cursor(normalize_item_name(item))
    except Exception as e:
        logger.error(f"❌ Could not reset cursor: {e}")
        raise typer.Exit(1) from e

    if removed:
        logger.info(f"✅ Cursor reset for {item}")
    else:
        logger.info(f"No stored cursor for {item}")
