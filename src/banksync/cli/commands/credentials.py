"""Credential management commands for the banksync CLI.

This module provides commands for environment setup, credential validation,
and turning public tokens into item access tokens.
"""

import logging
from pathlib import Path

import typer

from banksync.config import get_current_profile, get_settings
from banksync.logging import setup_logging
from banksync.services.sync_service import build_sync_service
from banksync.utils.secrets_manager import (
    AccessTokenStore,
    SecretsManager,
    setup_secure_environment,
    token_env_var,
)

app = typer.Typer(help="Manage API credentials and linked items")
logger = logging.getLogger(__name__)


@app.command("setup")
def setup(
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite existing .env file"
    ),
) -> None:
    """Create working directories and a template .env file."""
    env_file = Path(".env")
    if env_file.exists() and not force:
        logger.info("✅ .env file already exists (use --force to overwrite)")
        return

    if force and env_file.exists():
        env_file.unlink()

    setup_secure_environment(env_file)
    logger.info("✅ Environment setup completed")


@app.command("validate")
def validate() -> None:
    """Validate Plaid API keys and check for linked items."""
    setup_logging(cli_mode=True)
    logger.info(f"Validating credentials (Profile: {get_current_profile()})")

    results = SecretsManager().validate_all_credentials()

    logger.info("🔐 Credential Validation Results:")
    for name, is_valid in results.items():
        status = "✅ Valid" if is_valid else "❌ Invalid/Missing"
        logger.info(f"  {name.capitalize()}: {status}")

    if not all(results.values()):
        logger.info(
            "Check your .env file or run 'banksync credentials setup' to create a template"
        )
        raise typer.Exit(1)


@app.command("list-items")
def list_items() -> None:
    """List items with a configured access token."""
    items = AccessTokenStore().get_items()
    if not items:
        logger.warning("⚠️  No access tokens configured")
        logger.info("PLAID_TOKEN_WELLS_FARGO=access-sandbox-xxx")
        return

    logger.info(f"✅ Found {len(items)} linked item(s)")
    for item in items:
        logger.info(f"  - {item.name} ({token_env_var(item.name)})")


@app.command("exchange")
def exchange(
    item: str = typer.Option(..., "--item", "-i", help="Local name for the item"),
    public_token: str = typer.Option(
        ..., "--public-token", help="Public token returned by the Link flow"
    ),
) -> None:
    """Exchange a public token for an access token and register the item."""
    setup_logging(cli_mode=True)
    try:
        service = build_sync_service(get_settings())
        context, result = service.link_item(item, public_token)
    except Exception as e:
        logger.error(f"❌ Token exchange failed: {e}")
        raise typer.Exit(1) from e

    logger.info(f"✅ Linked {context.name} (item_id: {result.item_id})")
    typer.echo(f"{token_env_var(context.name)}={result.access_token}")


@app.command("sandbox-token")
def sandbox_token(
    item: str = typer.Option("sandbox", "--item", "-i", help="Local name for the item"),
    institution_id: str = typer.Option(
        "ins_109508", "--institution", help="Sandbox institution ID"
    ),
) -> None:
    """Create a Sandbox item without going through Link."""
    setup_logging(cli_mode=True)
    try:
        service = build_sync_service(get_settings())
        context, result = service.link_sandbox_item(item, institution_id)
    except Exception as e:
        logger.error(f"❌ Sandbox token creation failed: {e}")
        raise typer.Exit(1) from e

    logger.info(f"✅ Created sandbox item {context.name} (item_id: {result.item_id})")
    typer.echo(f"{token_env_var(context.name)}={result.access_token}")
