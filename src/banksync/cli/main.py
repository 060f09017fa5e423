"""Main CLI application for banksync.

This module provides the unified entry point for all banksync CLI operations,
organizing commands into groups for syncing, credentials, and account reads.
"""

import logging
from typing import Annotated

import typer

from ..config import set_current_profile
from ..logging import setup_logging
from ..utils.secrets_manager import load_profile_env
from .commands import accounts, credentials, sync

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="banksync",
    help="banksync: incremental transaction sync for Plaid-linked accounts",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    profile: Annotated[
        str,
        typer.Option(
            "--profile",
            "-p",
            help="Configuration profile to use (loads .env.{profile})",
            envvar="BANKSYNC_PROFILE",
        ),
    ] = "default",
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose debug logging",
        ),
    ] = False,
) -> None:
    """Global options for the banksync CLI.

    Examples:
      banksync sync transactions                 # Sync every linked item
      banksync -p work sync transactions -i chase
      banksync credentials sandbox-token -i demo
    """
    try:
        set_current_profile(profile)
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e

    # Logging settings may come from the profile .env file
    env_file = load_profile_env(profile)
    try:
        setup_logging(cli_mode=True, verbose=verbose)
    except ValueError as e:
        raise typer.BadParameter(f"Invalid logging configuration: {e}") from e

    if env_file is not None:
        logger.debug(f"Loaded environment from {env_file}")
    logger.debug(f"👤 Using profile: {profile}")


app.add_typer(sync.app, name="sync", help="Sync transactions from linked items")
app.add_typer(
    credentials.app, name="credentials", help="Credential management commands"
)
app.add_typer(accounts.app, name="accounts", help="Account and balance reads")
app.add_typer(accounts.item_app, name="item", help="Linked item details")


def main() -> None:
    """Entry point for the banksync CLI application."""
    app()


if __name__ == "__main__":
    main()
