"""Logging setup for banksync.

Handlers are built from the ``logging`` section of :class:`BankSyncSettings`
(``BANKSYNC_LOGGING__*`` or the legacy ``LOG_*`` variables), so the profile's
``.env`` file must be loaded before :func:`setup_logging` runs.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import Any

from banksync.config import LoggingConfig, get_logging_config

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
CLI_LOG_FORMAT = "%(message)s"


def setup_logging(
    config: LoggingConfig | None = None,
    cli_mode: bool = False,
    verbose: bool = False,
    force: bool = False,
) -> None:
    """Configure the root logger once per process.

    Args:
        config: Logging settings. Defaults to the current profile's settings.
        cli_mode: Log bare messages to the console instead of the full format
        verbose: Log at DEBUG regardless of the configured level
        force: Replace handlers that are already installed
    """
    root = logging.getLogger()
    if root.handlers and not force:
        if verbose:
            root.setLevel(logging.DEBUG)
        return

    if config is None:
        config = get_logging_config()

    level = logging.DEBUG if verbose else getattr(logging, config.level)

    # stdout is reserved for command output
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(
        logging.Formatter(CLI_LOG_FORMAT if cli_mode else LOG_FORMAT)
    )
    handlers: list[logging.Handler] = [console_handler]

    if config.log_to_file:
        config.log_file_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            config.log_file_path,
            maxBytes=config.max_file_size_mb * 1024 * 1024,
            backupCount=config.backup_count,
        )
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handlers.append(file_handler)

    logging.basicConfig(level=level, handlers=handlers, force=force)

    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("plaid").setLevel(logging.INFO)


def get_log_config_summary() -> dict[str, Any]:
    """Summarize the configured and active logging setup."""
    config = get_logging_config()
    root_logger = logging.getLogger()

    return {
        "level": logging.getLevelName(root_logger.level),
        "handlers": [type(h).__name__ for h in root_logger.handlers],
        "log_to_file": config.log_to_file,
        "log_file_path": str(config.log_file_path),
    }
