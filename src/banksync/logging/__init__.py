"""Centralized logging configuration for banksync.

Standard usage:
    ```python
    import logging
    from banksync.logging import setup_logging

    # Configure once at application startup, after the profile .env is loaded
    setup_logging()

    # Get loggers in each module
    logger = logging.getLogger(__name__)
    ```
"""

from .config import get_log_config_summary, setup_logging

__all__ = ["get_log_config_summary", "setup_logging"]
