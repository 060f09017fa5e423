"""banksync CLI package.

This package provides a unified command-line interface for syncing,
credential management, and account reads.
"""

from .main import app, main

__all__ = ["app", "main"]
