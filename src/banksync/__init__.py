"""banksync: incremental transaction sync against the Plaid API.

This package provides:
- Token exchange and pass-through reads (accounts, balances, item)
- A cursor-based poller that drains the /transactions/sync change feed
- A DuckDB cursor store so each sync resumes where the last one finished
- Parquet output of each completed sync and a Typer CLI for all operations
"""

__version__ = "0.1.0"
