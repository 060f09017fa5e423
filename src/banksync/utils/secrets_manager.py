"""Credential access for banksync.

Plaid API keys and per-item access tokens are read from environment variables
(optionally loaded from a ``.env`` file). Access tokens use the naming
convention ``PLAID_TOKEN_<ITEM_NAME>``; the item name is the lower-cased
suffix with underscores turned into spaces.
"""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

from banksync.config import get_current_profile, get_settings
from banksync.exceptions import ItemNotFoundError
from banksync.sync.models import ItemContext

logger = logging.getLogger(__name__)

TOKEN_PREFIX = "PLAID_TOKEN_"


def normalize_item_name(name: str) -> str:
    """Normalize an item name as typed by a user or derived from an env var."""
    return " ".join(name.replace("_", " ").lower().split())


def token_env_var(item_name: str) -> str:
    """Environment variable holding an item's access token."""
    return TOKEN_PREFIX + normalize_item_name(item_name).upper().replace(" ", "_")


def load_profile_env(profile: str) -> Path | None:
    """Load `.env.{profile}` (or `.env`) into the process environment.

    Existing environment variables take precedence over file values.

    Returns:
        Path | None: The file that was loaded, if any
    """
    for candidate in (Path(f".env.{profile}"), Path(".env")):
        if candidate.exists():
            load_dotenv(candidate)
            return candidate
    return None


class AccessTokenStore:
    """Reads item access tokens from the environment."""

    def get_items(self) -> list[ItemContext]:
        """Return every configured item, sorted by name."""
        items = [
            ItemContext(
                name=normalize_item_name(key[len(TOKEN_PREFIX) :]),
                access_token=value,
            )
            for key, value in os.environ.items()
            if key.startswith(TOKEN_PREFIX) and value
        ]
        logger.debug(f"Found {len(items)} Plaid item tokens")
        return sorted(items, key=lambda i: i.name)

    def get_item(self, name: str) -> ItemContext:
        """Return one configured item.

        Raises:
            ItemNotFoundError: If no token is configured for the item
        """
        env_var = token_env_var(name)
        token = os.getenv(env_var)
        if not token:
            raise ItemNotFoundError(f"No access token configured for '{name}' (set {env_var})")
        return ItemContext(name=normalize_item_name(name), access_token=token)

    def store_token(self, item_name: str, access_token: str) -> str:
        """Make a token available to this process and return its env var name.

        Tokens are not written to disk; the caller is told which variable to
        add to the ``.env`` file.
        """
        env_var = token_env_var(item_name)
        os.environ[env_var] = access_token
        logger.warning(f"Add {env_var} to your .env file to keep this token")
        return env_var


class SecretsManager:
    """Central access to Plaid credentials and item tokens."""

    def __init__(self, profile: str | None = None):
        """Initialize secrets manager.

        Args:
            profile: Profile whose env file is loaded. Defaults to the current profile.
        """
        self.profile = profile or get_current_profile()
        load_profile_env(self.profile)
        self.token_store = AccessTokenStore()

    def validate_all_credentials(self) -> dict[str, bool]:
        """Validate all configured credentials.

        Returns:
            dict[str, bool]: Credential name -> validation status
        """
        results: dict[str, bool] = {}

        # Same check the sync commands run, so both accept the same variables
        try:
            get_settings(self.profile)
            results["plaid"] = True
        except ValueError as e:
            logger.error(f"Plaid credentials validation failed: {e}")
            results["plaid"] = False

        results["items"] = bool(self.token_store.get_items())
        return results


ENV_TEMPLATE = """# banksync configuration
# Fill in your credentials; NEVER commit this file to version control

# Plaid API keys from https://dashboard.plaid.com/team/keys
PLAID_CLIENT_ID=your_plaid_client_id_here
PLAID_SECRET=your_plaid_secret_here
PLAID_ENV=sandbox  # sandbox, development, or production

# Item access tokens (from `banksync credentials exchange` or `sandbox-token`)
# PLAID_TOKEN_WELLS_FARGO=access-sandbox-xxx
# PLAID_TOKEN_CHASE=access-sandbox-yyy

# Sync behavior
# BANKSYNC_SYNC__PAUSE_SECONDS=2.0
# BANKSYNC_SYNC__MAX_PAGES=100
# BANKSYNC_SYNC__DISPLAY_LIMIT=8

# Storage
# BANKSYNC_DATABASE__PATH=data/duckdb/banksync.duckdb
# BANKSYNC_DATA__RAW_DATA_PATH=data/raw/plaid

# Logging (or BANKSYNC_LOGGING__LEVEL, BANKSYNC_LOGGING__LOG_TO_FILE, ...)
LOG_LEVEL=INFO
LOG_TO_FILE=true
LOG_FILE_PATH=logs/banksync.log
"""


def setup_secure_environment(env_file: Path = Path(".env")) -> bool:
    """Create working directories and a sample ``.env`` file.

    Returns:
        bool: True if a new env file was written
    """
    for directory in (Path("data/raw/plaid"), Path("data/duckdb"), Path("logs")):
        directory.mkdir(parents=True, exist_ok=True)
        logger.debug(f"Created directory: {directory}")

    if env_file.exists():
        return False

    env_file.write_text(ENV_TEMPLATE)
    logger.info(f"Created environment template at {env_file}")
    logger.warning("IMPORTANT: Fill in your actual credentials in the .env file")
    return True
