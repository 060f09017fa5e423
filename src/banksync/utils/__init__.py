"""Shared utilities: credential access and environment setup."""

from .secrets_manager import (
    AccessTokenStore,
    SecretsManager,
    load_profile_env,
    normalize_item_name,
    setup_secure_environment,
    token_env_var,
)

__all__ = [
    "AccessTokenStore",
    "SecretsManager",
    "load_profile_env",
    "normalize_item_name",
    "setup_secure_environment",
    "token_env_var",
]
