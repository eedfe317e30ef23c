"""
Configuration management for the Medusa storefront API.

This module centralizes environment variable loading from .env file at project root.
It should be imported early in api/main.py to ensure .env is loaded before any
other code accesses environment variables.

In production, .env will not exist, but load_dotenv() is safe to call and will no-op.
Environment variables from the deployment platform will be used instead.

Environment Variables:
- MEDUSA_URL: Required, Medusa backend base URL (e.g. http://localhost:9000)
- MEDUSA_RETRY: Optional, retries for idempotent requests (default: 0)
- MEDUSA_TIMEOUT: Optional, request timeout in seconds (default: 8)
- MEDUSA_PERSISTENT_CART: Optional, "true" to recover logged-in customers' carts
- MEDUSA_LOG_FORMAT: Optional, "json" or "text" (default: "json")
- MEDUSA_LOG_LEVEL: Optional, "verbose", "limited" or "silent"
  (default: "limited" in development, "silent" otherwise)
- MEDUSA_EXCLUDED_PATHS: Optional, comma-separated paths never logged nor retried
- MEDUSA_LIMITED_PATHS: Optional, comma-separated paths logged at "limited" at most
- APP_ENV: Optional, "development" or "production" (default: "production")
"""

import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from storefront.options import ClientOptions

DEVELOPMENT_ENVS = {"dev", "development", "local"}


def load_env_file() -> None:
    """
    Load environment variables from .env file at project root.

    Safe to call multiple times. Existing environment variables take precedence.
    """
    # api/config.py -> api/ -> project root
    project_root = Path(__file__).resolve().parent.parent
    load_dotenv(project_root / ".env", override=False)


# Load .env file on module import
load_env_file()


def _split_paths(value: Optional[str]) -> List[str]:
    return [path.strip() for path in (value or "").split(",") if path.strip()]


class MedusaConfig:
    """Configuration for the Medusa storefront client."""

    @staticmethod
    def get_url() -> Optional[str]:
        """
        Get the Medusa backend URL from environment.

        Returns:
            Backend URL with trailing slash removed, or None if not set

        Note:
            This does not raise an error - see validate_required_config().
        """
        url = os.getenv("MEDUSA_URL")
        return url.rstrip("/") if url else None

    @staticmethod
    def is_development() -> bool:
        return os.getenv("APP_ENV", "production").lower() in DEVELOPMENT_ENVS

    @staticmethod
    def get_retry() -> int:
        return int(os.getenv("MEDUSA_RETRY", "0"))

    @staticmethod
    def get_timeout() -> float:
        return float(os.getenv("MEDUSA_TIMEOUT", "8"))

    @staticmethod
    def get_persistent_cart() -> bool:
        return os.getenv("MEDUSA_PERSISTENT_CART", "false").lower() in {"1", "true", "yes"}

    @staticmethod
    def get_log_format() -> str:
        return os.getenv("MEDUSA_LOG_FORMAT", "json")

    @staticmethod
    def get_log_level() -> str:
        """
        Get the request log verbosity.

        Returns:
            MEDUSA_LOG_LEVEL if set, otherwise "limited" in development and
            "silent" everywhere else
        """
        default = "limited" if MedusaConfig.is_development() else "silent"
        return os.getenv("MEDUSA_LOG_LEVEL", default)

    @staticmethod
    def get_excluded_paths() -> List[str]:
        return _split_paths(os.getenv("MEDUSA_EXCLUDED_PATHS"))

    @staticmethod
    def get_limited_paths() -> List[str]:
        return _split_paths(os.getenv("MEDUSA_LIMITED_PATHS"))


def build_client_options() -> ClientOptions:
    """
    Build StorefrontClient options from the environment.

    Raises:
        pydantic.ValidationError: If a configured value is out of range
    """
    return ClientOptions(
        retry=MedusaConfig.get_retry(),
        timeout=MedusaConfig.get_timeout(),
        persistent_cart=MedusaConfig.get_persistent_cart(),
        log_format=MedusaConfig.get_log_format(),
        log_level=MedusaConfig.get_log_level(),
        excluded_paths=MedusaConfig.get_excluded_paths(),
        limited_paths=MedusaConfig.get_limited_paths(),
    )


def validate_required_config() -> None:
    """
    Validate that all required environment variables are set.

    Raises:
        RuntimeError: If any required configuration is missing
    """
    if not MedusaConfig.get_url():
        raise RuntimeError(
            "Missing required environment variable MEDUSA_URL.\n"
            "Please create a .env file at the project root, e.g.:\n"
            "MEDUSA_URL=http://localhost:9000"
        )
