"""
Constructor options for StorefrontClient.

All defaults are explicit here; nothing is read from the environment. The
application layer (api/config.py) resolves environment-dependent values such as
the development log level and passes them in.
"""

import logging
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

LogFormat = Literal["text", "json"]
LogLevel = Literal["verbose", "limited", "silent"]

# Auth calls carry credentials and session tokens; they are never logged or retried
DEFAULT_EXCLUDED_PATHS = ["/store/auth"]


class ClientOptions(BaseModel):
    """
    Options accepted by StorefrontClient.

    retry/timeout/log settings and the path lists are forwarded to the Fetcher
    unchanged; the client itself only uses headers and persistent_cart.
    """
    retry: int = Field(0, ge=0, description="Retries for idempotent requests on connection errors and 429/5xx")
    timeout: float = Field(8.0, gt=0, description="Per-request timeout in seconds")
    headers: Dict[str, str] = Field(default_factory=dict, description="Static headers sent with every request")
    persistent_cart: bool = Field(False, description="Recover a logged-in customer's cart from /store/customers/me/cart")
    logger: Optional[logging.Logger] = Field(None, description="Logger for request logs (defaults to storefront.fetch)")
    log_format: LogFormat = Field("json", description="Request log format")
    log_level: LogLevel = Field("silent", description="Request log verbosity")
    excluded_paths: List[str] = Field(
        default_factory=list, validate_default=True, description="Paths never logged nor retried"
    )
    limited_paths: List[str] = Field(default_factory=list, description="Paths logged at 'limited' verbosity at most")

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @field_validator("excluded_paths")
    @classmethod
    def include_default_exclusions(cls, paths: List[str]) -> List[str]:
        """Default exclusions are always kept; configured paths are added to them."""
        merged = list(DEFAULT_EXCLUDED_PATHS)
        for path in paths:
            if path not in merged:
                merged.append(path)
        return merged
