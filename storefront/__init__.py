"""
Session-aware storefront client for the Medusa store API.

This package contains:
- client: StorefrontClient, the per-request commerce client
- context: StorefrontContext, identity and cart state of one inbound request
- cookies: CookieJar and Set-Cookie parsing for the sid/cartid cookies
- fetch: Fetcher, the requests-based HTTP helper (retry, timeout, logging)
- models: Request payload models (Address, User, Customer, Review, ...)
- options: ClientOptions
- result: Result and Failure, the fail-soft return type of every call
"""

from .client import StorefrontClient
from .context import StorefrontContext
from .cookies import CART_COOKIE, SESSION_COOKIE, CookieJar
from .fetch import Fetcher
from .models import (
    Address,
    CollectionRetrievalOptions,
    Customer,
    ProductRetrievalOptions,
    Review,
    User,
)
from .options import ClientOptions
from .result import Failure, Result

__all__ = [
    "StorefrontClient",
    "StorefrontContext",
    "CookieJar",
    "SESSION_COOKIE",
    "CART_COOKIE",
    "Fetcher",
    "Address",
    "Customer",
    "Review",
    "User",
    "ProductRetrievalOptions",
    "CollectionRetrievalOptions",
    "ClientOptions",
    "Failure",
    "Result",
]
