"""
Per-request storefront context.

One StorefrontContext is created for every inbound request by
StorefrontClient.handle_request() and handed to downstream handlers through
request.state. It is never shared between requests.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class StorefrontContext:
    """
    Identity and resolved data for the customer behind one inbound request.

    Attributes:
        sid: Backend session token ("" when anonymous)
        cart_id: Id of the customer's open cart ("" when none)
        user: Customer object from /store/auth, if logged in
        cart: Cart object resolved during bootstrap, if any
    """

    sid: str = ""
    cart_id: str = ""
    user: Optional[Dict[str, Any]] = None
    cart: Optional[Dict[str, Any]] = None

    def to_dict(self) -> dict:
        """Convert context to a log-safe dictionary (the session token is never included)."""
        return {
            "has_session": bool(self.sid),
            "cart_id": self.cart_id,
            "user_id": (self.user or {}).get("id"),
        }
