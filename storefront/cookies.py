"""
Cookie handling for the storefront client.

Two concerns live here:
- CookieJar: the per-request view of the browser's cookies. Reads come from
  the inbound request; writes are recorded so later reads in the same request
  see the new values, and are applied to the outgoing response either as they
  happen or all at once through apply().
- cookie_max_age: turning a backend cookie (as parsed by requests into
  response.cookies) into a relative max-age for the browser cookie.
"""

import math
from datetime import datetime
from http.cookiejar import Cookie
from typing import Any, Dict, Mapping, Optional, Tuple

from fastapi import Response

# Browser-facing cookie names
SESSION_COOKIE = "sid"
CART_COOKIE = "cartid"

# Session cookie issued by the Medusa backend (express-session)
BACKEND_SESSION_COOKIE = "connect.sid"

# Carts outlive sessions: 400 days, the maximum browsers honour
CART_COOKIE_MAX_AGE = 60 * 60 * 24 * 400

# Flags shared by every cookie the client issues
COOKIE_OPTIONS: Dict[str, Any] = {
    "path": "/",
    "samesite": "strict",
    "httponly": True,
    "secure": True,
}


class CookieJar:
    """
    Cookies of one inbound request plus the writes made while handling it.

    Args:
        incoming: Cookies sent by the browser (e.g. fastapi Request.cookies)
        response: Outgoing response; set/delete are applied to it immediately.
            May be None when the jar is used outside a request (tests, scripts).
    """

    def __init__(self, incoming: Optional[Mapping[str, str]] = None, response: Optional[Response] = None) -> None:
        self._incoming: Dict[str, str] = dict(incoming or {})
        # name -> (value, options); value None marks a deletion
        self._pending: Dict[str, Tuple[Optional[str], Dict[str, Any]]] = {}
        self.response = response

    def get(self, name: str) -> Optional[str]:
        if name in self._pending:
            return self._pending[name][0]
        return self._incoming.get(name)

    def set(self, name: str, value: str, max_age: Optional[int] = None) -> None:
        self._pending[name] = (value, dict(COOKIE_OPTIONS, max_age=max_age))
        if self.response is not None:
            self._write(self.response, name)

    def delete(self, name: str) -> None:
        self._pending[name] = (None, dict(COOKIE_OPTIONS))
        if self.response is not None:
            self._write(self.response, name)

    def apply(self, response: Response) -> None:
        """
        Replay every write made so far onto another response.

        Used when the response that goes out is not the one the jar was
        created with, e.g. an error response built by an exception handler.
        """
        for name in self._pending:
            self._write(response, name)

    def _write(self, response: Response, name: str) -> None:
        value, options = self._pending[name]
        if value is None:
            response.delete_cookie(
                name,
                path=options["path"],
                secure=options["secure"],
                httponly=options["httponly"],
                samesite=options["samesite"],
            )
        else:
            response.set_cookie(name, value, **options)

    def options(self, name: str) -> Optional[Dict[str, Any]]:
        """Options of the last write to `name`, or None if it was not written."""
        pending = self._pending.get(name)
        return pending[1] if pending else None

    def was_deleted(self, name: str) -> bool:
        return name in self._pending and self._pending[name][0] is None


def cookie_max_age(cookie: Cookie, now: datetime) -> Optional[int]:
    """
    Relative lifetime in seconds of a backend cookie, floor(expires - now).

    requests parses Set-Cookie into http.cookiejar cookies, which already
    fold Max-Age into the absolute `expires` timestamp (Max-Age wins over
    Expires, an unparseable Expires makes a session cookie). Returns None for
    a session cookie.
    """
    if cookie.expires is None:
        return None
    return math.floor(cookie.expires - now.timestamp())
