"""
Shared fixtures for storefront tests.

Backend responses are real requests.Response objects so the client's status and
JSON handling runs unmodified; only the Fetcher (the network seam) is mocked.
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional, Tuple
from unittest.mock import Mock

import pytest
import requests

from storefront import CookieJar, Fetcher, StorefrontClient, StorefrontContext

BASE_URL = "http://medusa.test"

FIXED_NOW = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def backend_cookie(value: str = "S", expires_in: Optional[int] = 3600, name: str = "connect.sid") -> Dict[str, Any]:
    """Cookie attributes as requests stores them; expires is relative to FIXED_NOW."""
    expires = None if expires_in is None else int(FIXED_NOW.timestamp()) + expires_in
    return {"name": name, "value": value, "expires": expires, "path": "/"}


# connect.sid=S expiring one hour after FIXED_NOW
SESSION_COOKIE_ATTRS = backend_cookie()


def make_response(
    status: int = 200,
    json_body: Any = None,
    cookies: Iterable[Dict[str, Any]] = (),
    text: Optional[str] = None,
) -> requests.Response:
    """Build a requests.Response with the given status, JSON body and backend cookies."""
    response = requests.Response()
    response.status_code = status
    if text is not None:
        response._content = text.encode("utf-8")
    else:
        response._content = json.dumps(json_body if json_body is not None else {}).encode("utf-8")
    response.encoding = "utf-8"
    for cookie in cookies:
        response.cookies.set(**cookie)
    return response


def routed(routes: Dict[Tuple[str, str], Any]):
    """
    side_effect for Fetcher.query dispatching on (method, path-with-query).

    A route value may be a response or an exception to raise. Unknown routes
    fail the test.
    """
    def query(url, method="GET", headers=None, body=None, log_level=None):
        key = (method, url[len(BASE_URL):])
        if key not in routes:
            raise AssertionError(f"Unexpected backend request: {method} {url}")
        outcome = routes[key]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    return query


def requested(fetcher: Mock) -> list:
    """(method, path) of every backend request the fetcher saw."""
    return [
        (call.kwargs["method"], call.kwargs["url"][len(BASE_URL):])
        for call in fetcher.query.call_args_list
    ]


@pytest.fixture
def fetcher():
    return Mock(spec=Fetcher)


@pytest.fixture
def client(fetcher):
    """Client with a mocked fetcher and a frozen clock."""
    return StorefrontClient(BASE_URL, fetcher=fetcher, clock=lambda: FIXED_NOW)


@pytest.fixture
def persistent_client(fetcher):
    return StorefrontClient(
        BASE_URL, {"persistent_cart": True}, fetcher=fetcher, clock=lambda: FIXED_NOW
    )


@pytest.fixture
def context():
    return StorefrontContext()


@pytest.fixture
def cookies():
    return CookieJar()
