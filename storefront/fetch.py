"""
HTTP fetch helper used by the storefront client.

Fetcher owns everything transport-related so the client does not have to:
- a pooled requests.Session with a urllib3 Retry policy
- the per-request timeout
- request logging at "verbose", "limited" or "silent" verbosity

Paths listed in excluded_paths are sent through a session without retries and
are never logged. Paths in limited_paths are logged at "limited" verbosity at
most. Paths match anywhere in the URL path, so a base URL with its own path
prefix still matches. A per-call log_level overrides the configured level for that call.

Fetcher.query() returns the requests.Response for any HTTP status and raises
requests.RequestException on transport failures; interpreting either is the
caller's job. Cookies the backend sets are available on response.cookies
but are never stored on the shared session.
"""

import logging
import time
from http.cookiejar import DefaultCookiePolicy
from typing import Dict, Iterable, List, Optional
from urllib.parse import urlsplit

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .logger import get_logger

# Ordered from quietest to loudest
LOG_LEVELS = ("silent", "limited", "verbose")

RETRY_STATUS_CODES = [429, 500, 502, 503, 504]


def create_session(retry: int = 0) -> requests.Session:
    """
    Creates a requests session with retry strategy.

    Args:
        retry: Number of retries for connection errors and retryable statuses.
            urllib3's default allowed_methods apply, so POST is never retried.

    Returns:
        Configured requests.Session object
    """
    session = requests.Session()
    # Sessions are shared between customers; the backend session travels in an
    # explicit Cookie header, never in the session's own jar
    session.cookies.set_policy(DefaultCookiePolicy(allowed_domains=[]))
    if retry > 0:
        retry_strategy = Retry(
            total=retry,
            backoff_factor=0.5,
            status_forcelist=RETRY_STATUS_CODES,
            raise_on_status=False,
        )
    else:
        retry_strategy = Retry(total=0, raise_on_status=False)
    adapter = HTTPAdapter(max_retries=retry_strategy)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


def _matches(path: str, prefixes: Iterable[str]) -> bool:
    return any(prefix in path for prefix in prefixes)


class Fetcher:
    """
    Thin wrapper over requests with retry, timeout and request logging.

    Args:
        retry: Retries for idempotent requests (see create_session)
        timeout: Per-request timeout in seconds
        logger: Logger for request logs (defaults to a configured module logger)
        log_format: "json" or "text", used when no logger is given
        log_level: Default verbosity, "verbose" | "limited" | "silent"
        excluded_paths: Path prefixes never logged nor retried
        limited_paths: Path prefixes logged at "limited" verbosity at most
        session: Pre-built session to use for every request (tests)
    """

    def __init__(
        self,
        retry: int = 0,
        timeout: float = 8.0,
        logger: Optional[logging.Logger] = None,
        log_format: str = "json",
        log_level: str = "silent",
        excluded_paths: Optional[List[str]] = None,
        limited_paths: Optional[List[str]] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        if log_level not in LOG_LEVELS:
            raise ValueError(f"Invalid log level: {log_level}. Valid levels: {', '.join(LOG_LEVELS)}")
        self.retry = retry
        self.timeout = timeout
        self.logger = logger or get_logger(__name__, log_format)
        self.log_level = log_level
        self.excluded_paths = list(excluded_paths or [])
        self.limited_paths = list(limited_paths or [])

        if session is not None:
            self.session = session
            self.plain_session = session
        else:
            self.session = create_session(retry)
            self.plain_session = create_session(0)

    def effective_log_level(self, path: str, log_level: Optional[str] = None) -> str:
        """Verbosity for one request after applying overrides and path lists."""
        if _matches(path, self.excluded_paths):
            return "silent"
        level = log_level or self.log_level
        if _matches(path, self.limited_paths) and LOG_LEVELS.index(level) > LOG_LEVELS.index("limited"):
            level = "limited"
        return level

    def query(
        self,
        url: str,
        method: str = "GET",
        headers: Optional[Dict[str, str]] = None,
        body: Optional[str] = None,
        log_level: Optional[str] = None,
    ) -> requests.Response:
        """
        Send one HTTP request.

        Args:
            url: Absolute URL
            method: HTTP method
            headers: Request headers
            body: Serialized request body, or None
            log_level: Verbosity override for this call

        Returns:
            The response, whatever its status

        Raises:
            requests.RequestException: On connection errors, timeouts and exhausted retries
        """
        path = urlsplit(url).path
        level = self.effective_log_level(path, log_level)
        session = self.plain_session if _matches(path, self.excluded_paths) else self.session

        started = time.monotonic()
        try:
            response = session.request(method, url, headers=headers, data=body, timeout=self.timeout)
        except requests.RequestException as e:
            if level != "silent":
                self.logger.error(
                    "%s %s failed: %s",
                    method,
                    url,
                    e,
                    extra={"fields": {"method": method, "url": url, "error": type(e).__name__}},
                )
            raise

        self._log(level, method, url, response, time.monotonic() - started, body)
        return response

    def _log(
        self,
        level: str,
        method: str,
        url: str,
        response: requests.Response,
        elapsed: float,
        body: Optional[str],
    ) -> None:
        if level == "silent":
            return
        elapsed_ms = round(elapsed * 1000)
        fields = {"method": method, "url": url, "status": response.status_code, "elapsed_ms": elapsed_ms}
        if level == "verbose":
            fields["request_bytes"] = len(body.encode("utf-8")) if body else 0
            fields["response_bytes"] = len(response.content or b"")
        self.logger.info("%s %s %s (%d ms)", method, url, response.status_code, elapsed_ms, extra={"fields": fields})
