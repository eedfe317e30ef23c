"""
Result type returned by every storefront client call.

The client never raises past its boundary. Instead each call returns a Result:
- ok=True with the parsed payload in `data` (None for boolean-shaped calls)
- ok=False with `data=None` and a `reason` naming the failure class

Callers that only care about "available or not" can use the result in a
boolean context; the reason is there for callers that need to tell a missing
resource from a backend outage.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class Failure(str, Enum):
    """Failure classes a storefront call can end in."""

    TRANSPORT = "transport"        # network error, timeout, retries exhausted
    STATUS = "status"              # backend answered with a non-2xx status
    PARSE = "parse"                # response body was not the expected JSON
    COOKIE = "cookie"              # session cookie missing or unparseable
    PRECONDITION = "precondition"  # missing cart id, user or required argument
    NOT_FOUND = "not_found"        # response parsed but the payload key is empty
    REJECTED = "rejected"          # backend answered with a non-order completion


@dataclass(frozen=True)
class Result:
    ok: bool
    data: Any = None
    reason: Optional[Failure] = None

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def success(cls, data: Any = None) -> "Result":
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, reason: Failure) -> "Result":
        return cls(ok=False, data=None, reason=reason)
