"""
ASGI middleware for the storefront API.

CookieJarMiddleware writes the storefront cookies (sid, cartid) onto the
response that actually goes out. The get_storefront dependency records every
cookie write of a request in the CookieJar it stores on request.state; error
responses built by FastAPI's exception handlers (HTTPException, validation
errors) never see a dependency's injected Response, so the writes are applied
here instead.
"""

from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware


class CookieJarMiddleware(BaseHTTPMiddleware):
    """Apply the request's storefront cookie writes to the final response."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """
        Process the request and attach its cookie writes.

        Args:
            request: The incoming request
            call_next: The next middleware or route handler

        Returns:
            The response with Set-Cookie headers for every cookie written
            while handling the request
        """
        response = await call_next(request)

        # Absent for routes that do not bootstrap a storefront context
        cookies = getattr(request.state, "cookies", None)
        if cookies is not None:
            cookies.apply(response)
        return response
