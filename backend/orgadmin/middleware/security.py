"""Security middleware for the JSON API.

- Security-related HTTP headers on every response
- HSTS and HTTPS redirection in production
- No caching of auth responses (they carry tokens and snapshots)
"""

from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import RedirectResponse

from orgadmin.config import settings

# Pure JSON API: nothing may be framed, scripted or embedded
API_CSP = "default-src 'none'; frame-ancestors 'none'; base-uri 'none'"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        if settings.environment == "production":
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"

        # Swagger UI needs scripts; leave the docs pages alone
        if not request.url.path.startswith(("/docs", "/redoc")):
            response.headers["Content-Security-Policy"] = API_CSP

        if request.url.path.startswith("/api/auth"):
            response.headers["Cache-Control"] = "no-store"
            response.headers["Pragma"] = "no-cache"

        return response


class HTTPSRedirectMiddleware(BaseHTTPMiddleware):
    """Redirect HTTP requests to HTTPS (production only)."""

    def __init__(self, app, force_https: bool = False):
        super().__init__(app)
        self.force_https = force_https or settings.environment == "production"

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not self.force_https or request.url.scheme != "http":
            return await call_next(request)

        # Behind a TLS-terminating proxy the original scheme arrives here
        if request.headers.get("x-forwarded-proto") == "https":
            return await call_next(request)

        return RedirectResponse(url=str(request.url.replace(scheme="https")), status_code=301)
