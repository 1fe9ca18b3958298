"""Security headers middleware.

Learn: Every response gets a fixed set of hardening headers. Two are
conditional:
- Cache-Control: no-store on /auth/* (register/login bodies carry tokens)
- Strict-Transport-Security only when the request came in over HTTPS
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

STATIC_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}

HSTS = "max-age=31536000; includeSubDomains"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Stamp security headers onto every response."""

    async def dispatch(self, request: Request, call_next) -> Response:
        response: Response = await call_next(request)
        response.headers.update(STATIC_HEADERS)

        if request.url.path.startswith("/auth/"):
            response.headers["Cache-Control"] = "no-store"
        if request.url.scheme == "https":
            response.headers["Strict-Transport-Security"] = HSTS
        return response
