"""Security headers middleware.

Every response gets:
- X-Content-Type-Options: nosniff (no MIME sniffing of uploads or JSON)
- X-Frame-Options: DENY
- Referrer-Policy: strict-origin-when-cross-origin
- Strict-Transport-Security, on HTTPS connections only

Files served from /uploads are user content, so they are additionally
sandboxed: an uploaded HTML or SVG file cannot run script against the
API's origin.
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from syncscript.services.storage import UPLOADS_URL_PREFIX

UPLOAD_CSP = "default-src 'none'; img-src 'self'; style-src 'unsafe-inline'; sandbox"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next) -> Response:
        response: Response = await call_next(request)
        headers = response.headers
        headers["X-Content-Type-Options"] = "nosniff"
        headers["X-Frame-Options"] = "DENY"
        headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        if request.url.path.startswith(UPLOADS_URL_PREFIX + "/"):
            headers["Content-Security-Policy"] = UPLOAD_CSP
            headers["Cross-Origin-Resource-Policy"] = "same-site"

        if request.url.scheme == "https":
            headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response
