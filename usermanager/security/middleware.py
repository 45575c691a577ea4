"""
Security Middleware for User Management API
Adds security headers to every response.
"""

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from usermanager.config.settings import get_settings

settings = get_settings()


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add security headers to all responses.
    """

    def __init__(self, app, api_prefix: str = None):
        super().__init__(app)
        self.api_prefix = (api_prefix if api_prefix is not None else settings.API_PREFIX) or "/"
        self.security_headers = {
            "X-Content-Type-Options": "nosniff",
            "X-Frame-Options": "DENY",
            "Strict-Transport-Security": "max-age=31536000; includeSubDomains" if settings.is_production else "max-age=31536000",
            "Content-Security-Policy": self._get_csp_header(),
            "Referrer-Policy": "strict-origin-when-cross-origin",
        }

    def _get_csp_header(self) -> str:
        """Generate Content Security Policy header based on environment."""
        if settings.is_production:
            return "default-src 'none'; frame-ancestors 'none';"
        # Interactive docs load their assets from a CDN
        return "default-src 'self' 'unsafe-inline' https:; img-src 'self' data: https:;"

    async def dispatch(self, request: Request, call_next):
        """Add security headers to response."""
        response = await call_next(request)

        for header, value in self.security_headers.items():
            response.headers[header] = value

        # API payloads carry personal data and must not be cached
        if request.url.path.startswith(self.api_prefix):
            response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate"
            response.headers["Pragma"] = "no-cache"

        return response
