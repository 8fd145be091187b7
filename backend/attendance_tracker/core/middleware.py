from __future__ import annotations

from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from attendance_tracker.core.config import Settings

BODY_METHODS = {"POST", "PUT", "PATCH"}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, *, settings: Settings) -> None:
        super().__init__(app)
        self._hsts_max_age = max(1, settings.security_hsts_max_age_seconds) if settings.security_enable_hsts else None

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        if self._hsts_max_age is not None:
            response.headers.setdefault("Strict-Transport-Security", f"max-age={self._hsts_max_age}")
        return response


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Reject oversized bodies, in practice a runaway backup import."""

    def __init__(self, app, *, max_bytes: int) -> None:
        super().__init__(app)
        self._max_bytes = max(1, max_bytes)

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.method not in BODY_METHODS:
            return await call_next(request)

        try:
            length = int(request.headers.get("content-length") or 0)
        except ValueError:
            length = 0
        if length > self._max_bytes:
            return JSONResponse(
                status_code=413,
                content={
                    "message": "Request body is too large.",
                    "details": {"size_bytes": length, "max_bytes": self._max_bytes},
                },
            )
        return await call_next(request)
