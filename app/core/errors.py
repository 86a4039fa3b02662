"""
Domain errors raised by services and translated to HTTP responses in app.main.

Each error carries the status code it maps to and, where a caller needs to
branch on it, a machine-readable ``reason``.
"""

from __future__ import annotations

from typing import Optional


class AppError(Exception):
    status_code = 500
    reason: Optional[str] = None

    def __init__(self, message: str, reason: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        if reason is not None:
            self.reason = reason


class ValidationError(AppError):
    """Missing or malformed input."""

    status_code = 400
    reason = "invalid_input"


class Unauthorized(AppError):
    status_code = 401
    reason = "unauthorized"


class Forbidden(Unauthorized):
    """Caller is known but acts on a resource they do not own."""

    status_code = 403
    reason = "forbidden"


class NotFound(AppError):
    status_code = 404
    reason = "not_found"


class Conflict(AppError):
    status_code = 409
    reason = "conflict"


class ContentRejected(AppError):
    """Message text matched a moderation keyword."""

    status_code = 422
    reason = "content_rejected"


class UpstreamDeliveryError(AppError):
    """Push or realtime transport failure. Logged, never returned to a caller."""

    status_code = 502
    reason = "upstream_delivery_failed"
