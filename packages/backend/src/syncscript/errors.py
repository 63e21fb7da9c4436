"""Error hierarchy — every failure the API reports to clients.

Each ApiError carries the HTTP status and the client-facing message.
The handlers in api/error_handlers.py turn them into the response
envelope ``{"success": false, "error": "<message>"}``.
"""

from contextlib import contextmanager
from typing import Iterator

import structlog

logger = structlog.get_logger()


class ApiError(Exception):
    """Base class for errors that map to an HTTP response."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_response(self) -> dict:
        return {"success": False, "error": self.message}


class ValidationFailed(ApiError):
    """Request is missing or has malformed fields."""
    status_code = 400


class AuthenticationRequired(ApiError):
    """No credentials, or credentials that do not match a user."""
    status_code = 401


class PermissionDenied(ApiError):
    """Credentials are invalid or the caller lacks the required role."""
    status_code = 403


class NotFound(ApiError):
    status_code = 404


class Conflict(ApiError):
    status_code = 409


class ServerError(ApiError):
    status_code = 500


@contextmanager
def failures_as(message: str, **log_context) -> Iterator[None]:
    """Re-raise anything unexpected in the block as a 500 with ``message``.

    ApiErrors pass through untouched so validation and permission
    failures keep their status codes.
    """
    try:
        yield
    except ApiError:
        raise
    except Exception as e:
        logger.error("request.failed", error=str(e), message=message, **log_context)
        raise ServerError(message) from e
