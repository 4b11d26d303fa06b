"""Structured exceptions for API errors.

Errors split into two families. TransientAPIError covers conditions the
retry policy absorbs (eventual-consistency races, rate limiting, server
hiccups); it reaches the caller only once retries are exhausted or disabled.
TerminalAPIError covers rejections that no amount of waiting will fix.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import httpx

    from baremetal_provider.errors.models import ErrorBody

INCORRECT_STATE_CODE = "IncorrectState"


class APIError(Exception):
    """Base exception for API errors."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response: "httpx.Response | None" = None,
        error_body: "ErrorBody | None" = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response = response
        self.error_body = error_body

    @property
    def code(self) -> str | None:
        """Service error code, e.g. ``NotAuthorizedOrNotFound``."""
        return self.error_body.code if self.error_body else None

    @property
    def request_id(self) -> str | None:
        return self.error_body.request_id if self.error_body else None


class TransientAPIError(APIError):
    """Retriable remote condition."""

    pass


class TerminalAPIError(APIError):
    """Non-retriable remote rejection."""

    pass


class RateLimitError(TransientAPIError):
    """429 Too Many Requests."""

    def __init__(self, message: str, retry_after: int | None = None, **kwargs):
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class IncorrectStateError(TransientAPIError):
    """409 Conflict - the resource is not yet in a state that allows the operation."""

    pass


class ServerError(TransientAPIError):
    """5xx server errors."""

    pass


class ClientError(TerminalAPIError):
    """4xx client errors."""

    pass


class BadRequestError(ClientError):
    """400 Bad Request."""

    pass


class UnauthorizedError(ClientError):
    """401 Unauthorized."""

    pass


class ForbiddenError(ClientError):
    """403 Forbidden."""

    pass


class NotFoundError(ClientError):
    """404 Not Found (still missing after retries)."""

    pass


class ConflictError(ClientError):
    """409 Conflict that waiting will not resolve, e.g. a name already in use."""

    pass
