"""Error handling utilities for HTTP responses."""

import httpx

from baremetal_provider.errors.exceptions import (
    INCORRECT_STATE_CODE,
    APIError,
    BadRequestError,
    ClientError,
    ConflictError,
    ForbiddenError,
    IncorrectStateError,
    NotFoundError,
    RateLimitError,
    ServerError,
    UnauthorizedError,
)
from baremetal_provider.errors.models import ErrorBody

EXCEPTION_MAP: dict[int, type[APIError]] = {
    400: BadRequestError,
    401: UnauthorizedError,
    403: ForbiddenError,
    404: NotFoundError,
    429: RateLimitError,
}


def exception_class_for(status_code: int, code: str | None = None) -> type[APIError]:
    """Map an HTTP status code (and, for 409, the service error code) to its exception class."""
    if status_code == 409:
        return IncorrectStateError if code == INCORRECT_STATE_CODE else ConflictError
    if status_code in EXCEPTION_MAP:
        return EXCEPTION_MAP[status_code]
    if 400 <= status_code < 500:
        return ClientError
    if 500 <= status_code < 600:
        return ServerError
    return APIError


def raise_for_status(response: httpx.Response) -> None:
    """Raise the appropriate exception for an HTTP error response.

    Args:
        response: HTTP response object

    Raises:
        TransientAPIError or TerminalAPIError subclass based on status code
    """
    if response.is_success:
        return

    status_code = response.status_code
    error_body = ErrorBody.from_response(response)
    exc_class = exception_class_for(status_code, error_body.code if error_body else None)

    if error_body:
        message = error_body.to_exception_message(status_code)
    else:
        response_text = response.text[:200]
        message = f"HTTP {status_code}: {response_text}" if response_text else f"HTTP {status_code}"

    if exc_class is RateLimitError:
        retry_after = None
        if "retry-after" in response.headers:
            try:
                retry_after = int(response.headers["retry-after"])
            except (ValueError, TypeError):
                retry_after = None
        raise RateLimitError(
            message,
            retry_after=retry_after,
            status_code=status_code,
            response=response,
            error_body=error_body,
        )

    raise exc_class(
        message,
        status_code=status_code,
        response=response,
        error_body=error_body,
    )
