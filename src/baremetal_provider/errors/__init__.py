"""Error handling for Bare Metal API responses."""

from baremetal_provider.errors.exceptions import (
    APIError,
    BadRequestError,
    ClientError,
    ConflictError,
    ForbiddenError,
    IncorrectStateError,
    NotFoundError,
    RateLimitError,
    ServerError,
    TerminalAPIError,
    TransientAPIError,
    UnauthorizedError,
)
from baremetal_provider.errors.handler import exception_class_for, raise_for_status
from baremetal_provider.errors.models import ErrorBody

__all__ = [
    "APIError",
    "BadRequestError",
    "ClientError",
    "ConflictError",
    "ErrorBody",
    "ForbiddenError",
    "IncorrectStateError",
    "NotFoundError",
    "RateLimitError",
    "ServerError",
    "TerminalAPIError",
    "TransientAPIError",
    "UnauthorizedError",
    "exception_class_for",
    "raise_for_status",
]
