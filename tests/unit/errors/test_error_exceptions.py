"""Tests for structured API exceptions."""

import pytest
from httpx import Response

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
from baremetal_provider.errors.models import ErrorBody


@pytest.mark.unit
def test_api_error_instantiation():
    """Test APIError can be instantiated with all attributes."""
    response = Response(status_code=500)
    body = ErrorBody(code="InternalServerError", message="boom", request_id="req-1")

    error = APIError(
        message="Test error",
        status_code=500,
        response=response,
        error_body=body,
    )

    assert str(error) == "Test error"
    assert error.status_code == 500
    assert error.response == response
    assert error.error_body == body
    assert error.code == "InternalServerError"
    assert error.request_id == "req-1"


@pytest.mark.unit
def test_api_error_without_body():
    error = APIError("Test error")

    assert error.code is None
    assert error.request_id is None


@pytest.mark.unit
def test_transient_errors():
    """Test which errors the retry policy treats as transient."""
    assert issubclass(RateLimitError, TransientAPIError)
    assert issubclass(IncorrectStateError, TransientAPIError)
    assert issubclass(ServerError, TransientAPIError)


@pytest.mark.unit
def test_terminal_errors():
    """Test that 4xx rejections are terminal."""
    assert issubclass(ClientError, TerminalAPIError)
    for exc_class in (BadRequestError, UnauthorizedError, ForbiddenError, NotFoundError, ConflictError):
        assert issubclass(exc_class, ClientError)
        assert not issubclass(exc_class, TransientAPIError)


@pytest.mark.unit
def test_families_share_api_error_base():
    assert issubclass(TransientAPIError, APIError)
    assert issubclass(TerminalAPIError, APIError)
    assert not issubclass(TransientAPIError, TerminalAPIError)


@pytest.mark.unit
def test_rate_limit_error_with_retry_after():
    """Test RateLimitError stores retry_after."""
    error = RateLimitError(message="Rate limited", retry_after=60)

    assert str(error) == "Rate limited"
    assert error.retry_after == 60


@pytest.mark.unit
def test_rate_limit_error_without_retry_after():
    error = RateLimitError(message="Rate limited")

    assert error.retry_after is None
