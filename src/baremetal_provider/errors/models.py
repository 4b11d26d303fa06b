"""Error body model for Bare Metal API responses."""

from dataclasses import dataclass

import httpx

REQUEST_ID_HEADER = "opc-request-id"


@dataclass
class ErrorBody:
    """Service error payload.

    The API answers failures with ``{"code": ..., "message": ...}`` and tags
    every response with an ``opc-request-id`` header for support requests.
    """

    code: str | None = None  # Service error code, e.g. "IncorrectState"
    message: str | None = None  # Human-readable explanation
    request_id: str | None = None  # Value of the opc-request-id header

    @classmethod
    def from_response(cls, response: httpx.Response) -> "ErrorBody | None":
        """Parse the error payload from an HTTP response.

        Args:
            response: HTTP response object

        Returns:
            ErrorBody, or None if the body is not a service error payload
            and no request id is present
        """
        request_id = response.headers.get(REQUEST_ID_HEADER)

        try:
            data = response.json()
        except (ValueError, TypeError, AttributeError):
            # JSON decode errors, type errors, or missing .json() method
            data = None

        if not isinstance(data, dict) or not ({"code", "message"} & data.keys()):
            return cls(request_id=request_id) if request_id else None

        return cls(code=data.get("code"), message=data.get("message"), request_id=request_id)

    def to_exception_message(self, status_code: int) -> str:
        """Convert the error body to an exception message."""
        parts = [f"HTTP {status_code}"]
        if self.code:
            parts.append(self.code)
        message = ": ".join(parts)

        if self.message:
            message += f" - {self.message}"
        if self.request_id:
            message += f" (opc-request-id: {self.request_id})"
        return message
