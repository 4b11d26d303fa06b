"""Testing utilities for the provider core.

Helpers for exercising configuration and dispatch without a real cloud
account:

- `generate_private_key_pem`: throwaway RSA keys (optionally encrypted)
- `CountingTransport`: httpx mock transport that counts calls
- `create_error_response`: service-style error responses
- `RecordingHandler` / `recording_handler_factory`: handlers that record calls

Example:
    ```python
    from baremetal_provider.testing import CountingTransport, create_error_response


    async def test_not_found(client_factory):
        transport = CountingTransport(lambda request: create_error_response(404, "NotAuthorizedOrNotFound"))
        client = client_factory(transport=transport)
        ...
    ```
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

import httpx
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from baremetal_provider.registry import TypeKind

PROVIDER_ENV_PREFIXES: tuple[str, ...] = ("TF_VAR_", "OBMCS_")

PROVIDER_BARE_ENV_NAMES: tuple[str, ...] = (
    "TENANCY_OCID",
    "USER_OCID",
    "FINGERPRINT",
    "PRIVATE_KEY",
    "PRIVATE_KEY_PATH",
    "PRIVATE_KEY_PASSWORD",
    "REGION",
    "DISABLE_AUTO_RETRIES",
    "URL_TEMPLATE",
    "ALLOW_INSECURE_TLS",
)


def generate_private_key_pem(password: str | None = None, key_size: int = 2048) -> str:
    """Generate an RSA private key as PEM text."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=key_size)
    encryption: serialization.KeySerializationEncryption = serialization.NoEncryption()
    if password:
        encryption = serialization.BestAvailableEncryption(password.encode("utf-8"))
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=encryption,
    ).decode("ascii")


def create_error_response(
    status_code: int,
    code: str | None = None,
    message: str | None = None,
    headers: Mapping[str, str] | None = None,
) -> httpx.Response:
    """Create a service-style error response."""
    body = {"code": code or f"HTTP{status_code}", "message": message or f"HTTP {status_code}"}
    return httpx.Response(status_code, json=body, headers=dict(headers or {}))


class CountingTransport(httpx.MockTransport):
    """Mock transport that records every request it receives."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self.requests: list[httpx.Request] = []

        def counting_handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(counting_handler)

    @property
    def call_count(self) -> int:
        return len(self.requests)


@dataclass
class RecordingHandler:
    """Handler that records each operation and echoes the data back."""

    type_name: str
    kind: TypeKind
    calls: list[tuple[str, Any, Mapping[str, Any]]] = field(default_factory=list)

    async def _record(self, operation: str, client: Any, data: Mapping[str, Any]) -> dict[str, Any]:
        self.calls.append((operation, client, data))
        return {"type": self.type_name, "operation": operation, **data}

    async def create(self, client, data):
        return await self._record("create", client, data)

    async def read(self, client, data):
        return await self._record("read", client, data)

    async def update(self, client, data):
        return await self._record("update", client, data)

    async def delete(self, client, data):
        return await self._record("delete", client, data)


def recording_handler_factory() -> tuple[Callable[[str, TypeKind], RecordingHandler], dict]:
    """Return a handler factory and the dict it fills with created handlers.

    The dict is keyed by (kind, type_name).
    """
    created: dict[tuple[TypeKind, str], RecordingHandler] = {}

    def factory(type_name: str, kind: TypeKind) -> RecordingHandler:
        handler = RecordingHandler(type_name, kind)
        created[(kind, type_name)] = handler
        return handler

    return factory, created


__all__ = [
    "PROVIDER_BARE_ENV_NAMES",
    "PROVIDER_ENV_PREFIXES",
    "CountingTransport",
    "RecordingHandler",
    "create_error_response",
    "generate_private_key_pem",
    "recording_handler_factory",
]
