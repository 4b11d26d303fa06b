"""HTTP request signing for the Bare Metal API.

Requests are signed with the HTTP Signatures scheme (draft-cavage) using
RSA-SHA256. Every request signs `date`, `(request-target)` and `host`;
requests with a body additionally sign `content-length`, `content-type` and
`x-content-sha256`.

Example:
    ```python
    signer = RequestSigner(key_id=credentials.key_id, private_key=key)

    async with httpx.AsyncClient(auth=signer) as client:
        await client.get("https://iaas.us-phoenix-1.oraclecloud.com/20160918/instances")
    ```
"""

import base64
import hashlib
from collections.abc import Generator
from email.utils import formatdate

import httpx
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa

GENERIC_HEADERS: tuple[str, ...] = ("date", "(request-target)", "host")
BODY_HEADERS: tuple[str, ...] = ("content-length", "content-type", "x-content-sha256")
BODY_METHODS: frozenset[str] = frozenset(["POST", "PUT", "PATCH"])


class RequestSigner(httpx.Auth):
    """httpx auth flow that adds a signed Authorization header to each request."""

    requires_request_body = True

    def __init__(self, *, key_id: str, private_key: rsa.RSAPrivateKey) -> None:
        self.key_id = key_id
        self._private_key = private_key

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        self.sign(request)
        yield request

    def signed_headers(self, request: httpx.Request) -> tuple[str, ...]:
        if request.method in BODY_METHODS:
            return GENERIC_HEADERS + BODY_HEADERS
        return GENERIC_HEADERS

    def sign(self, request: httpx.Request) -> None:
        """Add date, body digest and Authorization headers to the request in place."""
        if "date" not in request.headers:
            request.headers["date"] = formatdate(usegmt=True)
        if "host" not in request.headers:
            request.headers["host"] = request.url.netloc.decode("ascii")

        if request.method in BODY_METHODS:
            body = request.content
            request.headers["content-length"] = str(len(body))
            request.headers.setdefault("content-type", "application/json")
            request.headers["x-content-sha256"] = base64.b64encode(hashlib.sha256(body).digest()).decode("ascii")

        headers = self.signed_headers(request)
        signature = self._private_key.sign(
            self.signing_string(request, headers).encode("utf-8"),
            padding.PKCS1v15(),
            hashes.SHA256(),
        )
        request.headers["authorization"] = (
            f'Signature version="1",headers="{" ".join(headers)}",keyId="{self.key_id}",'
            f'algorithm="rsa-sha256",signature="{base64.b64encode(signature).decode("ascii")}"'
        )

    @staticmethod
    def signing_string(request: httpx.Request, headers: tuple[str, ...]) -> str:
        lines = []
        for name in headers:
            if name == "(request-target)":
                target = request.url.raw_path.decode("ascii")
                lines.append(f"(request-target): {request.method.lower()} {target}")
            else:
                lines.append(f"{name}: {request.headers[name]}")
        return "\n".join(lines)
