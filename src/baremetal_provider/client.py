"""API client construction for the provider.

Client construction happens in two steps. `ClientOptions` accumulates every
input in one immutable value: only settings the operator supplied override
the defaults. `ClientHandle` then validates the options once, loads and
checks the signing key, and assembles the transport stack. A handle is never
reconfigured; a configuration change means building a new one.

Example:
    ```python
    options = ClientOptions.from_config(provider_config, build_transport_config(None))

    async with ClientHandle(options) as client:
        response = await client.request("GET", "iaas", "/instances", params={"compartmentId": cid})
    ```
"""

import logging
import re
import string
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

import httpx

from baremetal_provider import __version__
from baremetal_provider.auth import settings
from baremetal_provider.auth.credentials import CredentialBundle, ProviderConfig
from baremetal_provider.auth.exceptions import ClientConstructionError
from baremetal_provider.auth.keys import load_private_key
from baremetal_provider.auth.signer import RequestSigner
from baremetal_provider.errors.handler import raise_for_status
from baremetal_provider.transport.retry import RetryPolicy, build_retry_transport
from baremetal_provider.transport.tls import TransportConfig, build_transport

logger = logging.getLogger(__name__)

USER_AGENT = f"baremetal-terraform-v{__version__}"
DEFAULT_URL_TEMPLATE = "https://{service}.{region}.oraclecloud.com/{version}"
DEFAULT_API_VERSION = "20160918"

URL_TEMPLATE_FIELDS: frozenset[str] = frozenset(["service", "region", "version"])
REQUIRED_URL_TEMPLATE_FIELDS: frozenset[str] = frozenset(["service", "region"])

_REGION_PATTERN = re.compile(r"^[a-z]+(-[a-z]+)+-\d+$")


@dataclass(frozen=True)
class ClientOptions:
    """Accumulated inputs for building a client handle.

    Optional fields stay None unless explicitly supplied, so the handle's
    own defaults apply.
    """

    credentials: CredentialBundle
    transport_config: TransportConfig = field(default_factory=TransportConfig.secure)
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)
    region: str | None = None
    url_template: str | None = None
    user_agent: str = USER_AGENT

    @classmethod
    def from_config(
        cls,
        config: ProviderConfig,
        transport_config: TransportConfig,
        retry_policy: RetryPolicy | None = None,
    ) -> "ClientOptions":
        """Build options from resolved provider configuration.

        Args:
            config: Resolved settings.
            transport_config: Selected transport mode.
            retry_policy: Base policy (backoff tuning). The operator's
                disable_auto_retries setting is applied on top of it only
                when it was explicitly set.
        """
        policy = retry_policy or RetryPolicy()
        if config.disable_auto_retries is not None:
            policy = RetryPolicy(
                enabled=not config.disable_auto_retries,
                max_retries=policy.max_retries,
                backoff_factor=policy.backoff_factor,
                max_backoff=policy.max_backoff,
            )

        return cls(
            credentials=config.credentials,
            transport_config=transport_config,
            retry_policy=policy,
            region=config.region or None,
            url_template=config.url_template or None,
        )

    @property
    def effective_region(self) -> str:
        return self.region or settings.DEFAULT_REGION

    @property
    def effective_url_template(self) -> str:
        return self.url_template or DEFAULT_URL_TEMPLATE

    def validate(self) -> None:
        """Check region and URL template before anything is built.

        Raises:
            ClientConstructionError: Naming the invalid setting.
        """
        region = self.effective_region
        if not _REGION_PATTERN.match(region):
            raise ClientConstructionError(
                f"Invalid {settings.REGION} {region!r}: expected an identifier like 'us-phoenix-1'",
                setting_name=settings.REGION,
            )
        validate_url_template(self.effective_url_template)


def validate_url_template(template: str) -> None:
    """Check that a URL template formats into an absolute http(s) URL.

    Raises:
        ClientConstructionError: If the template has unknown or missing
            placeholders, or does not produce a usable URL.
    """
    try:
        fields = {name for _, name, _, _ in string.Formatter().parse(template) if name is not None}
    except ValueError as e:
        raise ClientConstructionError(
            f"Invalid {settings.URL_TEMPLATE} {template!r}: {e}", setting_name=settings.URL_TEMPLATE
        ) from e

    unknown = fields - URL_TEMPLATE_FIELDS
    missing = REQUIRED_URL_TEMPLATE_FIELDS - fields
    if unknown or missing:
        problems = []
        if unknown:
            problems.append(f"unknown placeholders {sorted(unknown)}")
        if missing:
            problems.append(f"missing placeholders {sorted(missing)}")
        raise ClientConstructionError(
            f"Invalid {settings.URL_TEMPLATE} {template!r}: {', '.join(problems)}",
            setting_name=settings.URL_TEMPLATE,
        )

    sample = httpx.URL(template.format(service="iaas", region="us-phoenix-1", version=DEFAULT_API_VERSION))
    if sample.scheme not in ("http", "https") or not sample.host:
        raise ClientConstructionError(
            f"Invalid {settings.URL_TEMPLATE} {template!r}: must produce an absolute http(s) URL",
            setting_name=settings.URL_TEMPLATE,
        )


class ClientHandle:
    """Configured, signing, retrying API client shared by every registry entry.

    The handle is immutable after construction and safe to share between
    concurrently running handlers. Retry waits happen inside each call and
    hold no shared lock.

    Args:
        options: Accumulated client options.
        transport: Base transport override (tests inject httpx.MockTransport).
            The retry policy is still applied on top of it.

    Raises:
        ClientConstructionError: If the region or URL template is invalid.
        KeyMaterialError: If the key file is unreadable or the key malformed.
    """

    def __init__(self, options: ClientOptions, *, transport: httpx.AsyncBaseTransport | None = None):
        options.validate()
        private_key = load_private_key(options.credentials)

        self._region = options.effective_region
        self._url_template = options.effective_url_template
        self._user_agent = options.user_agent
        self._retry_policy = options.retry_policy
        self._transport_config = options.transport_config
        self._key_id = options.credentials.key_id

        base_transport = transport or build_transport(options.transport_config, host=self._endpoint_host())
        self._client = httpx.AsyncClient(
            transport=build_retry_transport(base_transport, options.retry_policy),
            auth=RequestSigner(key_id=self._key_id, private_key=private_key),
            headers={"user-agent": self._user_agent, "accept": "application/json"},
        )

        logger.debug(
            f"Built API client (region={self._region}, retries="
            f"{'enabled' if self._retry_policy.enabled else 'disabled'}, "
            f"transport={self._transport_config.mode})"
        )

    @property
    def region(self) -> str:
        return self._region

    @property
    def url_template(self) -> str:
        return self._url_template

    @property
    def user_agent(self) -> str:
        return self._user_agent

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._retry_policy

    @property
    def transport_config(self) -> TransportConfig:
        return self._transport_config

    @property
    def key_id(self) -> str:
        return self._key_id

    def describe(self) -> MappingProxyType:
        """Observable configuration of the handle (no secrets)."""
        return MappingProxyType(
            {
                "region": self._region,
                "url_template": self._url_template,
                "user_agent": self._user_agent,
                "retry_enabled": self._retry_policy.enabled,
                "max_attempts": self._retry_policy.max_attempts,
                "transport_mode": self._transport_config.mode,
            }
        )

    def endpoint(self, service: str, version: str = DEFAULT_API_VERSION) -> str:
        """Base URL for a service in this handle's region."""
        return self._url_template.format(service=service, region=self._region, version=version)

    def _endpoint_host(self) -> str | None:
        return httpx.URL(self.endpoint("iaas")).host or None

    async def request(
        self,
        method: str,
        service: str,
        path: str,
        *,
        version: str = DEFAULT_API_VERSION,
        params: dict[str, Any] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Send a signed request to a service endpoint.

        Transient errors are retried according to the retry policy before
        this returns or raises.

        Raises:
            TransientAPIError: If a retriable error persists (or retries are disabled).
            TerminalAPIError: If the API rejects the request.
        """
        url = self.endpoint(service, version).rstrip("/") + "/" + path.lstrip("/")
        response = await self._client.request(method, url, params=params, json=json, headers=headers)
        raise_for_status(response)
        return response

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "ClientHandle":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    def __repr__(self) -> str:
        return f"ClientHandle(region={self._region!r}, key_id={self._key_id!r}, transport={self._transport_config.mode!r})"


def create_client(
    credentials: CredentialBundle,
    transport_config: TransportConfig,
    retry_policy: RetryPolicy | None = None,
    *,
    region: str | None = None,
    url_template: str | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ClientHandle:
    """Build a client handle from already-resolved inputs."""
    options = ClientOptions(
        credentials=credentials,
        transport_config=transport_config,
        retry_policy=retry_policy or RetryPolicy(),
        region=region or None,
        url_template=url_template or None,
    )
    return ClientHandle(options, transport=transport)
