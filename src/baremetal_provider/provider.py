"""Provider bootstrap.

`Provider` is what the configuration-management host talks to. It holds the
setting schema and the resource/data-source registries, which are built
once. `Provider.configure()` turns host settings into a session:

    Credential Resolver → Transport Builder → Client Factory → ClientHandle

Any configuration error aborts before a handle exists, so no handler ever
runs against a half-configured client.
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Any

import httpx

from baremetal_provider.auth.credentials import ConfigurationSource, CredentialResolver
from baremetal_provider.auth.settings import ProviderSchema, default_schema
from baremetal_provider.client import ClientHandle, ClientOptions
from baremetal_provider.registry import (
    DATA_SOURCE_TYPES,
    RESOURCE_TYPES,
    BoundEntry,
    BoundRegistry,
    HandlerFactory,
    ResourceRegistry,
    build_registries,
)
from baremetal_provider.transport.retry import RetryPolicy
from baremetal_provider.transport.tls import build_transport_config

logger = logging.getLogger(__name__)


def configure(
    source: ConfigurationSource,
    schema: ProviderSchema | None = None,
    *,
    retry_policy: RetryPolicy | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ClientHandle:
    """Build the session client handle from a configuration source.

    Args:
        source: Layered settings lookup.
        schema: Setting metadata; defaults to the provider schema.
        retry_policy: Base retry tuning; disable_auto_retries applies on top.
        transport: Base transport override, mainly for tests.

    Raises:
        MissingCredentialError: If credentials are missing.
        KeyMaterialError: If the key is unreadable or malformed.
        ClientConstructionError: For any other invalid setting.
    """
    config = CredentialResolver(schema=schema, source=source).resolve()
    transport_config = build_transport_config(config.allow_insecure_tls)
    options = ClientOptions.from_config(config, transport_config, retry_policy)
    return ClientHandle(options, transport=transport)


class ProviderSession:
    """One configured provider session: a client handle and the bound registries."""

    def __init__(self, client: ClientHandle, resources: ResourceRegistry, data_sources: ResourceRegistry):
        self._client = client
        self._resources = resources.bind(client)
        self._data_sources = data_sources.bind(client)

    @property
    def client(self) -> ClientHandle:
        return self._client

    @property
    def resources(self) -> BoundRegistry:
        return self._resources

    @property
    def data_sources(self) -> BoundRegistry:
        return self._data_sources

    def resource(self, type_name: str) -> BoundEntry:
        return self._resources.lookup(type_name)

    def data_source(self, type_name: str) -> BoundEntry:
        return self._data_sources.lookup(type_name)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "ProviderSession":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()


class Provider:
    """Adapter between the host and the provider's resources.

    Args:
        handler_factory: Called once per type name at construction to
            create its handler.
        schema: Setting metadata; defaults to the provider schema.
        resource_types: Resource type names to register.
        data_source_types: Data-source type names to register.

    Example:
        ```python
        provider = Provider(handler_factory=handlers.for_type)
        async with provider.configure(host_settings) as session:
            await session.resource("baremetal_core_virtual_network").create(desired)
        ```
    """

    def __init__(
        self,
        handler_factory: HandlerFactory,
        *,
        schema: ProviderSchema | None = None,
        resource_types: Iterable[str] = RESOURCE_TYPES,
        data_source_types: Iterable[str] = DATA_SOURCE_TYPES,
    ):
        self.schema = schema or default_schema()
        self.resources, self.data_sources = build_registries(handler_factory, resource_types, data_source_types)

    def configure(
        self,
        config: Mapping[str, Any] | None = None,
        *,
        source: ConfigurationSource | None = None,
        retry_policy: RetryPolicy | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> ProviderSession:
        """Configure a new session from host settings.

        Args:
            config: Explicit settings from the host's declarative config.
            source: Prebuilt configuration source (takes precedence over `config`).
            retry_policy: Base retry tuning.
            transport: Base transport override, mainly for tests.
        """
        source = source or ConfigurationSource(config)
        client = configure(source, self.schema, retry_policy=retry_policy, transport=transport)
        logger.info(
            f"Configured provider session in {client.region} "
            f"({len(self.resources)} resources, {len(self.data_sources)} data sources)"
        )
        return ProviderSession(client, self.resources, self.data_sources)
