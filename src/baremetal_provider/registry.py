"""Registry of resource and data-source types.

Two read-only tables map type names to entries: resources support Create,
Read, Update and Delete; data sources support Read only. All entries are
built once at startup. Binding a table to a client handle produces a
session view in which every entry shares that one handle.

The registry only associates names with handlers. What a handler does with
the client (issuing calls, polling for convergence, mapping records to
declarative state) belongs to the handler.

Example:
    ```python
    resources, data_sources = build_registries(handler_factory)

    session = resources.bind(client)
    await session.lookup("baremetal_core_instance").read({"id": instance_id})
    ```
"""

import enum
import logging
import re
from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from baremetal_provider.client import ClientHandle

logger = logging.getLogger(__name__)

PRODUCT_PREFIX = "baremetal"

TYPE_NAME_PATTERN = re.compile(r"^[a-z0-9]+(_[a-z0-9]+){2,}$")


class Capability(enum.Enum):
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"


class TypeKind(enum.Enum):
    RESOURCE = "resource"
    DATA_SOURCE = "data_source"


RESOURCE_CAPABILITIES: frozenset[Capability] = frozenset(Capability)
DATA_SOURCE_CAPABILITIES: frozenset[Capability] = frozenset([Capability.READ])

KIND_CAPABILITIES: Mapping[TypeKind, frozenset[Capability]] = MappingProxyType(
    {
        TypeKind.RESOURCE: RESOURCE_CAPABILITIES,
        TypeKind.DATA_SOURCE: DATA_SOURCE_CAPABILITIES,
    }
)


class RegistryError(Exception):
    """Base exception for registry errors."""

    pass


class UnknownTypeError(RegistryError, LookupError):
    """Raised when a type name is not registered."""

    def __init__(self, type_name: str, kind: TypeKind):
        super().__init__(f"Unknown {kind.value.replace('_', ' ')} type: {type_name!r}")
        self.type_name = type_name
        self.kind = kind


class UnsupportedOperationError(RegistryError):
    """Raised when an entry is asked for an operation outside its capabilities."""

    def __init__(self, type_name: str, capability: Capability):
        super().__init__(f"{type_name!r} does not support {capability.value}")
        self.type_name = type_name
        self.capability = capability


class InvalidTypeNameError(RegistryError, ValueError):
    """Raised at build time for names that break the naming convention."""

    pass


@runtime_checkable
class DataSourceHandler(Protocol):
    """Read-only handler for a data-source type."""

    async def read(self, client: "ClientHandle", data: Mapping[str, Any]) -> Any: ...


@runtime_checkable
class ResourceHandler(DataSourceHandler, Protocol):
    """CRUD handler for a resource type."""

    async def create(self, client: "ClientHandle", data: Mapping[str, Any]) -> Any: ...

    async def update(self, client: "ClientHandle", data: Mapping[str, Any]) -> Any: ...

    async def delete(self, client: "ClientHandle", data: Mapping[str, Any]) -> Any: ...


HandlerFactory = Callable[[str, TypeKind], DataSourceHandler]


RESOURCE_TYPES: tuple[str, ...] = (
    "baremetal_core_console_history",
    "baremetal_core_cpe",
    "baremetal_core_dhcp_options",
    "baremetal_core_drg",
    "baremetal_core_drg_attachment",
    "baremetal_core_image",
    "baremetal_core_instance",
    "baremetal_core_internet_gateway",
    "baremetal_core_ipsec",
    "baremetal_core_route_table",
    "baremetal_core_security_list",
    "baremetal_core_subnet",
    "baremetal_core_virtual_network",
    "baremetal_core_volume",
    "baremetal_core_volume_attachment",
    "baremetal_core_volume_backup",
    "baremetal_database_db_system",
    "baremetal_identity_api_key",
    "baremetal_identity_compartment",
    "baremetal_identity_group",
    "baremetal_identity_policy",
    "baremetal_identity_swift_password",
    "baremetal_identity_ui_password",
    "baremetal_identity_user",
    "baremetal_identity_user_group_membership",
    "baremetal_load_balancer",
    "baremetal_load_balancer_backend",
    "baremetal_load_balancer_backendset",
    "baremetal_load_balancer_certificate",
    "baremetal_load_balancer_listener",
    "baremetal_objectstorage_bucket",
    "baremetal_objectstorage_object",
    "baremetal_objectstorage_preauthrequest",
)

DATA_SOURCE_TYPES: tuple[str, ...] = (
    "baremetal_core_console_history_data",
    "baremetal_core_cpes",
    "baremetal_core_dhcp_options",
    "baremetal_core_drg_attachments",
    "baremetal_core_drgs",
    "baremetal_core_images",
    "baremetal_core_instance_credentials",
    "baremetal_core_instances",
    "baremetal_core_internet_gateways",
    "baremetal_core_ipsec_config",
    "baremetal_core_ipsec_connections",
    "baremetal_core_ipsec_status",
    "baremetal_core_route_tables",
    "baremetal_core_security_lists",
    "baremetal_core_shape",
    "baremetal_core_subnets",
    "baremetal_core_virtual_networks",
    "baremetal_core_vnic",
    "baremetal_core_vnic_attachments",
    "baremetal_core_volume_attachments",
    "baremetal_core_volume_backups",
    "baremetal_core_volumes",
    "baremetal_database_database",
    "baremetal_database_databases",
    "baremetal_database_db_home",
    "baremetal_database_db_homes",
    "baremetal_database_db_node",
    "baremetal_database_db_nodes",
    "baremetal_database_db_system_shapes",
    "baremetal_database_db_systems",
    "baremetal_database_db_versions",
    "baremetal_identity_api_keys",
    "baremetal_identity_availability_domains",
    "baremetal_identity_compartments",
    "baremetal_identity_groups",
    "baremetal_identity_policies",
    "baremetal_identity_swift_passwords",
    "baremetal_identity_user_group_memberships",
    "baremetal_identity_users",
    "baremetal_load_balancer_backends",
    "baremetal_load_balancer_backendsets",
    "baremetal_load_balancer_certificates",
    "baremetal_load_balancer_policies",
    "baremetal_load_balancer_protocols",
    "baremetal_load_balancer_shapes",
    "baremetal_load_balancers",
    "baremetal_objectstorage_bucket_summaries",
    "baremetal_objectstorage_namespace",
    "baremetal_objectstorage_object_head",
    "baremetal_objectstorage_objects",
)


def validate_type_name(type_name: str, prefix: str = PRODUCT_PREFIX) -> None:
    """Check the `<product>_<service>_<noun>` naming convention.

    Raises:
        InvalidTypeNameError: If the name does not follow the convention.
    """
    if not TYPE_NAME_PATTERN.match(type_name) or not type_name.startswith(f"{prefix}_"):
        raise InvalidTypeNameError(
            f"Invalid type name {type_name!r}: expected '{prefix}_<service>_<noun>' in lowercase"
        )


@dataclass(frozen=True)
class RegistryEntry:
    """A registered type and the handler that implements it."""

    type_name: str
    kind: TypeKind
    capabilities: frozenset[Capability]
    handler: DataSourceHandler = field(compare=False, repr=False)

    def supports(self, capability: Capability) -> bool:
        return capability in self.capabilities


class BoundEntry:
    """A registry entry bound to the session's client handle."""

    def __init__(self, entry: RegistryEntry, client: "ClientHandle"):
        self._entry = entry
        self._client = client

    @property
    def entry(self) -> RegistryEntry:
        return self._entry

    @property
    def type_name(self) -> str:
        return self._entry.type_name

    @property
    def capabilities(self) -> frozenset[Capability]:
        return self._entry.capabilities

    @property
    def client(self) -> "ClientHandle":
        return self._client

    async def _dispatch(self, capability: Capability, data: Mapping[str, Any]) -> Any:
        if not self._entry.supports(capability):
            raise UnsupportedOperationError(self._entry.type_name, capability)
        operation = getattr(self._entry.handler, capability.value)
        return await operation(self._client, data)

    async def create(self, data: Mapping[str, Any]) -> Any:
        return await self._dispatch(Capability.CREATE, data)

    async def read(self, data: Mapping[str, Any]) -> Any:
        return await self._dispatch(Capability.READ, data)

    async def update(self, data: Mapping[str, Any]) -> Any:
        return await self._dispatch(Capability.UPDATE, data)

    async def delete(self, data: Mapping[str, Any]) -> Any:
        return await self._dispatch(Capability.DELETE, data)


class ResourceRegistry:
    """Read-only mapping of type name to registry entry for one kind of type."""

    def __init__(self, kind: TypeKind, entries: Iterable[RegistryEntry]):
        table: dict[str, RegistryEntry] = {}
        for entry in entries:
            if entry.kind is not kind:
                raise RegistryError(f"{entry.type_name!r} is a {entry.kind.value}, not a {kind.value}")
            if entry.type_name in table:
                raise RegistryError(f"Duplicate {kind.value} type: {entry.type_name!r}")
            table[entry.type_name] = entry

        self._kind = kind
        self._entries = MappingProxyType(table)

    @property
    def kind(self) -> TypeKind:
        return self._kind

    @property
    def entries(self) -> Mapping[str, RegistryEntry]:
        return self._entries

    def __contains__(self, type_name: object) -> bool:
        return type_name in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def names(self) -> list[str]:
        return sorted(self._entries)

    def lookup(self, type_name: str) -> RegistryEntry:
        """Return the entry for a type name.

        Raises:
            UnknownTypeError: If the name is not registered.
        """
        try:
            return self._entries[type_name]
        except KeyError:
            raise UnknownTypeError(type_name, self._kind) from None

    def capabilities(self, type_name: str) -> frozenset[Capability]:
        return self.lookup(type_name).capabilities

    def bind(self, client: "ClientHandle") -> "BoundRegistry":
        return BoundRegistry(self, client)


class BoundRegistry:
    """Session view of a registry; every entry shares the same client handle."""

    def __init__(self, registry: ResourceRegistry, client: "ClientHandle"):
        self._registry = registry
        self._client = client
        self._bound = MappingProxyType({name: BoundEntry(entry, client) for name, entry in registry.entries.items()})

    @property
    def registry(self) -> ResourceRegistry:
        return self._registry

    @property
    def client(self) -> "ClientHandle":
        return self._client

    def __contains__(self, type_name: object) -> bool:
        return type_name in self._bound

    def __len__(self) -> int:
        return len(self._bound)

    def lookup(self, type_name: str) -> BoundEntry:
        """Return the bound entry for a type name.

        Raises:
            UnknownTypeError: If the name is not registered.
        """
        try:
            return self._bound[type_name]
        except KeyError:
            raise UnknownTypeError(type_name, self._registry.kind) from None


def _check_handler(type_name: str, kind: TypeKind, handler: Any) -> None:
    if handler is None:
        raise RegistryError(f"No handler for {kind.value} type {type_name!r}")
    for capability in KIND_CAPABILITIES[kind]:
        if not callable(getattr(handler, capability.value, None)):
            raise RegistryError(f"Handler for {type_name!r} does not implement {capability.value}")


def build_registry(
    kind: TypeKind,
    type_names: Iterable[str],
    handler_factory: HandlerFactory,
) -> ResourceRegistry:
    """Build a registry for one kind, creating every handler up front.

    Raises:
        InvalidTypeNameError: If a name breaks the naming convention.
        RegistryError: If a handler is missing operations, or names repeat.
    """
    entries = []
    for type_name in type_names:
        validate_type_name(type_name)
        handler = handler_factory(type_name, kind)
        _check_handler(type_name, kind, handler)
        entries.append(RegistryEntry(type_name, kind, KIND_CAPABILITIES[kind], handler))

    registry = ResourceRegistry(kind, entries)
    logger.debug(f"Registered {len(registry)} {kind.value} types")
    return registry


def build_registries(
    handler_factory: HandlerFactory,
    resource_types: Iterable[str] = RESOURCE_TYPES,
    data_source_types: Iterable[str] = DATA_SOURCE_TYPES,
) -> tuple[ResourceRegistry, ResourceRegistry]:
    """Build the resource and data-source registries."""
    return (
        build_registry(TypeKind.RESOURCE, resource_types, handler_factory),
        build_registry(TypeKind.DATA_SOURCE, data_source_types, handler_factory),
    )
