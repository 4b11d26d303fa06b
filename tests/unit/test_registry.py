"""Tests for the resource and data-source registries."""

import pytest

from baremetal_provider.registry import (
    DATA_SOURCE_CAPABILITIES,
    DATA_SOURCE_TYPES,
    RESOURCE_CAPABILITIES,
    RESOURCE_TYPES,
    Capability,
    InvalidTypeNameError,
    RegistryEntry,
    RegistryError,
    ResourceRegistry,
    TypeKind,
    UnknownTypeError,
    UnsupportedOperationError,
    build_registries,
    build_registry,
    validate_type_name,
)
from baremetal_provider.testing import RecordingHandler, recording_handler_factory


@pytest.fixture
def registries():
    factory, created = recording_handler_factory()
    resources, data_sources = build_registries(factory)
    return resources, data_sources, created


class TestTypeNames:
    @pytest.mark.unit
    def test_builtin_names_follow_convention(self):
        for name in RESOURCE_TYPES + DATA_SOURCE_TYPES:
            validate_type_name(name)

    @pytest.mark.unit
    def test_builtin_names_are_unique_per_kind(self):
        assert len(set(RESOURCE_TYPES)) == len(RESOURCE_TYPES)
        assert len(set(DATA_SOURCE_TYPES)) == len(DATA_SOURCE_TYPES)

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "name",
        ["baremetal_instance", "Baremetal_core_instance", "aws_core_instance", "baremetal-core-instance", ""],
    )
    def test_invalid_names_rejected(self, name):
        with pytest.raises(InvalidTypeNameError):
            validate_type_name(name)


class TestBuildRegistries:
    @pytest.mark.unit
    def test_every_type_registered(self, registries):
        resources, data_sources, _ = registries

        assert len(resources) == len(RESOURCE_TYPES) == 33
        assert len(data_sources) == len(DATA_SOURCE_TYPES) == 50
        assert set(resources) == set(RESOURCE_TYPES)

    @pytest.mark.unit
    def test_handlers_created_once_per_type(self, registries):
        resources, data_sources, created = registries

        assert len(created) == len(RESOURCE_TYPES) + len(DATA_SOURCE_TYPES)
        entry = resources.lookup("baremetal_core_instance")
        assert entry.handler is created[(TypeKind.RESOURCE, "baremetal_core_instance")]

    @pytest.mark.unit
    def test_capabilities_by_kind(self, registries):
        resources, data_sources, _ = registries

        assert resources.capabilities("baremetal_core_volume") == RESOURCE_CAPABILITIES
        assert data_sources.capabilities("baremetal_core_volumes") == DATA_SOURCE_CAPABILITIES == {Capability.READ}

    @pytest.mark.unit
    def test_same_name_in_both_kinds(self, registries):
        """dhcp_options is both a resource and a data source."""
        resources, data_sources, _ = registries

        assert resources.lookup("baremetal_core_dhcp_options").kind is TypeKind.RESOURCE
        assert data_sources.lookup("baremetal_core_dhcp_options").kind is TypeKind.DATA_SOURCE

    @pytest.mark.unit
    def test_lookup_is_idempotent(self, registries):
        resources, _, _ = registries

        first = resources.lookup("baremetal_identity_user")
        second = resources.lookup("baremetal_identity_user")

        assert first is second
        assert first.capabilities == second.capabilities

    @pytest.mark.unit
    def test_unknown_type(self, registries):
        resources, data_sources, _ = registries

        with pytest.raises(UnknownTypeError) as exc_info:
            resources.lookup("baremetal_core_nonexistent")

        assert exc_info.value.type_name == "baremetal_core_nonexistent"
        assert "baremetal_core_nonexistent" in str(exc_info.value)

        with pytest.raises(UnknownTypeError):
            data_sources.lookup("baremetal_core_instance")

    @pytest.mark.unit
    def test_registry_is_read_only(self, registries):
        resources, _, _ = registries

        with pytest.raises(TypeError):
            resources.entries["baremetal_core_extra"] = None

    @pytest.mark.unit
    def test_handler_missing_operations_rejected(self):
        class ReadOnly:
            async def read(self, client, data):
                return {}

        with pytest.raises(RegistryError) as exc_info:
            build_registry(TypeKind.RESOURCE, ["baremetal_core_instance"], lambda name, kind: ReadOnly())

        assert "baremetal_core_instance" in str(exc_info.value)

    @pytest.mark.unit
    def test_read_only_handler_is_enough_for_data_sources(self):
        class ReadOnly:
            async def read(self, client, data):
                return {}

        registry = build_registry(TypeKind.DATA_SOURCE, ["baremetal_core_images"], lambda name, kind: ReadOnly())

        assert "baremetal_core_images" in registry

    @pytest.mark.unit
    def test_missing_handler_rejected(self):
        with pytest.raises(RegistryError):
            build_registry(TypeKind.RESOURCE, ["baremetal_core_instance"], lambda name, kind: None)

    @pytest.mark.unit
    def test_duplicate_names_rejected(self):
        factory, _ = recording_handler_factory()

        with pytest.raises(RegistryError):
            build_registry(TypeKind.RESOURCE, ["baremetal_core_cpe", "baremetal_core_cpe"], factory)

    @pytest.mark.unit
    def test_kind_mismatch_rejected(self):
        handler = RecordingHandler("baremetal_core_cpes", TypeKind.DATA_SOURCE)
        entry = RegistryEntry("baremetal_core_cpes", TypeKind.DATA_SOURCE, DATA_SOURCE_CAPABILITIES, handler)

        with pytest.raises(RegistryError):
            ResourceRegistry(TypeKind.RESOURCE, [entry])


class TestBoundRegistry:
    @pytest.mark.unit
    async def test_entries_share_one_client(self, registries):
        resources, data_sources, _ = registries
        client = object()

        bound = resources.bind(client)

        assert bound.client is client
        assert bound.lookup("baremetal_core_instance").client is client
        assert bound.lookup("baremetal_core_subnet").client is client

    @pytest.mark.unit
    async def test_bound_lookup_is_idempotent(self, registries):
        resources, _, _ = registries
        bound = resources.bind(object())

        assert bound.lookup("baremetal_core_drg") is bound.lookup("baremetal_core_drg")

    @pytest.mark.unit
    async def test_dispatch_passes_client_and_data(self, registries):
        resources, _, created = registries
        client = object()
        entry = resources.bind(client).lookup("baremetal_core_instance")

        result = await entry.create({"displayName": "web-1"})

        handler = created[(TypeKind.RESOURCE, "baremetal_core_instance")]
        assert handler.calls == [("create", client, {"displayName": "web-1"})]
        assert result == {"type": "baremetal_core_instance", "operation": "create", "displayName": "web-1"}

    @pytest.mark.unit
    async def test_all_resource_operations_dispatch(self, registries):
        resources, _, created = registries
        entry = resources.bind(object()).lookup("baremetal_objectstorage_bucket")

        await entry.create({})
        await entry.read({})
        await entry.update({})
        await entry.delete({})

        handler = created[(TypeKind.RESOURCE, "baremetal_objectstorage_bucket")]
        assert [call[0] for call in handler.calls] == ["create", "read", "update", "delete"]

    @pytest.mark.unit
    async def test_data_source_rejects_writes(self, registries):
        _, data_sources, created = registries
        entry = data_sources.bind(object()).lookup("baremetal_core_instances")

        await entry.read({"compartment_id": "c"})
        with pytest.raises(UnsupportedOperationError) as exc_info:
            await entry.create({})

        assert exc_info.value.capability is Capability.CREATE
        handler = created[(TypeKind.DATA_SOURCE, "baremetal_core_instances")]
        assert [call[0] for call in handler.calls] == ["read"]

    @pytest.mark.unit
    def test_bound_unknown_type(self, registries):
        resources, _, _ = registries

        with pytest.raises(UnknownTypeError):
            resources.bind(object()).lookup("baremetal_core_unknown")
