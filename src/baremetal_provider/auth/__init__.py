"""Credential resolution and request signing for the provider.

This module provides:
- Setting metadata (the provider schema)
- Layered setting lookup (config → TF_VAR_* → OBMCS_* → bare env → default)
- Validated credential bundles and typed provider configuration
- PEM key loading and RSA-SHA256 request signing

Example:
    ```python
    from baremetal_provider.auth import ConfigurationSource, CredentialResolver

    resolver = CredentialResolver(source=ConfigurationSource(host_config))
    config = resolver.resolve()
    ```
"""

from baremetal_provider.auth.credentials import (
    ConfigurationSource,
    CredentialBundle,
    CredentialResolver,
    ProviderConfig,
    get_env_setting,
    get_required_env_setting,
)
from baremetal_provider.auth.exceptions import (
    ClientConstructionError,
    ConfigurationError,
    KeyMaterialError,
    MissingCredentialError,
)
from baremetal_provider.auth.keys import load_private_key
from baremetal_provider.auth.settings import ProviderSchema, SettingSpec, default_schema
from baremetal_provider.auth.signer import RequestSigner

__all__ = [
    "ClientConstructionError",
    "ConfigurationError",
    "ConfigurationSource",
    "CredentialBundle",
    "CredentialResolver",
    "KeyMaterialError",
    "MissingCredentialError",
    "ProviderConfig",
    "ProviderSchema",
    "RequestSigner",
    "SettingSpec",
    "default_schema",
    "get_env_setting",
    "get_required_env_setting",
    "load_private_key",
]
