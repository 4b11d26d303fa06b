"""Layered credential resolution for the provider.

Every setting resolves through the same ordered list of sources, and the
first non-empty value wins:

1. Explicitly provided configuration (the host's declarative config)
2. `TF_VAR_<name>` environment variable
3. `OBMCS_<NAME>` environment variable (provider namespace)
4. Bare `<NAME>` environment variable
5. Schema default

Internal settings (`url_template`, `allow_insecure_tls`) skip step 1; they can
only come from the environment.

Example:
    ```python
    from baremetal_provider.auth import ConfigurationSource, CredentialResolver

    source = ConfigurationSource({"region": "us-ashburn-1"})
    config = CredentialResolver(source=source).resolve()
    config.credentials.tenancy_ocid
    ```

Security Considerations:
    - Sensitive values (private key, key password) are never logged
    - Only the source of a value is logged, at DEBUG level
    - The key file is not read here; reading happens at client construction
    - Thread-safe dotenv loading with lock
"""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from threading import Lock
from typing import Any

from dotenv import load_dotenv

from baremetal_provider.auth import settings
from baremetal_provider.auth.exceptions import ClientConstructionError, MissingCredentialError
from baremetal_provider.auth.settings import ProviderSchema, default_schema

logger = logging.getLogger(__name__)

TF_VAR_PREFIX = "TF_VAR_"
PROVIDER_PREFIX = "OBMCS"

_TRUE_VALUES = frozenset(["true", "1", "yes", "on"])
_FALSE_VALUES = frozenset(["false", "0", "no", "off"])


def env_var_names(name: str, prefix: str = PROVIDER_PREFIX) -> tuple[str, ...]:
    """Return the environment variables checked for a setting, in priority order.

    The provider-namespaced and bare variants are checked upper-cased first,
    then exactly as the setting is spelled.

    Example:
        ```python
        env_var_names("region")
        # ('TF_VAR_region', 'OBMCS_REGION', 'OBMCS_region', 'REGION', 'region')
        ```
    """
    candidates = [
        f"{TF_VAR_PREFIX}{name}",
        f"{prefix}_{name.upper()}",
        f"{prefix}_{name}",
        name.upper(),
        name,
    ]
    return tuple(dict.fromkeys(candidates))


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value == "")


def parse_bool(name: str, value: str | bool) -> bool:
    """Convert a boolean-like setting value, naming the setting on failure."""
    if isinstance(value, bool):
        return value
    normalized = str(value).strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise ClientConstructionError(
        f"Setting '{name}' must be a boolean (true/false), got {value!r}", setting_name=name
    )


@dataclass(frozen=True)
class ResolvedSetting:
    """A setting value together with where it came from.

    `source` is None when the value is the schema default (or absent), which
    lets callers apply a setting only when it was explicitly supplied.
    """

    name: str
    value: Any
    source: str | None = None

    @property
    def explicit(self) -> bool:
        return self.source is not None


class ConfigurationSource:
    """Ordered lookup of named settings across explicit config and environment.

    Attributes:
        _dotenv_loaded: Whether .env file has been loaded.
        _dotenv_lock: Thread lock for safe dotenv loading.
    """

    def __init__(
        self,
        config: Mapping[str, Any] | None = None,
        *,
        prefix: str = PROVIDER_PREFIX,
        dotenv_path: str | None = None,
        load_dotenv: bool = True,
    ):
        """Initialize configuration source.

        Args:
            config: Explicit settings from the host (highest priority).
            prefix: Provider namespace for environment variables.
            dotenv_path: Path to .env file. If None, python-dotenv searches
                parent directories.
            load_dotenv: Whether to load a .env file into the environment.
                Existing environment variables are never overridden.
        """
        self._config = dict(config or {})
        self._prefix = prefix
        self._dotenv_loaded = False
        self._dotenv_lock = Lock()
        self._dotenv_path = dotenv_path
        self._load_dotenv_enabled = load_dotenv

        if self._load_dotenv_enabled:
            self._ensure_dotenv_loaded()

    def _ensure_dotenv_loaded(self) -> None:
        """Ensure .env file is loaded (thread-safe, once)."""
        if self._dotenv_loaded:
            return

        with self._dotenv_lock:
            if self._dotenv_loaded:
                return

            try:
                load_dotenv(dotenv_path=self._dotenv_path)
                self._dotenv_loaded = True
                logger.debug("Loaded .env file for setting resolution")
            except Exception as e:
                logger.warning(f"Failed to load .env file: {e}")
                # Continue without .env
                self._dotenv_loaded = True

    def env_var_names(self, name: str) -> tuple[str, ...]:
        return env_var_names(name, self._prefix)

    def lookup(
        self,
        name: str,
        default: Any = None,
        *,
        include_config: bool = True,
        sensitive: bool = False,
    ) -> ResolvedSetting:
        """Resolve a setting; the first non-empty value wins.

        Args:
            name: Setting name as declared in the schema.
            default: Value returned when no source provides one.
            include_config: Whether explicit config is consulted. False for
                environment-only settings.
            sensitive: Suppress the value in debug logs.

        Returns:
            ResolvedSetting with the value and its source.
        """
        if include_config and not _is_empty(self._config.get(name)):
            return self._resolved(name, self._config[name], "explicit configuration", sensitive)

        for env_name in self.env_var_names(name):
            value = os.environ.get(env_name)
            if not _is_empty(value):
                return self._resolved(name, value, f"environment variable '{env_name}'", sensitive)

        return ResolvedSetting(name, default)

    def get(self, name: str, default: Any = None) -> Any:
        return self.lookup(name, default).value

    def _resolved(self, name: str, value: Any, source: str, sensitive: bool) -> ResolvedSetting:
        shown = "***" if sensitive else value
        logger.debug(f"Resolved setting '{name}' from {source}: {shown}")
        return ResolvedSetting(name, value, source)


def get_env_setting(name: str, default: str = "") -> str:
    """Resolve an environment-only setting (TF_VAR_ → OBMCS_ → bare → default)."""
    source = ConfigurationSource(load_dotenv=False)
    return source.lookup(name, default, include_config=False).value


def get_required_env_setting(name: str) -> str:
    """Resolve an environment-only setting that must be present.

    Raises:
        MissingCredentialError: If none of the environment variants is set.
    """
    value = get_env_setting(name)
    if value == "":
        names = env_var_names(name)
        raise MissingCredentialError(
            f"Required env setting {name} is missing (checked: {', '.join(names)})",
            setting_names=(name,),
            env_var_names=names,
        )
    return value


@dataclass(frozen=True)
class CredentialBundle:
    """Identity and key material used to sign requests.

    Exactly one of `private_key` and `private_key_path` is set. Key text and
    password are kept out of `repr`.
    """

    tenancy_ocid: str
    user_ocid: str
    fingerprint: str
    private_key: str | None = field(default=None, repr=False)
    private_key_path: str | None = None
    private_key_password: str | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if bool(self.private_key) == bool(self.private_key_path):
            raise MissingCredentialError(
                "Exactly one of private_key or private_key_path is required",
                setting_names=(settings.PRIVATE_KEY, settings.PRIVATE_KEY_PATH),
            )

    @property
    def key_id(self) -> str:
        return f"{self.tenancy_ocid}/{self.user_ocid}/{self.fingerprint}"


@dataclass(frozen=True)
class ProviderConfig:
    """Validated, typed provider configuration.

    Optional fields are None when the operator did not supply them, so the
    client factory only overrides its own defaults for explicit settings.
    """

    credentials: CredentialBundle
    region: str | None = None
    disable_auto_retries: bool | None = None
    url_template: str | None = None
    allow_insecure_tls: str = ""


class CredentialResolver:
    """Resolve and validate the provider configuration.

    Reads every setting from a ConfigurationSource using the provider
    schema, and returns a ProviderConfig or raises a configuration error
    naming the offending setting. Nothing here touches the network or the
    filesystem.

    Example:
        ```python
        resolver = CredentialResolver(source=ConfigurationSource(host_config))
        config = resolver.resolve()
        ```
    """

    def __init__(self, schema: ProviderSchema | None = None, source: ConfigurationSource | None = None):
        self.schema = schema or default_schema()
        self.source = source or ConfigurationSource()

    def _lookup(self, name: str) -> ResolvedSetting:
        spec = self.schema[name]
        return self.source.lookup(
            name,
            spec.default,
            include_config=not spec.env_only,
            sensitive=spec.sensitive,
        )

    def _require(self, name: str) -> str:
        resolved = self._lookup(name)
        if _is_empty(resolved.value):
            names = self.source.env_var_names(name)
            raise MissingCredentialError(
                f"Required setting '{name}' is missing (set it in the provider "
                f"configuration or one of: {', '.join(names)})",
                setting_names=(name,),
                env_var_names=names,
            )
        return str(resolved.value)

    def _optional(self, name: str) -> str | None:
        resolved = self._lookup(name)
        if not resolved.explicit or _is_empty(resolved.value):
            return None
        return str(resolved.value)

    def resolve_credentials(self) -> CredentialBundle:
        """Resolve identity fields and key material.

        Raises:
            MissingCredentialError: If an identity field is missing, or if
                neither private_key nor private_key_path is set.
        """
        tenancy_ocid = self._require(settings.TENANCY_OCID)
        user_ocid = self._require(settings.USER_OCID)
        fingerprint = self._require(settings.FINGERPRINT)

        private_key = self._optional(settings.PRIVATE_KEY)
        private_key_path = self._optional(settings.PRIVATE_KEY_PATH)

        if private_key is None and private_key_path is None:
            names = self.source.env_var_names(settings.PRIVATE_KEY) + self.source.env_var_names(
                settings.PRIVATE_KEY_PATH
            )
            raise MissingCredentialError(
                f"One of {settings.PRIVATE_KEY} or {settings.PRIVATE_KEY_PATH} is required",
                setting_names=(settings.PRIVATE_KEY, settings.PRIVATE_KEY_PATH),
                env_var_names=names,
            )

        if private_key is not None and private_key_path is not None:
            logger.warning(
                f"Both {settings.PRIVATE_KEY} and {settings.PRIVATE_KEY_PATH} are set; "
                f"using {settings.PRIVATE_KEY} and ignoring {settings.PRIVATE_KEY_PATH}"
            )
            private_key_path = None

        return CredentialBundle(
            tenancy_ocid=tenancy_ocid,
            user_ocid=user_ocid,
            fingerprint=fingerprint,
            private_key=private_key,
            private_key_path=private_key_path,
            private_key_password=self._optional(settings.PRIVATE_KEY_PASSWORD),
        )

    def resolve(self) -> ProviderConfig:
        """Resolve the full provider configuration.

        Raises:
            MissingCredentialError: If required credentials are missing.
            ClientConstructionError: If a boolean setting cannot be parsed.
        """
        credentials = self.resolve_credentials()

        retries = self._lookup(settings.DISABLE_AUTO_RETRIES)
        disable_auto_retries = None
        if retries.explicit:
            disable_auto_retries = parse_bool(settings.DISABLE_AUTO_RETRIES, retries.value)

        return ProviderConfig(
            credentials=credentials,
            region=self._optional(settings.REGION),
            disable_auto_retries=disable_auto_retries,
            url_template=self._optional(settings.URL_TEMPLATE),
            allow_insecure_tls=str(self._lookup(settings.ALLOW_INSECURE_TLS).value or ""),
        )
