"""Provider setting metadata.

The schema describes every setting the provider understands: its type,
default, whether it is required or sensitive, and whether it may only come
from the environment. It is built once by `default_schema()` and handed to
the credential resolver explicitly.
"""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

TENANCY_OCID = "tenancy_ocid"
USER_OCID = "user_ocid"
FINGERPRINT = "fingerprint"
PRIVATE_KEY = "private_key"
PRIVATE_KEY_PATH = "private_key_path"
PRIVATE_KEY_PASSWORD = "private_key_password"
REGION = "region"
DISABLE_AUTO_RETRIES = "disable_auto_retries"

# Internal settings, resolvable from the environment only
URL_TEMPLATE = "url_template"
ALLOW_INSECURE_TLS = "allow_insecure_tls"

DEFAULT_REGION = "us-phoenix-1"


@dataclass(frozen=True)
class SettingSpec:
    """Declaration of a single provider setting."""

    name: str
    description: str
    kind: type = str
    required: bool = False
    sensitive: bool = False
    default: str | bool | None = None
    env_only: bool = False


@dataclass(frozen=True)
class ProviderSchema:
    """Read-only collection of setting declarations keyed by name."""

    settings: Mapping[str, SettingSpec] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "settings", MappingProxyType(dict(self.settings)))

    def __getitem__(self, name: str) -> SettingSpec:
        return self.settings[name]

    def __contains__(self, name: object) -> bool:
        return name in self.settings

    def __iter__(self) -> Iterator[SettingSpec]:
        return iter(self.settings.values())

    def declared(self) -> list[SettingSpec]:
        """Settings that may appear in declarative configuration."""
        return [spec for spec in self if not spec.env_only]

    def description(self, name: str) -> str:
        return self.settings[name].description


def default_schema() -> ProviderSchema:
    """Build the provider's setting schema."""
    specs = [
        SettingSpec(
            TENANCY_OCID,
            "(Required) The tenancy OCID for a user. The tenancy OCID can be found at the "
            "bottom of user settings in the Bare Metal console.",
            required=True,
        ),
        SettingSpec(
            USER_OCID,
            "(Required) The user OCID. This can be found in user settings in the Bare Metal console.",
            required=True,
        ),
        SettingSpec(
            FINGERPRINT,
            "(Required) The fingerprint for the user's RSA key. This can be found in user "
            "settings in the Bare Metal console.",
            required=True,
        ),
        # Mostly used for testing. Keys do not belong in declarative config files.
        SettingSpec(
            PRIVATE_KEY,
            "(Optional) A PEM formatted RSA private key for the user.\n"
            "A private_key or a private_key_path must be provided.",
            sensitive=True,
        ),
        SettingSpec(
            PRIVATE_KEY_PATH,
            "(Optional) The path to the user's PEM formatted private key.\n"
            "A private_key or a private_key_path must be provided.",
        ),
        SettingSpec(
            PRIVATE_KEY_PASSWORD,
            "(Optional) The password used to secure the private key.",
            sensitive=True,
        ),
        SettingSpec(
            REGION,
            "(Optional) The region for API connections.",
            default=DEFAULT_REGION,
        ),
        SettingSpec(
            DISABLE_AUTO_RETRIES,
            "(Optional) Disable Automatic retries for retriable errors.\n"
            "Auto retries were introduced to solve some eventual consistency problems but "
            "it also introduced performance issues on destroy operations.",
            kind=bool,
            default=False,
        ),
        SettingSpec(
            URL_TEMPLATE,
            "(Internal) Override for the API endpoint URL template.",
            env_only=True,
        ),
        SettingSpec(
            ALLOW_INSECURE_TLS,
            "(Internal) Disable TLS certificate verification. Testing only.",
            env_only=True,
        ),
    ]
    return ProviderSchema({spec.name: spec for spec in specs})
