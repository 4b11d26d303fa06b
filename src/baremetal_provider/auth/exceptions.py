"""Configuration-time exceptions for credential resolution and client construction.

Every error raised while configuring the provider derives from
ConfigurationError, so a host can abort initialization with a single except
clause. Messages always name the offending setting.

Example:
    ```python
    from baremetal_provider.auth.exceptions import MissingCredentialError

    if not fingerprint:
        raise MissingCredentialError("fingerprint is required", setting_names=("fingerprint",))
    ```
"""


class ConfigurationError(Exception):
    """Base exception for provider configuration errors.

    All configuration-time exceptions inherit from this class. None of them
    are raised once a client handle has been built.
    """

    pass


class ClientConstructionError(ConfigurationError):
    """Raised when the client handle cannot be assembled.

    Covers invalid regions, malformed URL templates and unparseable boolean
    settings. More specific failures subclass it.

    Attributes:
        setting_name: The setting that caused the failure (if known).
    """

    def __init__(self, message: str, setting_name: str | None = None):
        super().__init__(message)
        self.setting_name = setting_name


class MissingCredentialError(ClientConstructionError):
    """Raised when a required identity field or key material is absent.

    Attributes:
        setting_names: The settings that were required but unresolved.
        env_var_names: The environment variables that were checked.

    Example:
        ```python
        try:
            config = resolver.resolve()
        except MissingCredentialError as e:
            print(f"Set one of: {', '.join(e.setting_names)}")
        ```
    """

    def __init__(
        self,
        message: str,
        setting_names: tuple[str, ...] = (),
        env_var_names: tuple[str, ...] = (),
    ):
        super().__init__(message, setting_name=setting_names[0] if setting_names else None)
        self.setting_names = setting_names
        self.env_var_names = env_var_names


class KeyMaterialError(ClientConstructionError):
    """Raised when the private key file is unreadable or the key bytes are malformed."""

    pass
