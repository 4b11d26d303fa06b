"""Private key loading for request signing.

Key material arrives either as inline PEM text or as a file path. Both paths
end in a parsed RSA private key, or a KeyMaterialError that says which
setting was at fault. Reading the file is deferred to this module so that an
unreadable file surfaces as its own error kind, separate from a missing
setting.
"""

import logging
import os
from pathlib import Path

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from baremetal_provider.auth import settings
from baremetal_provider.auth.credentials import CredentialBundle
from baremetal_provider.auth.exceptions import KeyMaterialError

logger = logging.getLogger(__name__)


def read_key_file(file_path: str) -> bytes:
    """Read PEM bytes from a key file.

    Supports ~ and $VAR expansion in the path.

    Raises:
        KeyMaterialError: If the file is missing, unreadable or empty.
    """
    expanded_path = os.path.expanduser(os.path.expandvars(file_path))
    path_obj = Path(expanded_path)

    try:
        data = path_obj.read_bytes()
    except FileNotFoundError:
        raise KeyMaterialError(
            f"Private key file not found: {path_obj} (from {settings.PRIVATE_KEY_PATH})",
            setting_name=settings.PRIVATE_KEY_PATH,
        ) from None
    except PermissionError:
        raise KeyMaterialError(
            f"Permission denied reading private key file: {path_obj} (from {settings.PRIVATE_KEY_PATH})",
            setting_name=settings.PRIVATE_KEY_PATH,
        ) from None
    except OSError as e:
        raise KeyMaterialError(
            f"Error reading private key file {path_obj}: {e}",
            setting_name=settings.PRIVATE_KEY_PATH,
        ) from e

    if not data.strip():
        raise KeyMaterialError(
            f"Private key file is empty: {path_obj}", setting_name=settings.PRIVATE_KEY_PATH
        )

    logger.debug(f"Read private key from file: {path_obj} (***)")
    return data


def parse_private_key(pem: bytes, password: str | None = None, *, setting_name: str) -> rsa.RSAPrivateKey:
    """Parse PEM bytes into an RSA private key.

    Args:
        pem: PEM encoded key bytes.
        password: Passphrase for an encrypted key.
        setting_name: Setting the bytes came from, used in error messages.

    Raises:
        KeyMaterialError: If the bytes are not a PEM key, the password is
            wrong or missing, or the key is not RSA.
    """
    secret = password.encode("utf-8") if password else None

    try:
        key = serialization.load_pem_private_key(pem, password=secret)
    except TypeError as e:
        # Raised for a missing password on an encrypted key and vice versa
        raise KeyMaterialError(
            f"Private key from {setting_name} does not match {settings.PRIVATE_KEY_PASSWORD}: {e}",
            setting_name=settings.PRIVATE_KEY_PASSWORD,
        ) from e
    except ValueError as e:
        raise KeyMaterialError(
            f"Private key from {setting_name} is malformed or the password is incorrect",
            setting_name=setting_name,
        ) from e

    if not isinstance(key, rsa.RSAPrivateKey):
        raise KeyMaterialError(
            f"Private key from {setting_name} must be an RSA key, got {type(key).__name__}",
            setting_name=setting_name,
        )
    return key


def load_private_key(credentials: CredentialBundle) -> rsa.RSAPrivateKey:
    """Load the signing key from a credential bundle.

    Inline key text takes precedence over the key file path.
    """
    if credentials.private_key:
        return parse_private_key(
            credentials.private_key.encode("utf-8"),
            credentials.private_key_password,
            setting_name=settings.PRIVATE_KEY,
        )

    pem = read_key_file(credentials.private_key_path)
    return parse_private_key(
        pem,
        credentials.private_key_password,
        setting_name=settings.PRIVATE_KEY_PATH,
    )
