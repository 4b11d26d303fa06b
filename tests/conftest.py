"""Pytest configuration and shared fixtures for baremetal-provider tests."""

import pytest

from baremetal_provider.auth.credentials import CredentialBundle
from baremetal_provider.client import create_client
from baremetal_provider.testing import (
    PROVIDER_BARE_ENV_NAMES,
    PROVIDER_ENV_PREFIXES,
    generate_private_key_pem,
)
from baremetal_provider.transport.retry import RetryPolicy
from baremetal_provider.transport.tls import TransportConfig

TENANCY = "ocid1.tenancy.oc1..aaaatenancy"
USER = "ocid1.user.oc1..aaaauser"
FINGERPRINT = "12:34:56:78:90:ab:cd:ef:12:34:56:78:90:ab:cd:ef"
KEY_PASSWORD = "correct horse"


@pytest.fixture(autouse=True)
def clear_env(monkeypatch):
    """Auto-cleanup: Clear provider environment variables before each test.

    This prevents test pollution when testing setting resolution.
    """
    import os

    for key in list(os.environ.keys()):
        if key.startswith(PROVIDER_ENV_PREFIXES) or key.upper() in PROVIDER_BARE_ENV_NAMES:
            monkeypatch.delenv(key, raising=False)

    # Proxy variables from the machine running the tests
    for key in ("HTTPS_PROXY", "https_proxy", "HTTP_PROXY", "http_proxy", "NO_PROXY", "no_proxy", "ALL_PROXY", "all_proxy"):
        monkeypatch.delenv(key, raising=False)

    yield


@pytest.fixture(scope="session")
def private_key_pem():
    """Unencrypted RSA key, generated once per test session."""
    return generate_private_key_pem()


@pytest.fixture(scope="session")
def encrypted_private_key_pem():
    """RSA key encrypted with KEY_PASSWORD."""
    return generate_private_key_pem(password=KEY_PASSWORD)


@pytest.fixture
def private_key_file(tmp_path, private_key_pem):
    key_file = tmp_path / "api_key.pem"
    key_file.write_text(private_key_pem)
    return key_file


@pytest.fixture
def credentials(private_key_pem):
    return CredentialBundle(
        tenancy_ocid=TENANCY,
        user_ocid=USER,
        fingerprint=FINGERPRINT,
        private_key=private_key_pem,
    )


@pytest.fixture
def provider_settings(private_key_pem):
    """Explicit host settings for a valid configuration."""
    return {
        "tenancy_ocid": TENANCY,
        "user_ocid": USER,
        "fingerprint": FINGERPRINT,
        "private_key": private_key_pem,
    }


@pytest.fixture
def no_sleep(monkeypatch):
    """Replace asyncio.sleep with a recorder so retry tests run instantly."""
    import asyncio

    delays = []

    async def fake_sleep(delay, *args, **kwargs):
        delays.append(delay)

    monkeypatch.setattr(asyncio, "sleep", fake_sleep)
    return delays


@pytest.fixture
def client_factory(credentials):
    """Build client handles over a mock transport."""

    def factory(transport, retry_policy=None, **kwargs):
        return create_client(
            credentials,
            TransportConfig.secure(),
            retry_policy or RetryPolicy(),
            transport=transport,
            **kwargs,
        )

    return factory
