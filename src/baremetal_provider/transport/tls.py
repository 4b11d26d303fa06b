"""HTTPS transport selection.

Two modes exist and exactly one is active:

- Default: full certificate verification, with the HTTPS proxy taken from
  the standard proxy environment variables (HTTPS_PROXY / NO_PROXY).
- Insecure: certificate verification disabled. Only enabled by the
  environment-only `allow_insecure_tls` setting set to the literal "true",
  for testing against self-signed endpoints. Always logged at WARNING.
"""

import logging
import urllib.request
from dataclasses import dataclass

import httpx

logger = logging.getLogger(__name__)

INSECURE_TLS_WARNING = "[WARN] USING INSECURE TLS: certificate verification is disabled"


@dataclass(frozen=True)
class TransportConfig:
    """Selected transport mode. Exactly one flag is true."""

    insecure_skip_verify: bool = False
    proxy_from_environment: bool = True

    def __post_init__(self) -> None:
        if self.insecure_skip_verify == self.proxy_from_environment:
            raise ValueError("TransportConfig requires exactly one of insecure_skip_verify or proxy_from_environment")

    @classmethod
    def secure(cls) -> "TransportConfig":
        return cls(insecure_skip_verify=False, proxy_from_environment=True)

    @classmethod
    def insecure(cls) -> "TransportConfig":
        return cls(insecure_skip_verify=True, proxy_from_environment=False)

    @property
    def mode(self) -> str:
        return "insecure" if self.insecure_skip_verify else "verified"


def build_transport_config(allow_insecure_tls: str | None) -> TransportConfig:
    """Choose the transport mode from the internal insecure-TLS flag.

    Only the literal string "true" selects the insecure mode; anything else,
    including "True" or "1", keeps verification on.
    """
    if allow_insecure_tls == "true":
        logger.warning(INSECURE_TLS_WARNING)
        return TransportConfig.insecure()
    return TransportConfig.secure()


def environment_proxy(host: str | None = None) -> str | None:
    """Return the HTTPS proxy URL from the environment, honoring NO_PROXY for `host`."""
    proxy = urllib.request.getproxies().get("https")
    if not proxy:
        return None
    if host and urllib.request.proxy_bypass(host):
        logger.debug(f"Proxy bypassed for {host}")
        return None
    return proxy


def build_transport(config: TransportConfig, host: str | None = None) -> httpx.AsyncHTTPTransport:
    """Build the base HTTPS transport for the selected mode.

    Args:
        config: Transport mode.
        host: Target API host, used to evaluate NO_PROXY.

    Returns:
        Async HTTP transport for the API client.
    """
    if config.insecure_skip_verify:
        return httpx.AsyncHTTPTransport(verify=False)

    proxy = environment_proxy(host)
    if proxy:
        # Proxy URLs can embed credentials
        logger.debug(f"Using HTTPS proxy from environment for {host or 'all hosts'}")
    return httpx.AsyncHTTPTransport(verify=True, proxy=proxy)
