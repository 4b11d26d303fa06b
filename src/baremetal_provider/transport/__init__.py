"""Transport layer for the Bare Metal API client.

This module builds the HTTPS transport stack underneath the client handle:

Modules:
    tls: Transport mode selection (verified + proxy-aware, or insecure)
    retry: Retry policy and eventual-consistency retry transport

Example:
    ```python
    from baremetal_provider.transport import (
        RetryPolicy,
        build_retry_transport,
        build_transport,
        build_transport_config,
    )

    config = build_transport_config(allow_insecure_tls=None)
    transport = build_retry_transport(build_transport(config), RetryPolicy())
    ```
"""

from baremetal_provider.transport.retry import EventualConsistencyRetry, RetryPolicy, build_retry_transport
from baremetal_provider.transport.tls import TransportConfig, build_transport, build_transport_config

__all__ = [
    "EventualConsistencyRetry",
    "RetryPolicy",
    "TransportConfig",
    "build_retry_transport",
    "build_transport",
    "build_transport_config",
]
