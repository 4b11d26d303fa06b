"""Bare Metal provider core - bootstrap and dispatch for the infrastructure provider.

This library turns operator settings into a configured, signed API client and
exposes the registry of resource and data-source types:
- Layered credential resolution (config → TF_VAR_* → OBMCS_* → bare env → default)
- PEM key validation and HTTP request signing
- Hardened HTTPS transport with an eventual-consistency retry policy
- Read-only registry of resource/data-source handlers bound to one client

Example:
    ```python
    from baremetal_provider.provider import Provider

    provider = Provider(handler_factory=my_handler_factory)
    session = provider.configure({"region": "us-ashburn-1"})

    entry = session.resource("baremetal_core_instance")
    instance = await entry.read({"id": "ocid1.instance..."})
    ```
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
