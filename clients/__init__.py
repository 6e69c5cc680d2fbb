"""
Utility Clients Module

Low-level clients for external services. They carry no agent logic.

Clients:
- Portal Client: calls the portal's academic, report and exam operations over HTTP (httpx)
"""

from .portal_client import (
    PortalClient,
    PortalClientError,
    get_portal_client,
    set_portal_client,
)

__all__ = [
    "PortalClient",
    "PortalClientError",
    "get_portal_client",
    "set_portal_client",
]
