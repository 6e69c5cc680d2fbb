"""
Portal Client - Access to the University Portal Operations

The academic-structure and reporting operations (create program, search
students, compute report aggregates, ...) live in the portal backend and
are opaque to the agent. Each one is exposed as an action endpoint that
returns the uniform result envelope:

    {"success": bool, "data": ..., "error": "..."}

A ``success: False`` envelope is a business answer and is returned as-is.
Transport failures and malformed responses raise, because they are not
something the model can fix by retrying with other arguments.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from config import PORTAL_API_URL, PORTAL_API_TOKEN, PORTAL_TIMEOUT

logger = logging.getLogger(__name__)


class PortalClientError(Exception):
    """The portal could not be reached or answered outside the envelope contract."""


# ============================================================================
# PORTAL CLIENT
# ============================================================================

class PortalClient:
    """
    Thin synchronous client for the portal action API.

    Usage:
        client = PortalClient("http://portal:3000/api/actions")
        result = client.call("academic", "createProgram", {"name": "Physics", "code": "PHY"})
    """

    def __init__(
        self,
        base_url: str = PORTAL_API_URL,
        token: Optional[str] = PORTAL_API_TOKEN,
        timeout: float = PORTAL_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: Root of the action API
            token: Optional bearer token for the portal
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self._base_url = base_url.rstrip("/")
        self._client = httpx.Client(
            base_url=self._base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    def call(self, module: str, operation: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Invoke one portal operation.

        Args:
            module: Action module ("academic", "reports", "exams")
            operation: Operation name inside the module
            payload: JSON arguments; keys with a None value are dropped

        Returns:
            The result envelope, normalized to always carry "success"

        Raises:
            PortalClientError: On transport errors, HTTP errors or a
                response that is not an envelope
        """
        body = {k: v for k, v in (payload or {}).items() if v is not None}
        path = f"/{module}/{operation}"
        logger.debug(f"🌐 POST {path} {body}")

        try:
            response = self._client.post(path, json=body)
            response.raise_for_status()
            envelope = response.json()
        except httpx.HTTPStatusError as e:
            raise PortalClientError(
                f"{module}.{operation} failed with HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise PortalClientError(f"{module}.{operation} could not reach the portal: {e}") from e
        except ValueError as e:
            raise PortalClientError(f"{module}.{operation} returned invalid JSON") from e

        if not isinstance(envelope, dict) or "success" not in envelope:
            raise PortalClientError(f"{module}.{operation} returned an unexpected payload")

        if not envelope["success"]:
            logger.info(f"⚠️  {module}.{operation} rejected: {envelope.get('error')}")

        return {
            "success": bool(envelope["success"]),
            "data": envelope.get("data"),
            "error": envelope.get("error"),
        }

    def close(self) -> None:
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


# ============================================================================
# SHARED INSTANCE
# ============================================================================

_client: Optional[PortalClient] = None


def get_portal_client() -> PortalClient:
    """Lazily create the process-wide portal client."""
    global _client
    if _client is None:
        _client = PortalClient()
    return _client


def set_portal_client(client: Optional[PortalClient]) -> None:
    """Replace the shared client (tests, alternate deployments)."""
    global _client
    _client = client
