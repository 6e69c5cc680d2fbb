"""
Cancellation token shared between the HTTP stream and the agent loop.

The route sets it when the client disconnects; the orchestrator, gateway
and dispatcher check it before starting any new unit of work.
"""

import threading
from typing import Optional

from .errors import OperationCancelled


class CancellationToken:
    """Thread-safe, one-way cancellation flag."""

    def __init__(self):
        self._event = threading.Event()
        self._reason: Optional[str] = None

    def cancel(self, reason: str = "client disconnected") -> None:
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelled(self._reason or "cancelled")
