"""
Stream Emitter

Serializes agent events as newline-delimited JSON onto one outbound
connection. Every event is a JSON object whose ``role`` key names the
event type; the rest is payload:

    {"role": "function-call", "message": "Executing function: create_program", "name": "create_program", "args": {...}}

Events are written in the order they are produced. The stream is closed
exactly once, right after the terminal event; writing after that raises.
"""

import json
import logging
import queue
import threading
from enum import Enum
from typing import Any, Callable, Dict, Iterator, Optional

from .errors import StreamClosedError

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Discriminator values carried in the ``role`` key of each event."""
    LOG = "log"
    USER_MESSAGE_RECEIVED = "user-message-received"
    SESSION_TITLE = "session-title"
    FUNCTION_CALL_NUMBER = "function-call-number"
    FUNCTION_CALL = "function-call"
    FUNCTION_RESPONSE = "function-response"
    THOUGHT = "thought"
    MODEL_RESPONSE = "model-response"
    ERROR = "error"
    CHATS = "chats"


def encode_event(event: Dict[str, Any]) -> str:
    """One NDJSON line. Values json can't encode (datetimes, enums) fall back to str."""
    return json.dumps(event, ensure_ascii=False, default=str) + "\n"


# ============================================================================
# EMITTER
# ============================================================================

class StreamEmitter:
    """
    Writes events to a line sink.

    Args:
        sink: Callable receiving each encoded line
        on_close: Called once when the stream closes
    """

    def __init__(self, sink: Callable[[str], None], on_close: Optional[Callable[[], None]] = None):
        self._sink = sink
        self._on_close = on_close
        self._lock = threading.Lock()
        self._closed = False
        self.event_count = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def emit(self, event_type: EventType, message: Optional[str] = None, **payload: Any) -> Dict[str, Any]:
        """
        Write one event.

        Raises:
            StreamClosedError: If the stream was already closed
        """
        event: Dict[str, Any] = {"role": event_type.value}
        if message is not None:
            event["message"] = message
        event.update(payload)

        with self._lock:
            if self._closed:
                raise StreamClosedError(f"Cannot emit '{event_type.value}' on a closed stream")
            self._sink(encode_event(event))
            self.event_count += 1

        return event

    def try_emit(self, event_type: EventType, message: Optional[str] = None, **payload: Any) -> bool:
        """Emit unless the stream is already closed. For best-effort side channels."""
        try:
            self.emit(event_type, message, **payload)
            return True
        except StreamClosedError:
            return False

    def close(self) -> bool:
        """
        Close the stream. Returns False (and does nothing) if it was already closed.
        """
        with self._lock:
            if self._closed:
                logger.warning("⚠️  Stream close requested twice; ignoring")
                return False
            self._closed = True

        if self._on_close:
            self._on_close()
        return True


# ============================================================================
# QUEUE BRIDGE
# ============================================================================

class QueueStream:
    """
    Hands lines from the agent thread to the HTTP response.

    The emitter side writes into a queue; the response side reads with
    ``get`` until it receives ``None``, which marks the close.
    """

    _CLOSED = None

    def __init__(self):
        self._queue: "queue.Queue[Optional[str]]" = queue.Queue()
        self.emitter = StreamEmitter(self._queue.put, on_close=self._mark_closed)

    def _mark_closed(self) -> None:
        self._queue.put(self._CLOSED)

    def get(self, timeout: Optional[float] = None) -> Optional[str]:
        """
        Next line, or None once the stream is closed.

        Raises:
            queue.Empty: If nothing arrived within ``timeout``
        """
        return self._queue.get(timeout=timeout)

    def __iter__(self) -> Iterator[str]:
        while True:
            line = self._queue.get()
            if line is self._CLOSED:
                return
            yield line
