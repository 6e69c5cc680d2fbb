"""
Unit Tests for the Stream Emitter

Tests NDJSON encoding, write-after-close protection and the queue bridge
between the agent thread and the HTTP response.
"""

import json
import queue
from datetime import datetime
from unittest.mock import Mock

import pytest

from core.errors import StreamClosedError
from core.stream import EventType, QueueStream, StreamEmitter, encode_event


@pytest.fixture
def lines():
    return []


@pytest.fixture
def emitter(lines):
    return StreamEmitter(lines.append)


class TestEncodeEvent:
    """Test line encoding."""

    def test_one_line_per_event(self):
        """Test each event is a single JSON object followed by a newline."""
        line = encode_event({"role": "log", "message": "a\nb"})

        assert line.endswith("\n")
        assert line.count("\n") == 1
        assert json.loads(line) == {"role": "log", "message": "a\nb"}

    def test_non_ascii_kept_readable(self):
        """Test accented text is written as-is."""
        line = encode_event({"role": "thought", "message": "Année universitaire"})

        assert "Année" in line

    def test_unencodable_values_fall_back_to_str(self):
        """Test datetimes and similar values are stringified."""
        line = encode_event({"role": "chats", "at": datetime(2024, 9, 1, 8, 30)})

        assert json.loads(line)["at"] == "2024-09-01 08:30:00"


class TestStreamEmitter:
    """Test event emission and closing."""

    def test_emit_writes_role_message_and_payload(self, emitter, lines):
        """Test the event type goes in the role key, payload alongside."""
        event = emitter.emit(EventType.FUNCTION_CALL, "Executing function: lookup", name="lookup", args={"key": "x"})

        assert json.loads(lines[0]) == {
            "role": "function-call",
            "message": "Executing function: lookup",
            "name": "lookup",
            "args": {"key": "x"},
        }
        assert event["role"] == "function-call"
        assert emitter.event_count == 1

    def test_emit_without_message(self, emitter, lines):
        """Test the message key is omitted when not given."""
        emitter.emit(EventType.CHATS, data=[])

        assert json.loads(lines[0]) == {"role": "chats", "data": []}

    def test_events_keep_order(self, emitter, lines):
        """Test lines are written in emission order."""
        for i in range(3):
            emitter.emit(EventType.LOG, f"step {i}")

        assert [json.loads(l)["message"] for l in lines] == ["step 0", "step 1", "step 2"]

    def test_emit_after_close_raises(self, emitter, lines):
        """Test nothing can be written once the stream is closed."""
        emitter.close()

        with pytest.raises(StreamClosedError):
            emitter.emit(EventType.LOG, "too late")
        assert lines == []

    def test_close_is_idempotent(self, lines):
        """Test a second close is a no-op and on_close runs once."""
        on_close = Mock()
        emitter = StreamEmitter(lines.append, on_close=on_close)

        assert emitter.close() is True
        assert emitter.close() is False
        assert emitter.closed is True
        on_close.assert_called_once()

    def test_try_emit(self, emitter, lines):
        """Test try_emit reports whether the event was written."""
        assert emitter.try_emit(EventType.SESSION_TITLE, "Physics Setup") is True

        emitter.close()

        assert emitter.try_emit(EventType.SESSION_TITLE, "Physics Setup") is False
        assert len(lines) == 1


class TestQueueStream:
    """Test the queue bridge."""

    def test_iteration_stops_at_close(self):
        """Test iterating yields every line, then stops once closed."""
        stream = QueueStream()
        stream.emitter.emit(EventType.LOG, "one")
        stream.emitter.emit(EventType.LOG, "two")
        stream.emitter.close()

        messages = [json.loads(line)["message"] for line in stream]

        assert messages == ["one", "two"]

    def test_get_returns_none_after_close(self):
        """Test the close marker comes through get as None."""
        stream = QueueStream()
        stream.emitter.close()

        assert stream.get(timeout=1) is None

    def test_get_times_out(self):
        """Test get raises queue.Empty when nothing arrives."""
        stream = QueueStream()

        with pytest.raises(queue.Empty):
            stream.get(timeout=0.01)
