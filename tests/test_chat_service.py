"""
Unit Tests for Chat Service

Tests request validation, the single-writer lock, title scheduling and
the threaded streaming path, with a scripted model gateway.
"""

import threading

import pytest
from unittest.mock import ANY, Mock

from core.errors import MissingPromptError, SessionBusyError, SessionNotFoundError
from core.models import Role, SessionCategory
from core.orchestrator import TurnStatus
from services.chat_service import ChatRequest, ChatService
from storage import SessionLockRegistry
from tests.helpers import ScriptedGateway, final_text, parse_lines, question_text, roles, text_turn

PROMPT = "create a program called Physics with code PHY"


@pytest.fixture
def titles():
    return Mock()


@pytest.fixture
def locks():
    return SessionLockRegistry()


def make_service(store, locks, titles, turns):
    gateway = ScriptedGateway(turns)
    service = ChatService(store=store, locks=locks, titles=titles, gateway=gateway)
    return service, gateway


def academic_request(session_id, **kwargs):
    return ChatRequest(prompt=PROMPT, session_id=session_id, category=SessionCategory.ACADEMIC, **kwargs)


class TestSessions:
    """Test the session operations."""

    def test_create_and_list(self, store, locks, titles):
        """Test sessions are created per persona and listed by category."""
        service, _ = make_service(store, locks, titles, [text_turn(final_text())])

        academic = service.create_session("academic-structure")
        service.create_session(SessionCategory.REPORT)

        assert academic.category == SessionCategory.ACADEMIC
        assert [s.id for s in service.list_sessions("ACADEMIC")] == [academic.id]

    def test_load_messages(self, store, locks, titles, session):
        """Test the stored history is returned in order."""
        service, _ = make_service(store, locks, titles, [text_turn(final_text())])

        messages = service.load_messages(session.id)

        assert [m.role for m in messages] == [Role.MODEL]

    def test_unknown_persona(self, store, locks, titles):
        """Test an unknown category is rejected."""
        service, _ = make_service(store, locks, titles, [text_turn(final_text())])

        with pytest.raises(ValueError):
            service.create_session("admissions")


class TestRunTurn:
    """Test the synchronous path."""

    def test_completes_and_returns_lines(self, store, locks, titles, session):
        """Test a completed turn returns its outcome and every line."""
        service, gateway = make_service(store, locks, titles, [text_turn(final_text("Program created."))])

        outcome, lines = service.run_turn(academic_request(session.id))

        assert outcome.status == TurnStatus.COMPLETED
        events = parse_lines(lines)
        assert roles(events)[0] == "user-message-received"
        assert roles(events)[-2:] == ["model-response", "chats"]
        assert gateway.calls == 1
        assert locks.is_busy(session.id) is False

    def test_academic_persona_sees_academic_tools(self, store, locks, titles, session):
        """Test the gateway receives the persona's tool table."""
        service, gateway = make_service(store, locks, titles, [text_turn(question_text())])

        service.run_turn(academic_request(session.id))

        names = [d["name"] for d in gateway.tool_schemas[0]]
        assert "create_program" in names
        assert "search_students" not in names

    def test_empty_prompt(self, store, locks, titles, session):
        """Test a blank prompt is rejected before anything is stored."""
        service, gateway = make_service(store, locks, titles, [text_turn(final_text())])

        with pytest.raises(MissingPromptError, match="Missing prompt"):
            service.run_turn(ChatRequest(prompt="  ", session_id=session.id, category=SessionCategory.ACADEMIC))

        assert len(store.load_history(session.id)) == 1
        assert gateway.calls == 0

    def test_persona_mismatch(self, store, locks, titles, session):
        """Test a session cannot be driven by the other persona."""
        service, _ = make_service(store, locks, titles, [text_turn(final_text())])

        with pytest.raises(ValueError, match="belongs to ACADEMIC"):
            service.run_turn(ChatRequest(prompt=PROMPT, session_id=session.id, category=SessionCategory.REPORT))

    def test_unknown_session(self, store, locks, titles):
        """Test a missing session is reported."""
        service, _ = make_service(store, locks, titles, [text_turn(final_text())])

        with pytest.raises(SessionNotFoundError):
            service.run_turn(academic_request("missing"))

    def test_busy_session(self, store, locks, titles, session):
        """Test a second request on a running session is rejected."""
        service, gateway = make_service(store, locks, titles, [text_turn(final_text())])

        with locks.hold(session.id):
            with pytest.raises(SessionBusyError):
                service.run_turn(academic_request(session.id))

        assert gateway.calls == 0


class TestTitleScheduling:
    """Test when titles are requested."""

    def test_title_requested(self, store, locks, titles, session):
        """Test the title is scheduled from the user's prompt."""
        service, _ = make_service(store, locks, titles, [text_turn(final_text())])

        service.run_turn(academic_request(session.id, title_requested=True))

        titles.schedule.assert_called_once_with(session.id, PROMPT, ANY)

    def test_not_requested(self, store, locks, titles, session):
        """Test no title is generated unless asked."""
        service, _ = make_service(store, locks, titles, [text_turn(final_text())])

        service.run_turn(academic_request(session.id))

        titles.schedule.assert_not_called()

    def test_existing_title_kept(self, store, locks, titles, session):
        """Test a titled session is not renamed."""
        store.set_title(session.id, "Physics Program Setup")
        service, _ = make_service(store, locks, titles, [text_turn(final_text())])

        service.run_turn(academic_request(session.id, title_requested=True))

        titles.schedule.assert_not_called()


class TestStreamTurn:
    """Test the threaded streaming path."""

    def test_streams_until_close(self, store, locks, titles, session):
        """Test iterating the stream yields every event and ends at close."""
        service, _ = make_service(store, locks, titles, [text_turn(final_text())])

        chat_stream = service.stream_turn(academic_request(session.id))
        events = parse_lines(list(chat_stream))
        chat_stream.thread.join(timeout=5)

        assert roles(events)[-1] == "chats"
        assert locks.is_busy(session.id) is False

    def test_lock_held_while_running(self, store, locks, titles, session):
        """Test the session is busy until the loop ends."""
        release = threading.Event()

        def gateway(window, tool_schema, instructions, cancel_token=None):
            release.wait(timeout=5)
            return text_turn(final_text())

        service = ChatService(store=store, locks=locks, titles=titles, gateway=gateway)
        chat_stream = service.stream_turn(academic_request(session.id))

        with pytest.raises(SessionBusyError):
            service.stream_turn(academic_request(session.id))

        release.set()
        list(chat_stream)
        chat_stream.thread.join(timeout=5)
        assert locks.is_busy(session.id) is False

    def test_cancel_closes_without_terminal_event(self, store, locks, titles, session):
        """Test a cancelled request stops writing and closes the stream."""
        started = threading.Event()
        release = threading.Event()

        def gateway(window, tool_schema, instructions, cancel_token=None):
            started.set()
            release.wait(timeout=5)
            cancel_token.raise_if_cancelled()
            return text_turn(final_text())

        service = ChatService(store=store, locks=locks, titles=titles, gateway=gateway)
        chat_stream = service.stream_turn(academic_request(session.id))

        assert started.wait(timeout=5)
        chat_stream.cancel()
        release.set()
        events = parse_lines(list(chat_stream))
        chat_stream.thread.join(timeout=5)

        assert not {"model-response", "error", "chats"} & set(roles(events))
        assert locks.is_busy(session.id) is False
        # The user message was stored before the cancel
        assert [m.role for m in store.load_history(session.id)] == [Role.MODEL, Role.USER]

