"""
Chat Service - Main Coordinator

Coordinates one user request from the HTTP layer to the agent loop:
1. Resolves the persona and checks the session belongs to it
2. Takes the session's single-writer lock (busy sessions are rejected)
3. Schedules title generation when the client asks for it
4. Runs the Turn Orchestrator on a worker thread, streaming its events
5. Releases the lock when the loop ends

Also exposes the session operations the UI needs (create, list, history).
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Tuple

from core.cancellation import CancellationToken
from core.errors import MissingPromptError
from core.models import SessionCategory
from core.orchestrator import TurnOutcome
from core.stream import QueueStream, StreamEmitter
from storage import ChatSession, SessionLockRegistry, SessionStore, StoredMessage
from .personas import Persona, get_persona
from .title_service import TitleService

logger = logging.getLogger(__name__)


# ============================================================================
# DATA STRUCTURES
# ============================================================================

@dataclass
class ChatRequest:
    """
    One inbound agent request.

    Attributes:
        prompt: The user's message
        session_id: Session the message belongs to
        category: Persona the request is addressed to
        prior_messages: History as the client knows it
        title_requested: Generate a session title from this prompt
    """
    prompt: str
    session_id: str
    category: SessionCategory
    prior_messages: Optional[List[Dict[str, Any]]] = None
    title_requested: bool = False


@dataclass
class ChatStream:
    """A running request: iterate it for NDJSON lines, cancel it on disconnect."""
    session_id: str
    stream: QueueStream
    cancel_token: CancellationToken
    thread: threading.Thread

    def __iter__(self) -> Iterator[str]:
        return iter(self.stream)

    def get(self, timeout: Optional[float] = None) -> Optional[str]:
        return self.stream.get(timeout)

    def cancel(self, reason: str = "client disconnected") -> None:
        self.cancel_token.cancel(reason)


# ============================================================================
# CHAT SERVICE
# ============================================================================

class ChatService:
    """
    Main chat service coordinator.

    Owns the session store, the per-session locks and the title service,
    and builds a fresh orchestrator for every request.
    """

    def __init__(
        self,
        store: Optional[SessionStore] = None,
        locks: Optional[SessionLockRegistry] = None,
        titles: Optional[TitleService] = None,
        **orchestrator_options: Any,
    ):
        """
        Initialize the chat service.

        Args:
            store: Session store (defaults to DATABASE_URL)
            locks: Per-session lock registry
            titles: Title service (defaults to one over ``store``)
            **orchestrator_options: Passed to every TurnOrchestrator
                (gateway, dispatcher, max_iterations, ...)
        """
        self.store = store or SessionStore()
        self.locks = locks or SessionLockRegistry()
        self.titles = titles or TitleService(self.store)
        self.orchestrator_options = orchestrator_options
        logger.info("✅ ChatService initialized")

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def create_session(self, category) -> ChatSession:
        persona = get_persona(category)
        return self.store.create(persona.category)

    def list_sessions(self, category) -> List[ChatSession]:
        persona = get_persona(category)
        return self.store.list_sessions(persona.category)

    def load_messages(self, session_id: str) -> List[StoredMessage]:
        return self.store.load_history(session_id)

    # ------------------------------------------------------------------
    # Agent requests
    # ------------------------------------------------------------------

    def _prepare(self, request: ChatRequest) -> Persona:
        """
        Validate a request before anything is written.

        Raises:
            MissingPromptError: On an empty prompt
            ValueError: On a persona mismatch
            SessionNotFoundError: If the session does not exist
        """
        if not request.prompt or not request.prompt.strip():
            raise MissingPromptError()

        persona = get_persona(request.category)
        session = self.store.get_session(request.session_id)
        if session.category != persona.category:
            raise ValueError(
                f"Session {request.session_id} belongs to {session.category.value}, "
                f"not {persona.category.value}"
            )
        return persona

    def _maybe_schedule_title(self, request: ChatRequest, emitter: StreamEmitter) -> None:
        if request.title_requested and not self.store.has_title(request.session_id):
            self.titles.schedule(request.session_id, request.prompt, emitter)

    def stream_turn(self, request: ChatRequest) -> ChatStream:
        """
        Start the agent loop for a request on a worker thread.

        Returns:
            ChatStream yielding NDJSON lines until the loop closes the stream

        Raises:
            ValueError: On an invalid request
            SessionNotFoundError: If the session does not exist
            SessionBusyError: If the session is already running a request
        """
        persona = self._prepare(request)
        self.locks.acquire(request.session_id)

        try:
            stream = QueueStream()
            cancel_token = CancellationToken()
            self._maybe_schedule_title(request, stream.emitter)

            thread = threading.Thread(
                target=self._run_locked,
                args=(persona, request, stream.emitter, cancel_token),
                name=f"agent-{request.session_id[:8]}",
                daemon=True,
            )
            thread.start()
        except Exception:
            self.locks.release(request.session_id)
            raise

        logger.info(f"💬 Streaming {persona.name} request for session {request.session_id}")
        return ChatStream(request.session_id, stream, cancel_token, thread)

    def run_turn(self, request: ChatRequest) -> Tuple[TurnOutcome, List[str]]:
        """
        Run the agent loop in the calling thread and collect its output.

        Returns:
            (outcome, NDJSON lines in emission order)

        Raises:
            Same as ``stream_turn``
        """
        persona = self._prepare(request)
        lines: List[str] = []
        emitter = StreamEmitter(lines.append)

        with self.locks.hold(request.session_id):
            self._maybe_schedule_title(request, emitter)
            outcome = self._build_orchestrator(persona).run(
                request.session_id,
                request.prompt,
                emitter,
                prior_messages=request.prior_messages,
            )
        return outcome, lines

    def _build_orchestrator(self, persona: Persona):
        return persona.build_orchestrator(self.store, **self.orchestrator_options)

    def _run_locked(
        self,
        persona: Persona,
        request: ChatRequest,
        emitter: StreamEmitter,
        cancel_token: CancellationToken,
    ) -> None:
        try:
            self._build_orchestrator(persona).run(
                request.session_id,
                request.prompt,
                emitter,
                cancel_token=cancel_token,
                prior_messages=request.prior_messages,
            )
        except Exception as e:
            logger.error(f"❌ Agent thread for session {request.session_id} failed: {e}", exc_info=True)
        finally:
            self.locks.release(request.session_id)
            # run() always closes; this only matters if building the orchestrator failed
            if not emitter.closed:
                emitter.close()
