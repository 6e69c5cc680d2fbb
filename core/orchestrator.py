"""
Turn Orchestrator - Main Agent Loop

Drives one user request through the model/tool loop:
1. Persist the user message and rebuild the full conversation window
2. Ask the Model Gateway for the next turn
3. Function calls: persist them, run them through the Tool Dispatcher,
   persist all results as one ``function`` message, loop
4. Text: persist it; a control sentinel ends the request, otherwise a
   synthetic continuation is appended and the loop goes on
5. Stop on a fatal error or when the iteration bound is reached

Every step is streamed as an event. The stream always ends with exactly
one terminal event, a ``chats`` dump of the window, and a single close.

One orchestrator serves every persona: the persona only contributes its
instructions and its tool registry.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from ai import send_turn, tag_trace, traced
from config import MAX_LOOP_ITERATIONS, CONTINUATION_PROMPT
from .cancellation import CancellationToken
from .dispatcher import ToolDispatcher
from .errors import (
    AgentError,
    ModelGatewayError,
    OperationCancelled,
    ToolExecutionError,
    UnknownToolError,
)
from .models import (
    ModelTurn,
    Role,
    ToolCall,
    ToolResult,
    function_call_content,
    function_response_content,
    text_content,
)
from .stream import EventType, StreamEmitter
from utils.markup import ControlSignal

logger = logging.getLogger(__name__)

Gateway = Callable[..., ModelTurn]

EXHAUSTED_MESSAGE = "Max loop iterations reached without a final text response."
EMPTY_RESPONSE_MESSAGE = "Model returned no content parts. Ending loop."
UNUSABLE_RESPONSE_MESSAGE = "Model response was neither a function call nor text. Ending loop."


# ============================================================================
# DATA STRUCTURES
# ============================================================================

class TurnState(Enum):
    """Where the loop currently is."""
    AWAITING_MODEL = "awaiting_model"
    EXECUTING_TOOLS = "executing_tools"
    EMITTING_TEXT = "emitting_text"
    TERMINATED = "terminated"


class TurnStatus(Enum):
    """How a request ended."""
    COMPLETED = "completed"
    AWAITING_INPUT = "awaiting_input"
    FAILED = "failed"
    EXHAUSTED = "exhausted"
    CANCELLED = "cancelled"


@dataclass
class TurnOutcome:
    """
    Result of one orchestrated request.

    Attributes:
        status: How the request ended
        iterations: Number of model calls made
        final_text: Text of the terminal model reply, if any
        error: Error message for failed, exhausted or cancelled requests
        tool_results: Every tool result of the request, in call order
        execution_time: Wall time of the request (seconds)
    """
    status: TurnStatus
    iterations: int = 0
    final_text: Optional[str] = None
    error: Optional[str] = None
    tool_results: List[ToolResult] = field(default_factory=list)
    execution_time: float = 0.0

    @property
    def success(self) -> bool:
        return self.status in (TurnStatus.COMPLETED, TurnStatus.AWAITING_INPUT)


# ============================================================================
# TURN ORCHESTRATOR
# ============================================================================

class TurnOrchestrator:
    """
    Generic agent loop, parameterized by persona instructions and a tool registry.

    Usage:
        orchestrator = TurnOrchestrator(instructions, academic_registry, store)
        outcome = orchestrator.run(session_id, "create a program called Physics", emitter)
    """

    def __init__(
        self,
        instructions: str,
        registry,
        store,
        gateway: Optional[Gateway] = None,
        dispatcher: Optional[ToolDispatcher] = None,
        max_iterations: int = MAX_LOOP_ITERATIONS,
        continuation_prompt: str = CONTINUATION_PROMPT,
    ):
        """
        Initialize the orchestrator.

        Args:
            instructions: System instruction of the persona
            registry: ToolRegistry of the persona
            store: SessionStore holding the conversation log
            gateway: Callable(window, tool_schema, persona_instructions, cancel_token=...)
            dispatcher: ToolDispatcher over ``registry`` (built if omitted)
            max_iterations: Maximum number of model calls per request
            continuation_prompt: User text appended after a sentinel-free reply
        """
        self.instructions = instructions
        self.registry = registry
        self.store = store
        self.gateway = gateway or send_turn
        self.dispatcher = dispatcher or ToolDispatcher(registry)
        self.max_iterations = max_iterations
        self.continuation_prompt = continuation_prompt
        self.state = TurnState.AWAITING_MODEL

    @traced("agent_turn")
    def run(
        self,
        session_id: str,
        prompt: str,
        emitter: StreamEmitter,
        cancel_token: Optional[CancellationToken] = None,
        prior_messages: Optional[List[Dict[str, Any]]] = None,
    ) -> TurnOutcome:
        """
        Execute the full agent loop for one user message.

        The emitter is closed exactly once before this returns, whatever
        happens.

        Args:
            session_id: Session to append to
            prompt: The user's input
            emitter: Stream the events go to
            cancel_token: Set when the client disconnects
            prior_messages: History as the client knows it (the store wins)

        Returns:
            TurnOutcome describing how the request ended
        """
        cancel_token = cancel_token or CancellationToken()
        start_time = time.time()
        tag_trace(session_id=session_id)
        self.state = TurnState.AWAITING_MODEL

        window: List[Dict[str, Any]] = []
        outcome = TurnOutcome(status=TurnStatus.FAILED)

        try:
            window = self._seed_window(session_id, prompt, prior_messages)
            emitter.emit(EventType.USER_MESSAGE_RECEIVED, prompt)
            self._loop(session_id, window, emitter, cancel_token, outcome)

        except OperationCancelled as e:
            # The client is gone: no terminal event, just release the stream
            logger.info(f"🛑 Session {session_id} cancelled: {e}")
            outcome.status = TurnStatus.CANCELLED
            outcome.error = str(e)

        except ToolExecutionError as e:
            outcome.status = TurnStatus.FAILED
            outcome.error = str(e)
            self._fail(emitter, window, f"Error executing function '{e.name}'", error=str(e.cause))

        except UnknownToolError as e:
            outcome.status = TurnStatus.FAILED
            outcome.error = str(e)
            self._fail(emitter, window, str(e), available=e.available)

        except AgentError as e:
            outcome.status = TurnStatus.FAILED
            outcome.error = str(e)
            self._fail(emitter, window, str(e))

        except Exception as e:
            logger.error(f"❌ Unexpected error in agent loop: {e}", exc_info=True)
            outcome.status = TurnStatus.FAILED
            outcome.error = str(e) or "Server error"
            self._fail(emitter, window, outcome.error)

        finally:
            self.state = TurnState.TERMINATED
            if not emitter.closed:
                emitter.close()

        outcome.execution_time = time.time() - start_time
        logger.info(
            f"🏁 Session {session_id} finished: {outcome.status.value} "
            f"after {outcome.iterations} iteration(s) in {outcome.execution_time:.2f}s"
        )
        return outcome

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    def _loop(
        self,
        session_id: str,
        window: List[Dict[str, Any]],
        emitter: StreamEmitter,
        cancel_token: CancellationToken,
        outcome: TurnOutcome,
    ) -> None:
        tool_schema = self.registry.declarations()

        for iteration in range(1, self.max_iterations + 1):
            cancel_token.raise_if_cancelled()
            self.state = TurnState.AWAITING_MODEL
            outcome.iterations = iteration
            logger.info(f"🔄 Loop iteration {iteration}/{self.max_iterations} for session {session_id}")
            emitter.emit(EventType.LOG, f"--- Loop iteration: {iteration} ---")

            turn = self.gateway(window, tool_schema, self.instructions, cancel_token=cancel_token)

            # Function calls take precedence; co-occurring text is dropped for this turn
            if turn.has_function_calls:
                self.state = TurnState.EXECUTING_TOOLS
                if turn.has_text:
                    logger.debug(f"Dropping {len(turn.texts)} text part(s) sent alongside function calls")
                results = self._execute_tools(session_id, window, turn.function_calls, emitter, cancel_token)
                outcome.tool_results.extend(results)
                continue

            if turn.has_text:
                self.state = TurnState.EMITTING_TEXT
                text = turn.text
                self._append(session_id, window, Role.MODEL, text)

                if turn.control.is_terminal:
                    emitter.emit(EventType.MODEL_RESPONSE, text, signal=turn.control.value)
                    self._finish(emitter, window)
                    outcome.status = (
                        TurnStatus.COMPLETED if turn.control is ControlSignal.COMPLETE
                        else TurnStatus.AWAITING_INPUT
                    )
                    outcome.final_text = text
                    return

                self._append(session_id, window, Role.USER, self.continuation_prompt)
                emitter.emit(EventType.THOUGHT, text)
                continue

            logger.warning(f"⚠️  Unusable model response in session {session_id}")
            raise ModelGatewayError(EMPTY_RESPONSE_MESSAGE if turn.is_empty else UNUSABLE_RESPONSE_MESSAGE)

        logger.warning(f"⚠️  Session {session_id} hit the iteration bound ({self.max_iterations})")
        outcome.status = TurnStatus.EXHAUSTED
        outcome.error = EXHAUSTED_MESSAGE
        self._fail(emitter, window, EXHAUSTED_MESSAGE)

    def _execute_tools(
        self,
        session_id: str,
        window: List[Dict[str, Any]],
        calls: List[ToolCall],
        emitter: StreamEmitter,
        cancel_token: CancellationToken,
    ) -> List[ToolResult]:
        # Unknown names end the request before anything of this turn is persisted
        self.dispatcher.resolve_all(calls)

        emitter.emit(
            EventType.FUNCTION_CALL_NUMBER,
            f"Model requested {len(calls)} function call(s).",
            data=[c.to_part() for c in calls],
        )
        self._persist(session_id, window, function_call_content(calls))

        def on_call(call: ToolCall) -> None:
            if cancel_token.cancelled:
                return
            emitter.emit(EventType.FUNCTION_CALL, f"Executing function: {call.name}", name=call.name, args=call.args)

        def on_result(call: ToolCall, result: ToolResult) -> None:
            if cancel_token.cancelled:
                return
            emitter.emit(
                EventType.FUNCTION_RESPONSE,
                f"Function '{call.name}' executed",
                name=call.name,
                result=result.to_envelope(),
            )

        # The call message is stored, so every call gets a result before a cancel is honoured
        results = self.dispatcher.dispatch_all(calls, cancel_token, on_call=on_call, on_result=on_result)
        self._persist(session_id, window, function_response_content(results))
        cancel_token.raise_if_cancelled()
        return results

    # ------------------------------------------------------------------
    # Window and store
    # ------------------------------------------------------------------

    def _seed_window(
        self,
        session_id: str,
        prompt: str,
        prior_messages: Optional[List[Dict[str, Any]]],
    ) -> List[Dict[str, Any]]:
        window = self.store.load_window(session_id)
        if prior_messages is not None and len(prior_messages) != len(window):
            logger.warning(
                f"⚠️  Client sent {len(prior_messages)} prior message(s) but session "
                f"{session_id} has {len(window)} stored; using stored history"
            )
        self._append(session_id, window, Role.USER, prompt)
        return window

    def _append(self, session_id: str, window: List[Dict[str, Any]], role: Role, text: str) -> None:
        self._persist(session_id, window, text_content(role, text))

    def _persist(self, session_id: str, window: List[Dict[str, Any]], content: Dict[str, Any]) -> None:
        # Store first, then window: the next gateway call never sees an unsaved message
        self.store.append_message(session_id, Role(content["role"]), content["parts"])
        window.append(content)

    # ------------------------------------------------------------------
    # Terminal events
    # ------------------------------------------------------------------

    def _finish(self, emitter: StreamEmitter, window: List[Dict[str, Any]]) -> None:
        emitter.emit(EventType.CHATS, data=window)
        emitter.close()

    def _fail(self, emitter: StreamEmitter, window: List[Dict[str, Any]], message: str, **payload: Any) -> None:
        logger.error(f"❌ {message}")
        if emitter.closed:
            return
        emitter.emit(EventType.ERROR, message, **payload)
        self._finish(emitter, window)
