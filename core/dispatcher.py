"""
Tool Dispatcher

Validates the function calls of one model turn against a persona's
registry, runs the handlers and normalizes every outcome to a ToolResult.

The two failure classes are treated differently on purpose:
- business failures (a ``success: False`` envelope, a BusinessRuleError,
  or arguments that fail validation) become failure results and go back
  to the model as function responses;
- anything else a handler raises is wrapped in ToolExecutionError and
  propagates, ending the stream.

Unknown tool names are rejected before any handler of the turn runs.
Once a turn has started, a cancellation does not abort it half way: calls
that have not started yet get a ``cancelled`` failure result, so every call
of the turn still has exactly one result.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, List, Optional, Tuple

from pydantic import ValidationError

from config import PARALLEL_TOOL_CALLS, TOOL_WORKERS
from .cancellation import CancellationToken
from .errors import BusinessRuleError, ToolExecutionError
from .models import ToolCall, ToolResult

logger = logging.getLogger(__name__)

CallHook = Callable[[ToolCall], None]
ResultHook = Callable[[ToolCall, ToolResult], None]

CANCELLED_ERROR = "cancelled"


def normalize_result(tool_name: str, outcome: Any, execution_time: float = 0.0) -> ToolResult:
    """
    Coerce whatever a handler returned into a ToolResult.

    Handlers normally return the portal envelope. A bare value is treated
    as a successful payload.
    """
    if isinstance(outcome, ToolResult):
        return outcome

    if isinstance(outcome, dict) and "success" in outcome:
        success = bool(outcome["success"])
        error = outcome.get("error")
        if not success and not error:
            error = f"{tool_name} failed"
        return ToolResult(
            tool_name=tool_name,
            success=success,
            data=outcome.get("data") if success else None,
            error=None if success else str(error),
            execution_time=execution_time,
        )

    return ToolResult(
        tool_name=tool_name,
        success=True,
        data=outcome,
        execution_time=execution_time,
    )


def cancelled_result(call: ToolCall) -> ToolResult:
    return ToolResult(tool_name=call.name, success=False, error=CANCELLED_ERROR)


def _describe_validation_error(error: ValidationError) -> str:
    problems = []
    for item in error.errors():
        location = ".".join(str(p) for p in item.get("loc", ())) or "arguments"
        problems.append(f"{location}: {item.get('msg')}")
    return "; ".join(problems)


# ============================================================================
# DISPATCHER
# ============================================================================

class ToolDispatcher:
    """
    Runs tool calls against one registry.

    With ``parallel=True`` the calls of a turn fan out to a thread pool and
    are joined before returning; results always come back in call order.
    """

    def __init__(
        self,
        registry,
        parallel: bool = PARALLEL_TOOL_CALLS,
        max_workers: int = TOOL_WORKERS,
    ):
        """
        Initialize the dispatcher.

        Args:
            registry: ToolRegistry of the persona
            parallel: Execute a turn's calls concurrently
            max_workers: Thread pool size when parallel
        """
        self.registry = registry
        self.parallel = parallel
        self.max_workers = max_workers

    def dispatch(self, call: ToolCall, cancel_token: Optional[CancellationToken] = None) -> ToolResult:
        """
        Execute a single tool call.

        Raises:
            UnknownToolError: If the tool is not registered
            ToolExecutionError: If the handler fails unexpectedly
            OperationCancelled: If the token was cancelled before starting
        """
        spec = self.registry.resolve(call.name)
        return self._run(spec, call, cancel_token)

    def resolve_all(self, calls: List[ToolCall]) -> List[Tuple[Any, ToolCall]]:
        """
        Look up every call of a turn without running anything.

        Raises:
            UnknownToolError: On the first name the registry does not know
        """
        return [(self.registry.resolve(call.name), call) for call in calls]

    def dispatch_all(
        self,
        calls: List[ToolCall],
        cancel_token: Optional[CancellationToken] = None,
        on_call: Optional[CallHook] = None,
        on_result: Optional[ResultHook] = None,
    ) -> List[ToolResult]:
        """
        Execute every call of one turn and return one result per call.

        ``on_call`` fires before a call starts and ``on_result`` after it
        finishes. In parallel mode all ``on_call`` hooks fire up front and
        ``on_result`` hooks fire in call order once the batch has joined.

        Calls not yet started when ``cancel_token`` is set are skipped and
        get a cancelled result; no hook fires for them in sequential mode.
        """
        # Resolve everything first so an unknown tool aborts before any side effect
        specs = self.resolve_all(calls)

        if self.parallel and len(specs) > 1:
            return self._run_parallel(specs, cancel_token, on_call, on_result)

        results = []
        for spec, call in specs:
            if cancel_token is not None and cancel_token.cancelled:
                results.append(self._skip(call))
                continue
            if on_call:
                on_call(call)
            result = self._run(spec, call)
            if on_result:
                on_result(call, result)
            results.append(result)
        return results

    def _run_parallel(
        self,
        specs: List[Tuple[Any, ToolCall]],
        cancel_token: Optional[CancellationToken],
        on_call: Optional[CallHook],
        on_result: Optional[ResultHook],
    ) -> List[ToolResult]:
        if on_call:
            for _, call in specs:
                on_call(call)

        logger.info(f"🔀 Running {len(specs)} tool calls concurrently")
        workers = min(self.max_workers, len(specs))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="tool") as pool:
            futures = [pool.submit(self._run_unless_cancelled, spec, call, cancel_token) for spec, call in specs]
            try:
                results = [f.result() for f in futures]
            except BaseException:
                for f in futures:
                    f.cancel()
                raise

        if on_result:
            for (_, call), result in zip(specs, results):
                on_result(call, result)
        return results

    def _skip(self, call: ToolCall) -> ToolResult:
        logger.info(f"🛑 Skipping {call.name}: request cancelled")
        return cancelled_result(call)

    def _run_unless_cancelled(
        self,
        spec,
        call: ToolCall,
        cancel_token: Optional[CancellationToken],
    ) -> ToolResult:
        if cancel_token is not None and cancel_token.cancelled:
            return self._skip(call)
        return self._run(spec, call)

    def _run(self, spec, call: ToolCall, cancel_token: Optional[CancellationToken] = None) -> ToolResult:
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()

        logger.info(f"🔧 Calling tool: {call.name} with args: {call.args}")
        start_time = time.time()

        try:
            args = spec.args_model.model_validate(call.args or {})
        except ValidationError as e:
            message = f"Invalid arguments for '{call.name}': {_describe_validation_error(e)}"
            logger.warning(f"⚠️  {message}")
            return ToolResult(
                tool_name=call.name,
                success=False,
                error=message,
                execution_time=time.time() - start_time,
            )

        try:
            outcome = spec.handler(args)
        except BusinessRuleError as e:
            logger.info(f"⚠️  Tool {call.name} rejected the request: {e}")
            return ToolResult(
                tool_name=call.name,
                success=False,
                error=str(e),
                execution_time=time.time() - start_time,
            )
        except Exception as e:
            logger.error(f"❌ Tool {call.name} execution failed: {e}", exc_info=True)
            raise ToolExecutionError(call.name, e) from e

        result = normalize_result(call.name, outcome, time.time() - start_time)
        if not result.success:
            logger.info(f"⚠️  Tool {call.name} returned failure: {result.error}")
        return result
