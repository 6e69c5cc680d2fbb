"""
Core Agent Logic Module

This module contains the agent loop of the portal assistant:
- Turn orchestration: the model/tool loop and its terminal conditions
- Tool dispatch: argument validation, execution, result normalization
- Streaming: NDJSON events with a single close
- Conversation data structures, errors and cancellation

The loop is persona-agnostic: a persona supplies instructions and a tool
registry, everything else is shared. The orchestrator depends on the model
gateway in ``ai``, so import it from ``core.orchestrator`` directly.
"""

from .errors import (
    AgentError,
    BusinessRuleError,
    UnknownToolError,
    ToolExecutionError,
    ModelGatewayError,
    StreamClosedError,
    MissingPromptError,
    SessionNotFoundError,
    SessionBusyError,
    OperationCancelled,
)

from .cancellation import CancellationToken

from .models import (
    Role,
    SessionCategory,
    ToolCall,
    ToolResult,
    ModelTurn,
)

from .stream import (
    EventType,
    StreamEmitter,
    QueueStream,
    encode_event,
)

from .dispatcher import ToolDispatcher, normalize_result

__all__ = [
    # Errors
    "AgentError",
    "BusinessRuleError",
    "UnknownToolError",
    "ToolExecutionError",
    "ModelGatewayError",
    "StreamClosedError",
    "MissingPromptError",
    "SessionNotFoundError",
    "SessionBusyError",
    "OperationCancelled",

    # Data
    "CancellationToken",
    "Role",
    "SessionCategory",
    "ToolCall",
    "ToolResult",
    "ModelTurn",

    # Streaming
    "EventType",
    "StreamEmitter",
    "QueueStream",
    "encode_event",

    # Loop
    "ToolDispatcher",
    "normalize_result",
]
