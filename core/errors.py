"""
Agent error taxonomy.

Recoverable business failures never appear here: they travel back to the
model as ``{"success": False, "error": ...}`` results. Everything below is
fatal for the stream that raised it, except ``BusinessRuleError`` which a
tool handler may raise to reject a request conversationally.
"""

from typing import Optional


class AgentError(Exception):
    """Base class for every error raised by the agent loop."""


class BusinessRuleError(AgentError):
    """A domain rejection (duplicate code, missing parent) the model can recover from."""


class UnknownToolError(AgentError):
    """The model asked for a tool that is not in the persona's registry."""

    def __init__(self, name: str, available: Optional[list] = None):
        self.name = name
        self.available = available or []
        super().__init__(f"Unknown tool: '{name}'")


class ToolExecutionError(AgentError):
    """A tool handler raised something other than a business rejection."""

    def __init__(self, name: str, cause: BaseException):
        self.name = name
        self.cause = cause
        super().__init__(f"Error executing function '{name}': {cause}")


class ModelGatewayError(AgentError):
    """The language model could not produce a usable response."""


class StreamClosedError(AgentError):
    """An event was emitted after the stream was closed."""


class MissingPromptError(AgentError, ValueError):
    """The request carried no prompt text."""

    def __init__(self):
        super().__init__("Missing prompt")


class SessionNotFoundError(AgentError):
    """No session exists for the given id."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session not found: {session_id}")


class SessionBusyError(AgentError):
    """Another request is already running the agent loop on this session."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session {session_id} is already processing a request")


class OperationCancelled(AgentError):
    """The client went away; in-flight work stops without further writes."""
