"""
Conversation Data Structures

Shapes shared by the store, the gateway and the orchestrator. A message
is a Gemini-style content dict, ``{"role": ..., "parts": [...]}``, so the
persisted history can be replayed to the model without translation:

- text part:              {"text": "..."}
- function-call part:     {"function_call": {"name": ..., "args": {...}}}
- function-response part: {"function_response": {"name": ..., "response": {...}}}
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from utils.markup import ControlSignal, detect_control_signal


class Role(str, Enum):
    """Author of a message in the conversation window."""
    USER = "user"
    MODEL = "model"
    FUNCTION = "function"


class SessionCategory(str, Enum):
    """Which persona (and tool table) a session belongs to."""
    ACADEMIC = "ACADEMIC"
    REPORT = "REPORT"


# ============================================================================
# TOOL CALLS AND RESULTS
# ============================================================================

@dataclass
class ToolCall:
    """A single function call requested by the model."""
    name: str
    args: Dict[str, Any] = field(default_factory=dict)

    def to_part(self) -> Dict[str, Any]:
        return {"function_call": {"name": self.name, "args": self.args}}


@dataclass
class ToolResult:
    """
    Normalized outcome of one tool call.

    Attributes:
        tool_name: Name of the tool that was called
        success: Whether the operation succeeded
        data: Payload returned by the operation
        error: Error message if unsuccessful
        execution_time: Time taken to execute (seconds)
    """
    tool_name: str
    success: bool
    data: Any = None
    error: Optional[str] = None
    execution_time: float = 0.0

    def to_envelope(self) -> Dict[str, Any]:
        """The ``{success, data}`` / ``{success, error}`` shape the model sees."""
        if self.success:
            return {"success": True, "data": self.data}
        return {"success": False, "error": self.error}

    def to_part(self) -> Dict[str, Any]:
        return {
            "function_response": {
                "name": self.tool_name,
                "response": self.to_envelope(),
            }
        }


# ============================================================================
# MODEL TURN
# ============================================================================

@dataclass
class ModelTurn:
    """
    One response from the Model Gateway, already partitioned.

    ``control`` is derived from the text once, here, so the orchestrator
    branches on a structured flag instead of searching text itself.
    ``part_count`` counts every part the model sent, usable or not.
    """
    function_calls: List[ToolCall] = field(default_factory=list)
    texts: List[str] = field(default_factory=list)
    control: ControlSignal = ControlSignal.CONTINUE
    part_count: int = 0

    @classmethod
    def from_parts(
        cls,
        function_calls: List[ToolCall],
        texts: List[str],
        part_count: Optional[int] = None,
    ) -> "ModelTurn":
        combined = "\n".join(texts)
        if part_count is None:
            part_count = len(function_calls) + len(texts)
        return cls(
            function_calls=list(function_calls),
            texts=list(texts),
            control=detect_control_signal(combined),
            part_count=part_count,
        )

    @property
    def text(self) -> str:
        return "\n".join(self.texts)

    @property
    def has_function_calls(self) -> bool:
        return len(self.function_calls) > 0

    @property
    def has_text(self) -> bool:
        return any(t for t in self.texts)

    @property
    def is_empty(self) -> bool:
        """True when the model sent no content parts at all."""
        return self.part_count == 0 and not self.has_function_calls and not self.has_text


# ============================================================================
# CONTENT BUILDERS
# ============================================================================

def text_content(role: Role, text: str) -> Dict[str, Any]:
    return {"role": role.value, "parts": [{"text": text}]}


def function_call_content(calls: List[ToolCall]) -> Dict[str, Any]:
    return {"role": Role.MODEL.value, "parts": [c.to_part() for c in calls]}


def function_response_content(results: List[ToolResult]) -> Dict[str, Any]:
    return {"role": Role.FUNCTION.value, "parts": [r.to_part() for r in results]}
