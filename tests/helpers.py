"""
Shared test doubles: a scripted model gateway, a small tool registry and
helpers to read NDJSON output.
"""

import copy
import json
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import Field

from core.errors import BusinessRuleError
from core.models import ModelTurn, ToolCall
from tools.registry import ToolArgs, ToolRegistry
from utils.markup import END_CONVERSATION, END_QUESTION, wrap_response


def text_turn(text: str) -> ModelTurn:
    return ModelTurn.from_parts([], [text])


def call_turn(*calls: ToolCall) -> ModelTurn:
    return ModelTurn.from_parts(list(calls), [])


def final_text(message: str = "Done.") -> str:
    return wrap_response(message, sentinel=END_CONVERSATION)


def question_text(message: str = "Which program?") -> str:
    return wrap_response(message, sentinel=END_QUESTION)


class ScriptedGateway:
    """
    Stands in for the Model Gateway.

    Returns the prepared turns in order (the last one repeats once the
    script runs out). An Exception in the script is raised instead.
    Every window it receives is recorded as a deep copy.
    """

    def __init__(self, turns: List[Any]):
        self.turns = list(turns)
        self.windows: List[List[Dict[str, Any]]] = []
        self.tool_schemas: List[List[Dict[str, Any]]] = []
        self.instructions: List[str] = []

    @property
    def calls(self) -> int:
        return len(self.windows)

    def __call__(self, window, tool_schema, persona_instructions, cancel_token=None):
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        self.windows.append(copy.deepcopy(window))
        self.tool_schemas.append(tool_schema)
        self.instructions.append(persona_instructions)

        turn = self.turns.pop(0) if len(self.turns) > 1 else self.turns[0]
        if isinstance(turn, Exception):
            raise turn
        return turn


def parse_lines(lines: List[str]) -> List[Dict[str, Any]]:
    return [json.loads(line) for line in lines]


def roles(events: List[Dict[str, Any]]) -> List[str]:
    return [e["role"] for e in events]


# ============================================================================
# SAMPLE REGISTRY
# ============================================================================

class SampleTool(str, Enum):
    CREATE_PROGRAM = "create_program"
    LOOKUP = "lookup"
    REJECT = "reject"
    EXPLODE = "explode"


class CreateArgs(ToolArgs):
    name: str = Field(..., description="Program name.")
    code: str = Field(..., description="Program code.")


class LookupArgs(ToolArgs):
    key: str
    limit: Optional[int] = None


def build_sample_registry(calls: Optional[List[Any]] = None) -> ToolRegistry:
    """A registry whose handlers record their arguments into ``calls``."""
    calls = calls if calls is not None else []
    registry = ToolRegistry(SampleTool)

    @registry.register(SampleTool.CREATE_PROGRAM, "Creates a program.", CreateArgs)
    def create_program(args: CreateArgs):
        calls.append(("create_program", args))
        return {"success": True, "data": {"id": "prog-1", "name": args.name, "code": args.code}}

    @registry.register(SampleTool.LOOKUP, "Looks something up.", LookupArgs)
    def lookup(args: LookupArgs):
        calls.append(("lookup", args))
        return {"success": True, "data": {"key": args.key}}

    @registry.register(SampleTool.REJECT, "Always rejects.")
    def reject(args):
        calls.append(("reject", args))
        raise BusinessRuleError("A program with this code already exists")

    @registry.register(SampleTool.EXPLODE, "Always crashes.")
    def explode(args):
        calls.append(("explode", args))
        raise RuntimeError("database connection lost")

    return registry
