"""
Typed Tool Registry

Each persona owns one registry. Tool names are members of a ``str`` Enum,
every registration carries a pydantic model for its arguments, and the
Gemini function declarations are generated from those models. Adding a
tool therefore means adding one enum member and one decorated handler;
the schema the model sees cannot drift from what the dispatcher accepts.
"""

import logging
import types
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Literal, Optional, Type, Union, get_args, get_origin

from pydantic import BaseModel, ConfigDict

from core.errors import UnknownToolError

logger = logging.getLogger(__name__)


# ============================================================================
# ARGUMENT MODELS
# ============================================================================

class ToolArgs(BaseModel):
    """Base class for tool argument models. Unknown keys from the model are dropped."""
    model_config = ConfigDict(extra="ignore")


class NoArgs(ToolArgs):
    """For tools that take no arguments."""


# ============================================================================
# SCHEMA GENERATION
# ============================================================================

_SCALAR_TYPES = {
    str: "STRING",
    int: "INTEGER",
    float: "NUMBER",
    bool: "BOOLEAN",
}


def _unwrap_optional(annotation: Any) -> Any:
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        members = [a for a in get_args(annotation) if a is not type(None)]
        if len(members) == 1:
            return members[0]
    return annotation


def annotation_to_schema(annotation: Any, description: Optional[str] = None) -> Dict[str, Any]:
    """
    Convert a Python type annotation into a Gemini schema fragment.

    Supports str/int/float/bool, Literal (as a STRING enum), lists,
    dicts and nested ToolArgs models. Optional[...] is unwrapped; whether
    the field is required is decided by the caller.
    """
    annotation = _unwrap_optional(annotation)
    origin = get_origin(annotation)

    if origin is Literal:
        schema = {
            "type": "STRING",
            "format": "enum",
            "enum": [str(v) for v in get_args(annotation)],
        }
    elif origin in (list, List):
        (item_type,) = get_args(annotation) or (str,)
        schema = {"type": "ARRAY", "items": annotation_to_schema(item_type)}
    elif origin in (dict, Dict) or annotation is dict:
        schema = {"type": "OBJECT"}
    elif isinstance(annotation, type) and issubclass(annotation, BaseModel):
        schema = model_to_schema(annotation)
    elif annotation in _SCALAR_TYPES:
        schema = {"type": _SCALAR_TYPES[annotation]}
    else:
        raise TypeError(f"Unsupported tool argument type: {annotation!r}")

    if description:
        schema["description"] = description
    return schema


def model_to_schema(model: Type[BaseModel]) -> Dict[str, Any]:
    """Build an OBJECT schema from a pydantic model's fields."""
    properties = {}
    required = []

    for name, info in model.model_fields.items():
        properties[name] = annotation_to_schema(info.annotation, info.description)
        if info.is_required():
            required.append(name)

    schema: Dict[str, Any] = {"type": "OBJECT", "properties": properties}
    if required:
        schema["required"] = required
    return schema


# ============================================================================
# REGISTRY
# ============================================================================

@dataclass(frozen=True)
class ToolSpec:
    """A registered tool: its tag, description, argument model and handler."""
    tag: Enum
    description: str
    args_model: Type[ToolArgs]
    handler: Callable[[Any], Any]

    @property
    def name(self) -> str:
        return self.tag.value

    def declaration(self) -> Dict[str, Any]:
        declaration = {"name": self.name, "description": self.description}
        if self.args_model.model_fields:
            declaration["parameters"] = model_to_schema(self.args_model)
        return declaration


class ToolRegistry:
    """
    Maps the members of one tool Enum to their handlers.

    Usage:
        registry = ToolRegistry(AcademicTool)

        @registry.register(AcademicTool.DELETE_PROGRAM, "Deletes a program by ID.", IdArgs)
        def delete_program(args: IdArgs):
            ...
    """

    def __init__(self, tags: Type[Enum]):
        self.tags = tags
        self._specs: Dict[Enum, ToolSpec] = {}

    def register(
        self,
        tag: Enum,
        description: str,
        args_model: Type[ToolArgs] = NoArgs,
    ) -> Callable:
        """Decorator registering ``func`` as the handler for ``tag``."""
        if not isinstance(tag, self.tags):
            raise TypeError(f"{tag!r} is not a member of {self.tags.__name__}")
        if tag in self._specs:
            raise ValueError(f"Tool '{tag.value}' is already registered")

        def decorator(func: Callable) -> Callable:
            self._specs[tag] = ToolSpec(
                tag=tag,
                description=description,
                args_model=args_model,
                handler=func,
            )
            return func

        return decorator

    def resolve(self, name: str) -> ToolSpec:
        """
        Turn a model-supplied tool name into its spec.

        Raises:
            UnknownToolError: If the name is not a tag of this registry
        """
        try:
            tag = self.tags(name)
        except ValueError:
            raise UnknownToolError(name, self.names)

        spec = self._specs.get(tag)
        if spec is None:
            raise UnknownToolError(name, self.names)
        return spec

    def declarations(self) -> List[Dict[str, Any]]:
        """Function declarations for the Model Gateway, in enum order."""
        return [self._specs[tag].declaration() for tag in self.tags if tag in self._specs]

    def ensure_complete(self) -> None:
        """Fail fast when an enum member has no handler."""
        missing = [tag.value for tag in self.tags if tag not in self._specs]
        if missing:
            raise ValueError(f"{self.tags.__name__} has tools without handlers: {missing}")

    @property
    def names(self) -> List[str]:
        return [tag.value for tag in self.tags if tag in self._specs]

    def __contains__(self, name: str) -> bool:
        return name in self.names

    def __len__(self) -> int:
        return len(self._specs)
