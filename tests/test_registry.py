"""
Unit Tests for the Tool Registry

Tests registration rules, name resolution and the generated Gemini
function declarations.
"""

from enum import Enum
from typing import Dict, List, Literal, Optional

import pytest
from pydantic import Field

from core.errors import UnknownToolError
from tools import AcademicTool, ReportTool, academic_registry, report_registry
from tools.registry import NoArgs, ToolArgs, ToolRegistry, annotation_to_schema, model_to_schema


class Color(str, Enum):
    RED = "red"
    BLUE = "blue"


class Inner(ToolArgs):
    label: str


class RichArgs(ToolArgs):
    name: str = Field(..., description="A name.")
    count: Optional[int] = None
    ratio: float = 1.0
    enabled: bool = False
    kind: Literal["a", "b"] = Field(..., description="The kind.")
    tags: List[str] = Field(default_factory=list)
    extra: Dict[str, str] = Field(default_factory=dict)
    inner: Optional[Inner] = None


class TestSchemaGeneration:
    """Test pydantic models become Gemini schemas."""

    def test_model_to_schema(self):
        """Test every supported field type maps to the right schema."""
        schema = model_to_schema(RichArgs)
        props = schema["properties"]

        assert schema["type"] == "OBJECT"
        assert schema["required"] == ["name", "kind"]
        assert props["name"] == {"type": "STRING", "description": "A name."}
        assert props["count"] == {"type": "INTEGER"}
        assert props["ratio"] == {"type": "NUMBER"}
        assert props["enabled"] == {"type": "BOOLEAN"}
        assert props["kind"] == {"type": "STRING", "format": "enum", "enum": ["a", "b"], "description": "The kind."}
        assert props["tags"] == {"type": "ARRAY", "items": {"type": "STRING"}}
        assert props["extra"] == {"type": "OBJECT"}
        assert props["inner"]["properties"]["label"] == {"type": "STRING"}

    def test_unsupported_type_raises(self):
        """Test types Gemini cannot express are rejected."""
        with pytest.raises(TypeError):
            annotation_to_schema(bytes)

    def test_no_args_declaration_has_no_parameters(self):
        """Test tools without arguments declare no parameters."""
        declaration = academic_registry.resolve("get_programs").declaration()

        assert declaration == {"name": "get_programs", "description": "Retrieves all programs."}


class TestRegistration:
    """Test the registry's rules."""

    def test_register_and_resolve(self):
        """Test a registered tag resolves by its string name."""
        registry = ToolRegistry(Color)

        @registry.register(Color.RED, "Paint it red.")
        def red(args):
            return "red"

        spec = registry.resolve("red")

        assert spec.name == "red"
        assert spec.args_model is NoArgs
        assert spec.handler is red
        assert "red" in registry
        assert len(registry) == 1

    def test_foreign_tag_rejected(self):
        """Test a tag from another enum cannot be registered."""
        registry = ToolRegistry(Color)

        with pytest.raises(TypeError):
            registry.register(AcademicTool.GET_PROGRAMS, "Wrong enum.")

    def test_duplicate_registration_rejected(self):
        """Test a tag can only have one handler."""
        registry = ToolRegistry(Color)
        registry.register(Color.RED, "First.")(lambda args: None)

        with pytest.raises(ValueError):
            registry.register(Color.RED, "Second.")

    def test_unknown_name(self):
        """Test names outside the enum raise UnknownToolError."""
        with pytest.raises(UnknownToolError) as exc_info:
            academic_registry.resolve("search_students")

        assert exc_info.value.name == "search_students"
        assert "create_program" in exc_info.value.available

    def test_member_without_handler(self):
        """Test an enum member with no handler is unknown and fails completeness."""
        registry = ToolRegistry(Color)
        registry.register(Color.RED, "Paint it red.")(lambda args: None)

        with pytest.raises(UnknownToolError):
            registry.resolve("blue")
        with pytest.raises(ValueError, match="blue"):
            registry.ensure_complete()


class TestPersonaRegistries:
    """Test the shipped tool tables."""

    def test_academic_registry_is_complete(self):
        """Test every academic tool has a handler and a declaration."""
        declarations = academic_registry.declarations()

        assert len(declarations) == len(AcademicTool) == 17
        assert [d["name"] for d in declarations] == [t.value for t in AcademicTool]

    def test_report_registry_is_complete(self):
        """Test every reporting tool has a handler and a declaration."""
        declarations = report_registry.declarations()

        assert len(declarations) == len(ReportTool) == 12
        assert set(report_registry.names) == {t.value for t in ReportTool}

    def test_create_program_declaration(self):
        """Test the create_program schema requires name and code."""
        declaration = academic_registry.resolve("create_program").declaration()
        params = declaration["parameters"]

        assert set(params["required"]) == {"name", "code"}
        assert set(params["properties"]) == {"name", "code", "description", "status"}

    def test_find_id_by_code_uses_enum(self):
        """Test the entity argument is declared as an enum."""
        params = academic_registry.resolve("find_id_by_code").declaration()["parameters"]

        assert params["properties"]["entity"]["enum"] == ["program", "level", "semester"]

    def test_registries_do_not_overlap(self):
        """Test each persona only sees its own tools."""
        assert not set(academic_registry.names) & set(report_registry.names)
