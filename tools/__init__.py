"""
Function Calling Tools Module

This module contains the tools (functions) the portal agents can invoke
through function calling. Each persona has its own typed registry:

- academic_registry: programs, levels and semesters
- report_registry: statistics, student search and exam analytics

Each tool is designed to:
- Have a clear, single purpose
- Accept a validated pydantic argument model
- Return the portal's {success, data, error} envelope
- Be independently testable
"""

from .registry import (
    ToolArgs,
    NoArgs,
    ToolSpec,
    ToolRegistry,
    model_to_schema,
)

from .academic_tools import (
    AcademicTool,
    academic_registry,
)

from .report_tools import (
    ReportTool,
    report_registry,
)

__all__ = [
    # Registry
    "ToolArgs",
    "NoArgs",
    "ToolSpec",
    "ToolRegistry",
    "model_to_schema",

    # Academic tools
    "AcademicTool",
    "academic_registry",

    # Report tools
    "ReportTool",
    "report_registry",
]
