"""
Academic Structure Tools

Function calling tools for managing programs, levels and semesters.
Programs are top-level, levels belong to a program and semesters belong
to a level. Every handler delegates to the portal's academic actions and
returns their result envelope; lookups that come back empty are turned
into failure results so the model can ask the user instead of guessing.
"""

import logging
import re
from enum import Enum
from typing import Any, Dict, Literal, Optional

from pydantic import Field, field_validator

from clients.portal_client import get_portal_client
from core.errors import BusinessRuleError
from tools.registry import ToolArgs, ToolRegistry

logger = logging.getLogger(__name__)

MODULE = "academic"


class AcademicTool(str, Enum):
    """Tools available to the academic-structure persona."""
    FIND_ID_BY_CODE = "find_id_by_code"
    CREATE_PROGRAM = "create_program"
    FIND_PROGRAM_ID_BY_NAME = "find_program_id_by_name"
    GET_PROGRAMS = "get_programs"
    UPDATE_PROGRAM = "update_program"
    DELETE_PROGRAM = "delete_program"
    FIND_LEVEL_ID_BY_NAME = "find_level_id_by_name"
    CREATE_LEVEL = "create_level"
    GET_LEVELS = "get_levels"
    UPDATE_LEVEL = "update_level"
    DELETE_LEVEL = "delete_level"
    FIND_SEMESTER_ID_BY_NAME = "find_semester_id_by_name"
    CREATE_SEMESTER = "create_semester"
    GET_SEMESTERS = "get_semesters"
    UPDATE_SEMESTER = "update_semester"
    DELETE_SEMESTER = "delete_semester"
    RETRIEVE_FIELD = "retrieve_field"


academic_registry = ToolRegistry(AcademicTool)

EntityType = Literal["program", "level", "semester"]


# ============================================================================
# ARGUMENT MODELS
# ============================================================================

class _DescribedArgs(ToolArgs):
    description: Optional[str] = Field(None, description="Optional description.")

    @field_validator("description")
    @classmethod
    def _single_line(cls, value: Optional[str]) -> Optional[str]:
        # Descriptions are stored as one line
        if value is None:
            return value
        return re.sub(r"\r?\n", " ", value).strip()


class CreateProgramArgs(_DescribedArgs):
    name: str = Field(..., description="Name of the program.")
    code: str = Field(..., description="Program code. It is unique.")
    status: Optional[str] = Field(None, description="Program status.")


class UpdateArgs(_DescribedArgs):
    id: str = Field(..., description="ID of the entity to update.")
    name: Optional[str] = Field(None, description="New name.")
    code: Optional[str] = Field(None, description="New code. It is unique.")


class IdArgs(ToolArgs):
    id: str = Field(..., description="ID of the entity.")


class ProgramNameArgs(ToolArgs):
    program_name: str = Field(..., description="The name of the program to find.")


class CreateLevelArgs(_DescribedArgs):
    name: str = Field(..., description="Level name.")
    program_id: str = Field(..., description="ID of the program the level belongs to.")
    code: str = Field(..., description="Level code. It is unique.")


class LevelFilterArgs(ToolArgs):
    program_id: Optional[str] = Field(None, description="Program ID to filter by.")


class LevelNameArgs(ToolArgs):
    level_name: str = Field(..., description="The name of the level to find.")
    program_id: Optional[str] = Field(
        None, description="Optional: the ID of the program the level belongs to, to narrow the search."
    )


class CreateSemesterArgs(_DescribedArgs):
    name: str = Field(..., description="Semester name.")
    level_id: str = Field(..., description="ID of the level the semester belongs to.")
    code: str = Field(..., description="Semester code. It is unique.")


class SemesterFilterArgs(ToolArgs):
    level_id: Optional[str] = Field(None, description="Level ID to filter by.")


class SemesterNameArgs(ToolArgs):
    semester_name: str = Field(..., description="The name of the semester to find.")
    level_id: Optional[str] = Field(
        None, description="Optional: the ID of the level the semester belongs to, to narrow the search."
    )


class FindIdByCodeArgs(ToolArgs):
    entity: EntityType = Field(..., description="The entity to search: program, level or semester.")
    code: str = Field(..., description="The code of the entity to search for.")


class RetrieveFieldArgs(ToolArgs):
    entity_type: EntityType = Field(..., description="The type of entity.")
    field_name: str = Field(..., description='The field to retrieve (e.g. "name", "code", "description").')
    entity_id: Optional[str] = Field(None, description="The ID of the specific entity instance.")


# ============================================================================
# HELPERS
# ============================================================================

def _call(operation: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return get_portal_client().call(MODULE, operation, payload)


def _lookup(operation: str, payload: Dict[str, Any], not_found: str) -> Dict[str, Any]:
    """Run a lookup and turn an empty answer into a failure result."""
    result = _call(operation, payload)
    if not result["success"]:
        return result
    if not result.get("data"):
        return {"success": False, "error": not_found}
    return {"success": True, "data": result["data"]}


def _update(operation: str, args: UpdateArgs) -> Dict[str, Any]:
    changes = {
        "name": args.name,
        "description": args.description,
        "code": args.code,
    }
    if all(v is None for v in changes.values()):
        raise BusinessRuleError("Provide at least one field (name, description or code) to update")
    return _call(operation, {"id": args.id, **changes})


# ============================================================================
# PROGRAM TOOLS
# ============================================================================

@academic_registry.register(
    AcademicTool.CREATE_PROGRAM,
    "Creates a new program in the university portal.",
    CreateProgramArgs,
)
def create_program(args: CreateProgramArgs) -> Dict[str, Any]:
    logger.info(f"🏫 Creating program {args.name} ({args.code})")
    return _call("createProgram", {
        "name": args.name.strip(),
        "code": args.code.strip(),
        "description": args.description,
        "status": args.status,
    })


@academic_registry.register(AcademicTool.GET_PROGRAMS, "Retrieves all programs.")
def get_programs(args) -> Dict[str, Any]:
    return _call("getPrograms")


@academic_registry.register(
    AcademicTool.UPDATE_PROGRAM,
    "Updates an existing program by ID.",
    UpdateArgs,
)
def update_program(args: UpdateArgs) -> Dict[str, Any]:
    return _update("updateProgram", args)


@academic_registry.register(AcademicTool.DELETE_PROGRAM, "Deletes a program by ID.", IdArgs)
def delete_program(args: IdArgs) -> Dict[str, Any]:
    return _call("deleteProgram", {"id": args.id})


@academic_registry.register(
    AcademicTool.FIND_PROGRAM_ID_BY_NAME,
    "Finds the ID of a program by its name.",
    ProgramNameArgs,
)
def find_program_id_by_name(args: ProgramNameArgs) -> Dict[str, Any]:
    return _lookup(
        "findProgramIdByName",
        {"name": args.program_name},
        "Program not found or invalid program name",
    )


# ============================================================================
# LEVEL TOOLS
# ============================================================================

@academic_registry.register(
    AcademicTool.CREATE_LEVEL,
    "Creates a new level under a program.",
    CreateLevelArgs,
)
def create_level(args: CreateLevelArgs) -> Dict[str, Any]:
    logger.info(f"🏫 Creating level {args.name} ({args.code}) in program {args.program_id}")
    return _call("createLevel", {
        "name": args.name.strip(),
        "code": args.code.strip(),
        "description": args.description,
        "programId": args.program_id,
    })


@academic_registry.register(
    AcademicTool.GET_LEVELS,
    "Retrieves levels, optionally filtered by program ID.",
    LevelFilterArgs,
)
def get_levels(args: LevelFilterArgs) -> Dict[str, Any]:
    return _call("getLevels", {"programId": args.program_id})


@academic_registry.register(AcademicTool.UPDATE_LEVEL, "Updates a level by ID.", UpdateArgs)
def update_level(args: UpdateArgs) -> Dict[str, Any]:
    return _update("updateLevel", args)


@academic_registry.register(AcademicTool.DELETE_LEVEL, "Deletes a level by ID.", IdArgs)
def delete_level(args: IdArgs) -> Dict[str, Any]:
    return _call("deleteLevel", {"id": args.id})


@academic_registry.register(
    AcademicTool.FIND_LEVEL_ID_BY_NAME,
    "Finds the ID of a level by its name, optionally within a specific program.",
    LevelNameArgs,
)
def find_level_id_by_name(args: LevelNameArgs) -> Dict[str, Any]:
    return _lookup(
        "findLevelIdByName",
        {"name": args.level_name, "programId": args.program_id},
        "Level not found or invalid level name",
    )


# ============================================================================
# SEMESTER TOOLS
# ============================================================================

@academic_registry.register(
    AcademicTool.CREATE_SEMESTER,
    "Creates a new semester under a level.",
    CreateSemesterArgs,
)
def create_semester(args: CreateSemesterArgs) -> Dict[str, Any]:
    logger.info(f"🏫 Creating semester {args.name} ({args.code}) in level {args.level_id}")
    return _call("createSemester", {
        "name": args.name.strip(),
        "code": args.code.strip(),
        "description": args.description,
        "levelId": args.level_id,
    })


@academic_registry.register(
    AcademicTool.GET_SEMESTERS,
    "Retrieves semesters, optionally filtered by level ID.",
    SemesterFilterArgs,
)
def get_semesters(args: SemesterFilterArgs) -> Dict[str, Any]:
    return _call("getSemesters", {"levelId": args.level_id})


@academic_registry.register(AcademicTool.UPDATE_SEMESTER, "Updates a semester by ID.", UpdateArgs)
def update_semester(args: UpdateArgs) -> Dict[str, Any]:
    return _update("updateSemester", args)


@academic_registry.register(AcademicTool.DELETE_SEMESTER, "Deletes a semester by ID.", IdArgs)
def delete_semester(args: IdArgs) -> Dict[str, Any]:
    return _call("deleteSemester", {"id": args.id})


@academic_registry.register(
    AcademicTool.FIND_SEMESTER_ID_BY_NAME,
    "Finds the ID of a semester by its name, optionally within a specific level.",
    SemesterNameArgs,
)
def find_semester_id_by_name(args: SemesterNameArgs) -> Dict[str, Any]:
    return _lookup(
        "findSemesterIdByName",
        {"name": args.semester_name, "levelId": args.level_id},
        "Semester not found or invalid semester name",
    )


# ============================================================================
# CROSS-ENTITY TOOLS
# ============================================================================

@academic_registry.register(
    AcademicTool.FIND_ID_BY_CODE,
    "Finds the ID of a program, level or semester by its code.",
    FindIdByCodeArgs,
)
def find_id_by_code(args: FindIdByCodeArgs) -> Dict[str, Any]:
    return _lookup(
        "getIdByCode",
        {"entity": args.entity, "code": args.code},
        f"No {args.entity} found with code '{args.code}'",
    )


@academic_registry.register(
    AcademicTool.RETRIEVE_FIELD,
    "Retrieves a specific field value (e.g. name, code, description) for a program, level or semester by its ID.",
    RetrieveFieldArgs,
)
def retrieve_field(args: RetrieveFieldArgs) -> Dict[str, Any]:
    return _lookup(
        "retrieveField",
        {"entityType": args.entity_type, "field": args.field_name, "id": args.entity_id},
        "Field not found or invalid field name or id",
    )


academic_registry.ensure_complete()
