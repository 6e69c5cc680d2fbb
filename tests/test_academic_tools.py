"""
Unit Tests for Academic Structure Tools

Tests payload shaping, lookup handling and argument validation for the
program, level and semester tools.
"""

import pytest
from unittest.mock import Mock, patch

from core.dispatcher import ToolDispatcher
from core.errors import BusinessRuleError
from core.models import ToolCall
from tools.academic_tools import (
    CreateLevelArgs,
    CreateProgramArgs,
    FindIdByCodeArgs,
    IdArgs,
    LevelFilterArgs,
    LevelNameArgs,
    ProgramNameArgs,
    UpdateArgs,
    academic_registry,
    create_level,
    create_program,
    delete_program,
    find_id_by_code,
    find_level_id_by_name,
    find_program_id_by_name,
    get_levels,
    get_programs,
    update_program,
)


@pytest.fixture
def portal():
    """Portal client stub answering every call with an empty success."""
    client = Mock()
    client.call.return_value = {"success": True, "data": None, "error": None}
    with patch("tools.academic_tools.get_portal_client", return_value=client):
        yield client


class TestProgramTools:
    """Test program tools."""

    def test_create_program(self, portal):
        """Test create_program strips name and code and forwards the payload."""
        portal.call.return_value = {"success": True, "data": {"id": "prog-1"}, "error": None}

        result = create_program(CreateProgramArgs(name=" Physics ", code="PHY ", description="Line one\nline two"))

        assert result["success"] is True
        portal.call.assert_called_once_with("academic", "createProgram", {
            "name": "Physics",
            "code": "PHY",
            "description": "Line one line two",
            "status": None,
        })

    def test_create_program_duplicate_is_returned(self, portal):
        """Test a business rejection from the portal is passed back unchanged."""
        portal.call.return_value = {"success": False, "data": None, "error": "Program code already exists"}

        result = create_program(CreateProgramArgs(name="Physics", code="PHY"))

        assert result == {"success": False, "data": None, "error": "Program code already exists"}

    def test_get_programs(self, portal):
        """Test get_programs calls without a payload."""
        get_programs(None)

        portal.call.assert_called_once_with("academic", "getPrograms", None)

    def test_update_program(self, portal):
        """Test update_program sends the id and the changed fields."""
        update_program(UpdateArgs(id="prog-1", name="Applied Physics"))

        portal.call.assert_called_once_with("academic", "updateProgram", {
            "id": "prog-1",
            "name": "Applied Physics",
            "description": None,
            "code": None,
        })

    def test_update_without_fields_is_rejected(self, portal):
        """Test an update with nothing to change raises a business error."""
        with pytest.raises(BusinessRuleError):
            update_program(UpdateArgs(id="prog-1"))

        portal.call.assert_not_called()

    def test_delete_program(self, portal):
        """Test delete_program sends the id."""
        delete_program(IdArgs(id="prog-1"))

        portal.call.assert_called_once_with("academic", "deleteProgram", {"id": "prog-1"})


class TestLookups:
    """Test the find-by-name and find-by-code tools."""

    def test_find_program_found(self, portal):
        """Test a found program returns its data."""
        portal.call.return_value = {"success": True, "data": {"id": "prog-1"}, "error": None}

        result = find_program_id_by_name(ProgramNameArgs(program_name="Physics"))

        assert result == {"success": True, "data": {"id": "prog-1"}}
        portal.call.assert_called_once_with("academic", "findProgramIdByName", {"name": "Physics"})

    def test_find_program_not_found(self, portal):
        """Test an empty answer becomes a failure result."""
        result = find_program_id_by_name(ProgramNameArgs(program_name="Alchemy"))

        assert result["success"] is False
        assert "not found" in result["error"].lower()

    def test_find_level_within_program(self, portal):
        """Test the optional program filter is forwarded in camelCase."""
        find_level_id_by_name(LevelNameArgs(level_name="Year 1", program_id="prog-1"))

        portal.call.assert_called_once_with(
            "academic", "findLevelIdByName", {"name": "Year 1", "programId": "prog-1"}
        )

    def test_find_id_by_code_not_found(self, portal):
        """Test the failure message names the entity and code."""
        result = find_id_by_code(FindIdByCodeArgs(entity="semester", code="S1"))

        assert result["error"] == "No semester found with code 'S1'"

    def test_lookup_failure_passes_through(self, portal):
        """Test a portal rejection during lookup is returned as-is."""
        portal.call.return_value = {"success": False, "data": None, "error": "Invalid code"}

        result = find_id_by_code(FindIdByCodeArgs(entity="program", code="??"))

        assert result["error"] == "Invalid code"


class TestLevelTools:
    """Test level tools."""

    def test_create_level(self, portal):
        """Test create_level maps program_id to programId."""
        create_level(CreateLevelArgs(name="Year 1", program_id="prog-1", code="Y1"))

        _, _, payload = portal.call.call_args[0]
        assert payload["programId"] == "prog-1"
        assert payload["code"] == "Y1"

    def test_get_levels_unfiltered(self, portal):
        """Test get_levels without a filter sends a null programId."""
        get_levels(LevelFilterArgs())

        portal.call.assert_called_once_with("academic", "getLevels", {"programId": None})


class TestThroughDispatcher:
    """Test the tools as the agent loop calls them."""

    @pytest.fixture
    def dispatcher(self):
        return ToolDispatcher(academic_registry, parallel=False)

    def test_invalid_entity_is_a_failure_result(self, dispatcher, portal):
        """Test an entity outside program/level/semester is rejected before the portal."""
        result = dispatcher.dispatch(ToolCall("find_id_by_code", {"entity": "course", "code": "C1"}))

        assert result.success is False
        assert "Invalid arguments" in result.error
        portal.call.assert_not_called()

    def test_update_without_fields_is_a_failure_result(self, dispatcher, portal):
        """Test the business rejection reaches the model as a failure."""
        result = dispatcher.dispatch(ToolCall("update_level", {"id": "lvl-1"}))

        assert result.success is False
        assert "at least one field" in result.error

    def test_successful_create(self, dispatcher, portal):
        """Test a valid call is normalized into a success result."""
        portal.call.return_value = {"success": True, "data": {"id": "sem-1"}, "error": None}

        result = dispatcher.dispatch(ToolCall("create_semester", {"name": "Fall", "level_id": "lvl-1", "code": "F1"}))

        assert result.success is True
        assert result.data == {"id": "sem-1"}
