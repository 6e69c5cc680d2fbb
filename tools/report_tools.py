"""
Reporting Tools

Function calling tools for the reporting persona: institution-wide
statistics, enrollment and performance trends, student search and exam
analytics. The aggregates themselves are computed by the portal; these
handlers only shape filters and forward them.
"""

import logging
from enum import Enum
from typing import Any, Dict, Literal, Optional

from pydantic import Field

from clients.portal_client import get_portal_client
from tools.registry import ToolArgs, ToolRegistry

logger = logging.getLogger(__name__)

REPORTS_MODULE = "reports"
EXAMS_MODULE = "exams"

MIN_SEARCH_QUERY_LENGTH = 2


class ReportTool(str, Enum):
    """Tools available to the reporting persona."""
    GET_OVERVIEW_STATS = "get_overview_stats"
    GET_ENROLLMENT_DATA = "get_enrollment_data"
    GET_DEPARTMENT_DATA = "get_department_data"
    GET_PERFORMANCE_DATA = "get_performance_data"
    GET_RECENT_STUDENTS = "get_recent_students"
    GET_DEPARTMENT_OPTIONS = "get_department_options"
    SEARCH_STUDENTS = "search_students"
    EXPORT_REPORT_DATA = "export_report_data"
    GET_EXAMS = "get_exams"
    GET_EXAM_BY_ID = "get_exam_by_id"
    GET_EXAM_SUBMISSIONS = "get_exam_submissions"
    GET_EXAM_ANALYTICS = "get_exam_analytics"


report_registry = ToolRegistry(ReportTool)


# ============================================================================
# ARGUMENT MODELS
# ============================================================================

class ReportFilterArgs(ToolArgs):
    """Filters shared by every report aggregate."""
    period: Optional[Literal["semester", "year", "quarter"]] = Field(
        None, description="Time period to fetch data for (default is 'semester')."
    )
    department: Optional[str] = Field(
        None, description="Department slug to filter by, or 'all' for all departments (default is 'all')."
    )
    start_date: Optional[str] = Field(
        None, description="Optional start date overriding the period filter (ISO string)."
    )
    end_date: Optional[str] = Field(
        None, description="Optional end date overriding the period filter (ISO string)."
    )

    def to_filters(self) -> Dict[str, Any]:
        return {
            "period": self.period,
            "department": self.department,
            "startDate": self.start_date,
            "endDate": self.end_date,
        }


class SearchStudentsArgs(ReportFilterArgs):
    query: str = Field(..., description="Search query (name, email or matriculation number), minimum 2 characters.")


class ExamIdArgs(ToolArgs):
    exam_id: str = Field(..., description="ID of the exam.")


# ============================================================================
# REPORT TOOLS
# ============================================================================

def _report(operation: str, args: ReportFilterArgs) -> Dict[str, Any]:
    return get_portal_client().call(REPORTS_MODULE, operation, args.to_filters())


@report_registry.register(
    ReportTool.GET_OVERVIEW_STATS,
    "Fetch overview statistics about students, courses, faculty and graduation rate, with optional period and department filters.",
    ReportFilterArgs,
)
def get_overview_stats(args: ReportFilterArgs) -> Dict[str, Any]:
    return _report("getOverviewStats", args)


@report_registry.register(
    ReportTool.GET_ENROLLMENT_DATA,
    "Get enrollment statistics per month over the last 6 months, with optional period and department filters.",
    ReportFilterArgs,
)
def get_enrollment_data(args: ReportFilterArgs) -> Dict[str, Any]:
    return _report("getEnrollmentData", args)


@report_registry.register(
    ReportTool.GET_DEPARTMENT_DATA,
    "Fetch the list of departments with their student counts.",
    ReportFilterArgs,
)
def get_department_data(args: ReportFilterArgs) -> Dict[str, Any]:
    return _report("getDepartmentData", args)


@report_registry.register(
    ReportTool.GET_PERFORMANCE_DATA,
    "Get average GPA and completion rates by semester, with optional filters.",
    ReportFilterArgs,
)
def get_performance_data(args: ReportFilterArgs) -> Dict[str, Any]:
    return _report("getPerformanceData", args)


@report_registry.register(
    ReportTool.GET_RECENT_STUDENTS,
    "Get recent active students with their GPA and department, optionally filtered by period and department.",
    ReportFilterArgs,
)
def get_recent_students(args: ReportFilterArgs) -> Dict[str, Any]:
    return _report("getRecentStudents", args)


@report_registry.register(
    ReportTool.GET_DEPARTMENT_OPTIONS,
    "Retrieve the list of all departments for selection options.",
)
def get_department_options(args) -> Dict[str, Any]:
    return get_portal_client().call(REPORTS_MODULE, "getDepartmentOptions")


@report_registry.register(
    ReportTool.SEARCH_STUDENTS,
    "Search active students by name, email or matriculation number, optionally filtered by department and period.",
    SearchStudentsArgs,
)
def search_students(args: SearchStudentsArgs) -> Dict[str, Any]:
    query = args.query.strip()
    if len(query) < MIN_SEARCH_QUERY_LENGTH:
        # Too short to search; an empty match list rather than an error
        return {"success": True, "data": []}

    return get_portal_client().call(
        REPORTS_MODULE,
        "searchStudents",
        {"query": query, **args.to_filters()},
    )


@report_registry.register(
    ReportTool.EXPORT_REPORT_DATA,
    "Export aggregated report data: overview stats, enrollment, departments, performance and recent students.",
    ReportFilterArgs,
)
def export_report_data(args: ReportFilterArgs) -> Dict[str, Any]:
    logger.info(f"📤 Exporting report data {args.to_filters()}")
    return _report("exportReportData", args)


# ============================================================================
# EXAM TOOLS
# ============================================================================

@report_registry.register(ReportTool.GET_EXAMS, "Fetches all exams.")
def get_exams(args) -> Dict[str, Any]:
    return get_portal_client().call(EXAMS_MODULE, "getExams")


@report_registry.register(ReportTool.GET_EXAM_BY_ID, "Fetches a single exam by its ID.", ExamIdArgs)
def get_exam_by_id(args: ExamIdArgs) -> Dict[str, Any]:
    return get_portal_client().call(EXAMS_MODULE, "getExamById", {"id": args.exam_id})


@report_registry.register(
    ReportTool.GET_EXAM_SUBMISSIONS,
    "Fetches all submissions for a given exam.",
    ExamIdArgs,
)
def get_exam_submissions(args: ExamIdArgs) -> Dict[str, Any]:
    return get_portal_client().call(EXAMS_MODULE, "getExamSubmissions", {"examId": args.exam_id})


@report_registry.register(
    ReportTool.GET_EXAM_ANALYTICS,
    "Calculates analytics for an exam: score distribution, pass rate, etc.",
    ExamIdArgs,
)
def get_exam_analytics(args: ExamIdArgs) -> Dict[str, Any]:
    return get_portal_client().call(EXAMS_MODULE, "getExamAnalytics", {"examId": args.exam_id})


report_registry.ensure_complete()
