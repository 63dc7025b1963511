"""
Grade aggregation and ranking for semester reports.

- grading-scale lookup per curriculum (score -> letter grade, grade point)
- per-student aggregation (total score, weighted grade point, SKS, IPK)
- ranking with deterministic tie-breaks
- spreadsheet import / export helpers
"""
from .aggregate import aggregate, round_half_up, weighted_gpa
from .config import Settings, get_settings
from .errors import GradeRankingError, MissingReferenceError, UnresolvableGradeError, ValidationError
from .models import (
    AggregationResult,
    Course,
    CourseResult,
    GradingScaleEntry,
    Rejection,
    ResolvedGrade,
    ScoreRecord,
    SkippedRecord,
    Student,
    StudentAggregate,
)
from .ranking import RANK_POLICIES, rank
from .report import SemesterReport, ReportSummary, build_report, report_to_dataframe, summarize
from .scale import DEFAULT_SCALE, GradingScale, check_scale, copy_scale, resolve_grade, validate_score

__all__ = [
    "aggregate",
    "round_half_up",
    "weighted_gpa",
    "Settings",
    "get_settings",
    "GradeRankingError",
    "MissingReferenceError",
    "UnresolvableGradeError",
    "ValidationError",
    "AggregationResult",
    "Course",
    "CourseResult",
    "GradingScaleEntry",
    "Rejection",
    "ResolvedGrade",
    "ScoreRecord",
    "SkippedRecord",
    "Student",
    "StudentAggregate",
    "RANK_POLICIES",
    "rank",
    "SemesterReport",
    "ReportSummary",
    "build_report",
    "report_to_dataframe",
    "summarize",
    "DEFAULT_SCALE",
    "GradingScale",
    "check_scale",
    "copy_scale",
    "resolve_grade",
    "validate_score",
]
