import logging
from collections import Counter
from typing import Dict, Iterable, List, Optional

import pandas as pd
from pydantic import BaseModel, Field

from .aggregate import aggregate, round_half_up
from .config import Settings, get_settings
from .models import Course, GradingScaleEntry, Rejection, ScoreRecord, SkippedRecord, Student, StudentAggregate
from .ranking import rank
from .scale import GradingScale, check_scale

logger = logging.getLogger(__name__)

MISSING = "-"


class SemesterReport(BaseModel):
    curriculum: Optional[str] = None
    semester: Optional[int] = None
    courses: List[Course] = Field(default_factory=list)
    students: List[StudentAggregate] = Field(default_factory=list)
    rejections: List[Rejection] = Field(default_factory=list)
    skipped: List[SkippedRecord] = Field(default_factory=list)


class ReportSummary(BaseModel):
    students: int
    graded_students: int
    mean_gpa: float
    highest_gpa: Optional[float] = None
    lowest_gpa: Optional[float] = None
    letter_distribution: Dict[str, int] = Field(default_factory=dict)


# ------------------------
# Building
# ------------------------
def build_report(
    scores: Iterable[ScoreRecord],
    courses: Iterable[Course],
    scale: GradingScale,
    *,
    curriculum: Optional[str] = None,
    semester: Optional[int] = None,
    students: Optional[Iterable[Student]] = None,
    settings: Optional[Settings] = None,
) -> SemesterReport:
    """Aggregate and rank one (curriculum, semester) scope."""
    settings = settings or get_settings()
    courses = list(courses)

    result = aggregate(
        scores,
        courses,
        scale,
        curriculum=curriculum,
        semester=semester,
        students=students,
        settings=settings,
    )
    ranked = rank(result.aggregates, settings=settings)

    in_scope = [
        c for c in courses
        if (curriculum is None or c.curriculum == curriculum)
        and (semester is None or c.semester == semester)
    ]
    in_scope.sort(key=lambda c: (c.code or c.id))
    logger.info(
        "Report curriculum=%s semester=%s: %d courses, %d students ranked",
        curriculum, semester, len(in_scope), len(ranked),
    )

    return SemesterReport(
        curriculum=curriculum,
        semester=semester,
        courses=in_scope,
        students=ranked,
        rejections=result.rejections,
        skipped=result.skipped,
    )


# ------------------------
# Presentation helpers
# ------------------------
def score_flag(score: float, settings: Optional[Settings] = None) -> Optional[str]:
    settings = settings or get_settings()
    if score < settings.LOW_SCORE_FAIL:
        return "fail"
    if score < settings.LOW_SCORE_WARN:
        return "warn"
    return None


def course_label(course: Course) -> str:
    return course.code or course.id


def report_columns(report: SemesterReport) -> List[str]:
    cols = ["No", "NIM", "Name"]
    for course in report.courses:
        label = course_label(course)
        cols += [f"{label} Score", f"{label} Grade", f"{label} GP", f"{label} SKS"]
    cols += ["Total Score", "Total Grade Point", "Total SKS", "IPK", "Rank"]
    return cols


def report_to_dataframe(report: SemesterReport, settings: Optional[Settings] = None) -> pd.DataFrame:
    """One row per student in rank order; a course without a score shows '-'."""
    settings = settings or get_settings()
    dp = settings.GPA_DECIMALS

    rows = []
    for idx, agg in enumerate(report.students, start=1):
        row = [idx, agg.nim or agg.student_id, agg.name or ""]
        for course in report.courses:
            result = agg.courses.get(course.id)
            if result is None:
                row += [MISSING] * 4
            else:
                row += [
                    result.score,
                    result.letter_grade,
                    round_half_up(result.grade_point, 2),
                    result.credits,
                ]
        row += [
            round_half_up(agg.total_score, 2),
            round_half_up(agg.total_weighted_grade_point, 2),
            agg.total_credits,
            round_half_up(agg.gpa, dp),
            agg.rank,
        ]
        rows.append(row)

    return pd.DataFrame(rows, columns=report_columns(report))


def rejections_to_dataframe(report: SemesterReport) -> pd.DataFrame:
    rows = [
        {
            "student_id": r.record.student_id,
            "course_id": r.record.course_id,
            "score": r.record.score,
            "error": r.kind,
            "reason": r.reason,
        }
        for r in report.rejections
    ]
    return pd.DataFrame(rows, columns=["student_id", "course_id", "score", "error", "reason"])


def summarize(report: SemesterReport) -> ReportSummary:
    graded = [s for s in report.students if s.total_credits > 0]
    gpas = [s.gpa for s in graded]
    letters = Counter(
        result.letter_grade
        for s in report.students
        for result in s.courses.values()
    )
    return ReportSummary(
        students=len(report.students),
        graded_students=len(graded),
        mean_gpa=sum(gpas) / len(gpas) if gpas else 0.0,
        highest_gpa=max(gpas) if gpas else None,
        lowest_gpa=min(gpas) if gpas else None,
        letter_distribution=dict(sorted(letters.items())),
    )


def scale_issues(report: SemesterReport, entries: Iterable[GradingScaleEntry]) -> List[str]:
    """check_scale for every curriculum the report's courses are graded with."""
    entries = list(entries)
    return [
        f"{curriculum}: {issue}"
        for curriculum in sorted({c.curriculum for c in report.courses})
        for issue in check_scale(entries, curriculum)
    ]
