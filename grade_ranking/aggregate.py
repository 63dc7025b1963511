import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np

from .config import Settings, get_settings
from .errors import GradeRankingError, MissingReferenceError, ValidationError
from .models import (
    AggregationResult,
    Course,
    CourseResult,
    Rejection,
    ScoreRecord,
    SkippedRecord,
    Student,
    StudentAggregate,
)
from .scale import GradingScale, resolve_grade

logger = logging.getLogger(__name__)


# ------------------------
# Numeric helpers
# ------------------------
def round_half_up(x: float, decimals: int = 2) -> float:
    quantum = Decimal(1).scaleb(-decimals)
    return float(Decimal(str(x)).quantize(quantum, rounding=ROUND_HALF_UP))


def weighted_gpa(points_and_credits: np.ndarray) -> Tuple[float, float]:
    """
    points_and_credits: Nx2 numpy array -> [grade_point, credits]
    returns: (sum of grade_point * credits, credit-weighted mean grade point)

    The mean is 0 when there are no credits.
    """
    if points_and_credits.size == 0:
        return 0.0, 0.0

    points = points_and_credits[:, 0].astype(float)
    credits = points_and_credits[:, 1].astype(float)
    weighted = float(np.dot(points, credits))
    total_credits = float(credits.sum())
    if total_credits == 0:
        return weighted, 0.0
    return weighted, weighted / total_credits


def _fill_totals(agg: StudentAggregate) -> StudentAggregate:
    results = list(agg.courses.values())
    pc = np.array([(r.grade_point, r.credits) for r in results], dtype=float).reshape(-1, 2)
    weighted, gpa = weighted_gpa(pc)
    agg.total_score = float(sum(r.score for r in results))
    agg.total_weighted_grade_point = weighted
    agg.total_credits = int(sum(r.credits for r in results))
    agg.gpa = gpa
    return agg


# ------------------------
# Aggregation
# ------------------------
def _in_scope(course: Course, curriculum: Optional[str], semester: Optional[int]) -> bool:
    if curriculum is not None and course.curriculum != curriculum:
        return False
    if semester is not None and course.semester != semester:
        return False
    return True


def _check_identifiers(record: ScoreRecord) -> None:
    missing = [
        name for name in ("student_id", "course_id")
        if not (getattr(record, name) or "").strip()
    ]
    if missing:
        raise ValidationError(f"Missing required identifier(s): {', '.join(missing)}")


def aggregate(
    scores: Iterable[ScoreRecord],
    courses: Iterable[Course],
    scale: GradingScale,
    *,
    curriculum: Optional[str] = None,
    semester: Optional[int] = None,
    students: Optional[Iterable[Student]] = None,
    settings: Optional[Settings] = None,
) -> AggregationResult:
    """
    Build one StudentAggregate per student of the population.

    scores:     score records in input order; a later record for the same
                (student, course) pair replaces the earlier one
    courses:    every course the scores may reference
    curriculum, semester: optional scope; courses outside it are skipped
    students:   population that must appear in the output even without
                scores; when omitted, every student seen in the scores

    Bad records are rejected one by one and never stop the run.
    """
    settings = settings or get_settings()
    course_map: Dict[str, Course] = {c.id: c for c in courses}

    population: Dict[str, StudentAggregate] = {}
    closed_population = students is not None
    if closed_population:
        for s in students:
            if s.id not in population:
                population[s.id] = StudentAggregate(student_id=s.id, nim=s.nim, name=s.name)

    rejections: List[Rejection] = []
    skipped: List[SkippedRecord] = []

    for record in scores:
        try:
            _check_identifiers(record)
            student_id = record.student_id.strip()
            course_id = record.course_id.strip()

            course = course_map.get(course_id)
            if course is None:
                raise MissingReferenceError(f"Course {course_id!r} not found")

            if not _in_scope(course, curriculum, semester):
                skipped.append(SkippedRecord(
                    record=record,
                    reason=(
                        f"Course {course_id!r} (curriculum {course.curriculum}, "
                        f"semester {course.semester}) is outside the requested scope"
                    ),
                ))
                continue

            if closed_population and student_id not in population:
                raise MissingReferenceError(f"Student {student_id!r} not found")

            grade = resolve_grade(record.score, course.curriculum, scale, settings)
        except GradeRankingError as e:
            logger.warning("Rejected score record %s: %s", record.model_dump(), e)
            rejections.append(Rejection(record=record, kind=type(e).__name__, reason=str(e)))
            continue

        agg = population.get(student_id)
        if agg is None:
            agg = population[student_id] = StudentAggregate(student_id=student_id)
        if course_id in agg.courses:
            logger.debug("Score for student %s course %s replaced by a later record", student_id, course_id)
        agg.courses[course_id] = CourseResult(
            course_id=course_id,
            score=float(record.score),
            letter_grade=grade.letter_grade,
            grade_point=grade.grade_point,
            credits=course.credits,
        )

    aggregates = [_fill_totals(agg) for agg in population.values()]
    logger.info(
        "Aggregated %d students (%d rejected, %d skipped records)",
        len(aggregates), len(rejections), len(skipped),
    )
    return AggregationResult(aggregates=aggregates, rejections=rejections, skipped=skipped)
