import logging
import math
from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from .config import Settings, get_settings
from .errors import UnresolvableGradeError, ValidationError
from .models import GradingScaleEntry, ResolvedGrade

logger = logging.getLogger(__name__)

# Scores are stored with two decimals, so adjacent brackets such as
# 80.00-84.99 and 85.00-100.00 leave no reachable score uncovered.
SCORE_RESOLUTION = 0.01


# ------------------------
# Default scale
# ------------------------
def _default_entries(curriculum: str) -> List[GradingScaleEntry]:
    rows = [
        ("A", 85.00, 100.00, 4.00, "Sangat Baik"),
        ("A-", 80.00, 84.99, 3.70, "Baik Sekali"),
        ("B+", 75.00, 79.99, 3.30, "Lebih dari Baik"),
        ("B", 70.00, 74.99, 3.00, "Baik"),
        ("B-", 65.00, 69.99, 2.70, "Cukup Baik"),
        ("C+", 60.00, 64.99, 2.30, "Lebih dari Cukup"),
        ("C", 55.00, 59.99, 2.00, "Cukup"),
        ("D", 50.00, 54.99, 1.00, "Kurang"),
        ("E", 0.00, 49.99, 0.00, "Gagal"),
    ]
    return [
        GradingScaleEntry(
            curriculum=curriculum,
            letter_grade=letter,
            min_score=lo,
            max_score=hi,
            grade_point=point,
            description=desc,
        )
        for letter, lo, hi, point, desc in rows
    ]


DEFAULT_SCALE: List[GradingScaleEntry] = _default_entries("2024")


# ------------------------
# Lookup
# ------------------------
class GradingScale:
    """
    Curriculum -> scale entries, each list ordered by descending min_score.

    The order is the lookup order: when two brackets overlap, the one with the
    higher min_score is found first and wins. Entries sharing a min_score keep
    the order they were given in.
    """

    def __init__(self, entries: Iterable[GradingScaleEntry]):
        grouped: Dict[str, List[GradingScaleEntry]] = defaultdict(list)
        for entry in entries:
            grouped[entry.curriculum].append(entry)
        self._by_curriculum = {
            curriculum: sorted(items, key=lambda e: e.min_score, reverse=True)
            for curriculum, items in grouped.items()
        }

    @property
    def curricula(self) -> List[str]:
        return sorted(self._by_curriculum)

    def entries_for(self, curriculum: str) -> List[GradingScaleEntry]:
        return list(self._by_curriculum.get(curriculum, []))

    def find(self, score: float, curriculum: str) -> Optional[GradingScaleEntry]:
        for entry in self._by_curriculum.get(curriculum, []):
            if entry.min_score <= score <= entry.max_score:
                return entry
        return None


def validate_score(score) -> float:
    """Return the score as a float or raise ValidationError. Never clamps."""
    if score is None:
        raise ValidationError("Score is missing")
    if isinstance(score, bool):
        raise ValidationError(f"Score must be a number (got {score!r})")
    try:
        value = float(score)
    except (TypeError, ValueError):
        raise ValidationError(f"Score must be a number (got {score!r})") from None
    if math.isnan(value):
        raise ValidationError("Score is not a number (NaN)")
    if value < 0 or value > 100:
        raise ValidationError(f"Score {value:g} is outside the range 0-100")
    return value


def resolve_grade(
    score,
    curriculum: str,
    scale: GradingScale,
    settings: Optional[Settings] = None,
) -> ResolvedGrade:
    """
    Map a numeric score to (letter_grade, grade_point) using the curriculum's scale.

    Raises ValidationError for a bad score and UnresolvableGradeError when no
    entry contains it, unless UNRESOLVED_GRADE_POLICY is "fallback".
    """
    settings = settings or get_settings()
    value = validate_score(score)

    entry = scale.find(value, curriculum)
    if entry is not None:
        return ResolvedGrade(letter_grade=entry.letter_grade, grade_point=entry.grade_point)

    if settings.UNRESOLVED_GRADE_POLICY == "fallback":
        logger.warning(
            "No scale entry for score %g in curriculum %r, using fallback grade %s",
            value, curriculum, settings.FALLBACK_LETTER,
        )
        return ResolvedGrade(
            letter_grade=settings.FALLBACK_LETTER,
            grade_point=settings.FALLBACK_GRADE_POINT,
        )
    raise UnresolvableGradeError(value, curriculum)


# ------------------------
# Scale maintenance
# ------------------------
def check_scale(entries: Iterable[GradingScaleEntry], curriculum: str) -> List[str]:
    """
    List the problems with a curriculum's partition of [0, 100].

    Reports uncovered ranges (gaps), overlapping brackets and duplicate letter
    grades. An empty list means every score resolves to exactly one entry.
    """
    items = sorted(
        (e for e in entries if e.curriculum == curriculum),
        key=lambda e: (e.min_score, e.max_score),
    )
    if not items:
        return [f"No grading scale configured for curriculum {curriculum!r}"]

    issues: List[str] = []

    seen = set()
    for entry in items:
        if entry.letter_grade in seen:
            issues.append(f"Duplicate letter grade {entry.letter_grade!r}")
        seen.add(entry.letter_grade)

    if items[0].min_score > 0:
        issues.append(f"Gap: scores from 0 to below {items[0].min_score:.2f} are not covered")

    covered_to = items[0].max_score
    covered_by = items[0]
    for entry in items[1:]:
        step = round(entry.min_score - covered_to, 6)
        if step <= 0:
            issues.append(
                f"Overlap: {covered_by.letter_grade} ({covered_by.min_score:.2f}-{covered_by.max_score:.2f}) "
                f"and {entry.letter_grade} ({entry.min_score:.2f}-{entry.max_score:.2f})"
            )
        elif step > SCORE_RESOLUTION:
            issues.append(
                f"Gap: scores above {covered_to:.2f} and below {entry.min_score:.2f} are not covered"
            )
        if entry.max_score > covered_to:
            covered_to = entry.max_score
            covered_by = entry

    if covered_to < 100:
        issues.append(f"Gap: scores above {covered_to:.2f} up to 100 are not covered")

    return issues


def copy_scale(
    entries: Iterable[GradingScaleEntry],
    source: str,
    target: str,
) -> List[GradingScaleEntry]:
    """Clone the source curriculum's entries under a new curriculum name."""
    entries = list(entries)
    to_copy = [e for e in entries if e.curriculum == source]
    if not to_copy:
        raise ValueError(f"No grading scale to copy for curriculum {source!r}")
    if any(e.curriculum == target for e in entries):
        raise ValueError(f"Curriculum {target!r} already has a grading scale")
    return [e.model_copy(update={"curriculum": target}) for e in to_copy]
