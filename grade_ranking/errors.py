class GradeRankingError(Exception):
    """Base class for per-record data-quality failures."""


class ValidationError(GradeRankingError):
    """Score outside [0, 100], not a number, or a required identifier is missing."""


class UnresolvableGradeError(GradeRankingError):
    """No grading-scale entry of the curriculum covers the score."""

    def __init__(self, score: float, curriculum: str):
        self.score = score
        self.curriculum = curriculum
        super().__init__(
            f"No grading scale entry covers score {score:g} in curriculum {curriculum!r}"
        )


class MissingReferenceError(GradeRankingError):
    """A score references a course or student that was not supplied."""
