"""
Input records and derived results.

Reference data (scale entries, courses, students) is validated on construction.
ScoreRecord is deliberately loose: a malformed score still has to reach the
engine so it can be rejected with a reason instead of vanishing on import.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ------------------------
# Reference data
# ------------------------
class GradingScaleEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    curriculum: str = Field(..., min_length=1)
    letter_grade: str = Field(..., min_length=1)
    min_score: float = Field(..., ge=0, le=100)
    max_score: float = Field(..., ge=0, le=100)
    grade_point: float = Field(..., ge=0, le=4)
    description: Optional[str] = None

    @model_validator(mode="after")
    def _valid_range(self):
        if self.min_score > self.max_score:
            raise ValueError(
                f"min_score {self.min_score} is greater than max_score {self.max_score}"
            )
        return self


class Course(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    code: Optional[str] = None
    name: Optional[str] = None
    credits: int = Field(..., gt=0)      # SKS
    curriculum: str = Field(..., min_length=1)
    semester: int = Field(..., ge=1)


class Student(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    nim: Optional[str] = None
    name: Optional[str] = None
    angkatan: Optional[str] = None


class ScoreRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    student_id: Optional[str] = None
    course_id: Optional[str] = None
    score: Optional[float] = None


# ------------------------
# Derived results
# ------------------------
class ResolvedGrade(BaseModel):
    model_config = ConfigDict(frozen=True)

    letter_grade: str
    grade_point: float


class CourseResult(BaseModel):
    course_id: str
    score: float
    letter_grade: str
    grade_point: float
    credits: int


class StudentAggregate(BaseModel):
    student_id: str
    nim: Optional[str] = None
    name: Optional[str] = None
    courses: Dict[str, CourseResult] = Field(default_factory=dict)
    total_score: float = 0.0
    total_weighted_grade_point: float = 0.0
    total_credits: int = 0
    gpa: float = 0.0
    rank: Optional[int] = None


class Rejection(BaseModel):
    record: ScoreRecord
    kind: str
    reason: str


class SkippedRecord(BaseModel):
    record: ScoreRecord
    reason: str


class AggregationResult(BaseModel):
    aggregates: List[StudentAggregate] = Field(default_factory=list)
    rejections: List[Rejection] = Field(default_factory=list)
    skipped: List[SkippedRecord] = Field(default_factory=list)
