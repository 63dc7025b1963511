import os
from unittest import mock

from grade_ranking import Course, GradingScaleEntry, ScoreRecord, Settings, Student


def entry(letter, lo, hi, point, curriculum="K1"):
    return GradingScaleEntry(
        curriculum=curriculum, letter_grade=letter, min_score=lo, max_score=hi, grade_point=point
    )


def simple_scale(curriculum="K1"):
    # A 85-100 -> 4.0, B 70-84.99 -> 3.0, E 0-69.99 -> 0.0
    return [
        entry("A", 85, 100, 4.0, curriculum),
        entry("B", 70, 84.99, 3.0, curriculum),
        entry("E", 0, 69.99, 0.0, curriculum),
    ]


def course(cid, credits, semester=1, curriculum="K1"):
    return Course(id=cid, code=cid, name=f"Course {cid}", credits=credits, curriculum=curriculum, semester=semester)


def score(student_id, course_id, value):
    return ScoreRecord(student_id=student_id, course_id=course_id, score=value)


def student(sid, name=None):
    return Student(id=sid, nim=sid, name=name or f"Student {sid}")


def settings(**overrides):
    """Settings built from defaults plus overrides only, ignoring .env and GRADE_RANKING_* variables."""
    clean = {k: v for k, v in os.environ.items() if not k.upper().startswith("GRADE_RANKING_")}
    with mock.patch.dict(os.environ, clean, clear=True):
        return Settings(_env_file=None, **overrides)
