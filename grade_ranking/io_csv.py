import io
import logging
from typing import Iterable, List, Optional, Tuple

import pandas as pd
from openpyxl.styles import Font, PatternFill
from pydantic import ValidationError as PydanticValidationError

from .config import Settings, get_settings
from .models import Course, GradingScaleEntry, Rejection, ScoreRecord, Student
from .report import SemesterReport, rejections_to_dataframe, report_to_dataframe, score_flag

logger = logging.getLogger(__name__)

# Accepted spellings for each column, after lower-casing and stripping.
ALIASES = {
    "student_id": ["student_id", "nim"],
    "score": ["score", "nilai"],
    "course_id": ["course_id", "course_code", "kode", "kode_mk"],
    "credits": ["credits", "credit", "sks"],
    "letter_grade": ["letter_grade", "grade"],
    "min_score": ["min_score", "min"],
    "max_score": ["max_score", "max"],
    "grade_point": ["grade_point", "gp", "bobot"],
    "name": ["name", "nama"],
}

FILLS = {
    "fail": (PatternFill("solid", fgColor="FFCCCC"), Font(bold=True, color="CC0000")),
    "warn": (PatternFill("solid", fgColor="FFFFCC"), Font(bold=True, color="CC8800")),
}


# ------------------------
# Reading
# ------------------------
def _normalise_cols(df: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()
    df.columns = [str(c).strip().lower().replace(" ", "_") for c in df.columns]
    renames = {}
    for canonical, names in ALIASES.items():
        if canonical in df.columns:
            continue
        for name in names:
            if name in df.columns:
                renames[name] = canonical
                break
    return df.rename(columns=renames)


def read_table(uploaded_file, filename: Optional[str] = None) -> pd.DataFrame:
    """Read a CSV or XLSX file (path or file-like) with normalised column names."""
    name = filename or getattr(uploaded_file, "name", None) or str(uploaded_file)
    if name.lower().endswith((".xlsx", ".xls")):
        df = pd.read_excel(uploaded_file, dtype=object, engine="openpyxl")
    else:
        df = pd.read_csv(uploaded_file, dtype=object)
    return _normalise_cols(df)


def _require(df: pd.DataFrame, required: List[str], what: str) -> None:
    missing = set(required) - set(df.columns)
    if missing:
        raise ValueError(f"Missing {what} columns: {sorted(missing)}. Expected: {', '.join(required)}.")


def _text(value) -> Optional[str]:
    if value is None or pd.isna(value):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    return text or None


def _rows(df: pd.DataFrame):
    # Spreadsheet row numbers: header is row 1.
    for pos, (_, row) in enumerate(df.iterrows(), start=2):
        yield pos, row


# ------------------------
# Score sheets
# ------------------------
def _lookup(items, alt_attr: str) -> dict:
    """Map each item's id, and its course code / NIM, to the id."""
    items = list(items or [])
    keys = {}
    for item in items:
        alt = getattr(item, alt_attr)
        if alt:
            keys.setdefault(alt, item.id)
    for item in items:
        keys[item.id] = item.id
    return keys


def parse_scores(
    df: pd.DataFrame,
    course_id: Optional[str] = None,
    courses: Optional[Iterable[Course]] = None,
    students: Optional[Iterable[Student]] = None,
) -> Tuple[List[ScoreRecord], List[Rejection]]:
    """
    Turn a score sheet into ScoreRecord candidates.

    A fixed course_id applies to every row (one sheet per course upload);
    otherwise each row needs its own course_id / course_code column.
    With courses / students given, a course code or a NIM in the sheet is
    translated to the matching Course.id / Student.id; unknown values are
    kept as they are and rejected later by the engine.
    Rows whose score is not a number are rejected here, everything else is
    left for the engine to validate.
    """
    _require(df, ["student_id", "score"], "score")
    if course_id is None:
        _require(df, ["course_id"], "score")

    course_keys = _lookup(courses, "code")
    student_keys = _lookup(students, "nim")

    records: List[ScoreRecord] = []
    rejections: List[Rejection] = []
    for pos, row in _rows(df):
        raw_score = row.get("score")
        cid = course_id if course_id is not None else _text(row.get("course_id"))
        cid = course_keys.get(cid, cid)
        sid = _text(row.get("student_id"))
        sid = student_keys.get(sid, sid)

        score = None
        if raw_score is not None and not pd.isna(raw_score):
            try:
                score = float(str(raw_score).strip().replace(",", "."))
            except ValueError:
                record = ScoreRecord(student_id=sid, course_id=cid)
                reason = f"Row {pos}: score {raw_score!r} is not a number"
                logger.warning("Rejected import row: %s", reason)
                rejections.append(Rejection(record=record, kind="ValidationError", reason=reason))
                continue

        records.append(ScoreRecord(student_id=sid, course_id=cid, score=score))
    return records, rejections


# ------------------------
# Reference data
# ------------------------
def _build(model, df: pd.DataFrame, fields: dict, what: str) -> list:
    out = []
    for pos, row in _rows(df):
        try:
            values = {key: conv(row.get(col)) for key, (col, conv) in fields.items()}
            out.append(model(**{k: v for k, v in values.items() if v is not None}))
        except PydanticValidationError as e:
            raise ValueError(f"Invalid {what} on row {pos}: {e.errors()[0]['msg']}") from e
        except ValueError as e:
            raise ValueError(f"Invalid {what} on row {pos}: {e}") from e
    return out


def _number(value):
    if value is None or pd.isna(value):
        return None
    return float(str(value).strip().replace(",", "."))


def _integer(value):
    number = _number(value)
    return None if number is None else int(number)


def parse_scale(df: pd.DataFrame) -> List[GradingScaleEntry]:
    _require(df, ["curriculum", "letter_grade", "min_score", "max_score", "grade_point"], "grading scale")
    return _build(GradingScaleEntry, df, {
        "curriculum": ("curriculum", _text),
        "letter_grade": ("letter_grade", _text),
        "min_score": ("min_score", _number),
        "max_score": ("max_score", _number),
        "grade_point": ("grade_point", _number),
        "description": ("description", _text),
    }, "grading scale entry")


def parse_courses(df: pd.DataFrame) -> List[Course]:
    if "id" not in df.columns and "course_id" in df.columns:
        df = df.rename(columns={"course_id": "id"})
    _require(df, ["id", "credits", "curriculum", "semester"], "course")
    if "code" not in df.columns:
        df = df.assign(code=df["id"])
    return _build(Course, df, {
        "id": ("id", _text),
        "code": ("code", _text),
        "name": ("name", _text),
        "credits": ("credits", _integer),
        "curriculum": ("curriculum", _text),
        "semester": ("semester", _integer),
    }, "course")


def parse_students(df: pd.DataFrame) -> List[Student]:
    if "id" not in df.columns:
        _require(df, ["student_id"], "student")
        df = df.assign(id=df["student_id"])
    return _build(Student, df, {
        "id": ("id", _text),
        "nim": ("student_id", _text),
        "name": ("name", _text),
        "angkatan": ("angkatan", _text),
    }, "student")


# ------------------------
# Export
# ------------------------
def export_report_excel(report: SemesterReport, settings: Optional[Settings] = None) -> bytes:
    """Report sheet with low scores highlighted, plus a sheet of rejected records."""
    settings = settings or get_settings()
    table = report_to_dataframe(report, settings)
    sheet = f"Semester {report.semester}" if report.semester is not None else "Transcript"

    output = io.BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        table.to_excel(writer, index=False, sheet_name=sheet)
        rejections_to_dataframe(report).to_excel(writer, index=False, sheet_name="Rejected")

        ws = writer.sheets[sheet]
        for row_idx, agg in enumerate(report.students, start=2):
            col = 4  # after No, NIM, Name
            for course in report.courses:
                result = agg.courses.get(course.id)
                flag = score_flag(result.score, settings) if result is not None else None
                if flag:
                    fill, font = FILLS[flag]
                    for cell in (ws.cell(row=row_idx, column=col), ws.cell(row=row_idx, column=col + 1)):
                        cell.fill = fill
                        cell.font = font
                col += 4

    output.seek(0)
    return output.getvalue()
