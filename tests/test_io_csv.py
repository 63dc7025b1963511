import io
import unittest

import pandas as pd
from openpyxl import load_workbook

from grade_ranking import DEFAULT_SCALE, GradingScale, build_report, check_scale
from grade_ranking.io_csv import (
    export_report_excel,
    parse_courses,
    parse_scale,
    parse_scores,
    parse_students,
    read_table,
)
from tests.helpers import course, score, settings, simple_scale


def table(text, filename="upload.csv"):
    return read_table(io.StringIO(text), filename=filename)


class ParseScoresTests(unittest.TestCase):
    def test_single_course_sheet(self):
        df = table("NIM,Nama,Nilai\n2101,Ani,88\n2102,Budi,\"72,5\"\n")
        records, rejections = parse_scores(df, course_id="IF101")
        self.assertEqual(rejections, [])
        self.assertEqual(
            [(r.student_id, r.course_id, r.score) for r in records],
            [("2101", "IF101", 88.0), ("2102", "IF101", 72.5)],
        )

    def test_course_column(self):
        df = table("student_id,course_code,score\nS1,P,90\nS1,Q,70\n")
        records, _ = parse_scores(df)
        self.assertEqual([r.course_id for r in records], ["P", "Q"])

    def test_non_numeric_score_rejected(self):
        df = table("NIM,Nilai\n2101,abc\n2102,75\n")
        records, rejections = parse_scores(df, course_id="IF101")
        self.assertEqual(len(records), 1)
        self.assertEqual(rejections[0].kind, "ValidationError")
        self.assertIn("Row 2", rejections[0].reason)
        self.assertEqual(rejections[0].record.student_id, "2101")

    def test_blank_cells_left_for_engine(self):
        df = table("NIM,Nilai\n,75\n2102,\n")
        records, rejections = parse_scores(df, course_id="IF101")
        self.assertEqual(rejections, [])
        self.assertIsNone(records[0].student_id)
        self.assertIsNone(records[1].score)

    def test_missing_columns(self):
        with self.assertRaises(ValueError):
            parse_scores(table("NIM,Grade\n2101,A\n"), course_id="IF101")
        with self.assertRaises(ValueError):
            parse_scores(table("NIM,Nilai\n2101,80\n"))


class ScoreSheetReferenceTests(unittest.TestCase):
    def setUp(self):
        self.courses = parse_courses(table("id,code,name,credits,curriculum,semester\nc1,IF101,Algoritma,3,2024,1\n"))
        self.students = parse_students(table("id,nim,name\nu-1,2101,Ani\n"))

    def test_course_code_resolved_to_course_id(self):
        records, _ = parse_scores(
            table("NIM,Nilai,course_code\n2101,88,IF101\n"), courses=self.courses
        )
        self.assertEqual(records[0].course_id, "c1")

    def test_fixed_course_code_resolved(self):
        records, _ = parse_scores(table("NIM,Nilai\n2101,88\n"), course_id="IF101", courses=self.courses)
        self.assertEqual(records[0].course_id, "c1")

    def test_course_id_in_sheet_still_accepted(self):
        records, _ = parse_scores(table("NIM,Nilai,course_id\n2101,88,c1\n"), courses=self.courses)
        self.assertEqual(records[0].course_id, "c1")

    def test_nim_resolved_to_student_id(self):
        records, _ = parse_scores(
            table("NIM,Nilai,course_code\n2101,88,IF101\n"), courses=self.courses, students=self.students
        )
        self.assertEqual(records[0].student_id, "u-1")

    def test_unknown_code_and_nim_kept_for_engine(self):
        records, _ = parse_scores(
            table("NIM,Nilai,course_code\n9999,88,XX999\n"), courses=self.courses, students=self.students
        )
        self.assertEqual((records[0].student_id, records[0].course_id), ("9999", "XX999"))

    def test_sheet_by_code_and_nim_builds_report(self):
        records, import_rejections = parse_scores(
            table("NIM,Nilai,course_code\n2101,88,IF101\n"), courses=self.courses, students=self.students
        )
        report = build_report(
            records, self.courses, GradingScale(DEFAULT_SCALE),
            curriculum="2024", semester=1, students=self.students, settings=settings(),
        )
        self.assertEqual(import_rejections, [])
        self.assertEqual(report.rejections, [])
        ani = report.students[0]
        self.assertEqual((ani.student_id, ani.nim, ani.name), ("u-1", "2101", "Ani"))
        self.assertEqual(ani.courses["c1"].letter_grade, "A")
        self.assertAlmostEqual(ani.gpa, 4.0)


class ParseReferenceTests(unittest.TestCase):
    def test_parse_scale(self):
        df = table(
            "curriculum,letter_grade,min_score,max_score,grade_point,description\n"
            "2025,A,85,100,4,Sangat Baik\n"
            "2025,B,70,84.99,3,\n"
            "2025,E,0,69.99,0,Gagal\n"
        )
        entries = parse_scale(df)
        self.assertEqual([e.letter_grade for e in entries], ["A", "B", "E"])
        self.assertIsNone(entries[1].description)
        self.assertEqual(check_scale(entries, "2025"), [])

    def test_parse_scale_invalid_row(self):
        df = table("curriculum,letter_grade,min_score,max_score,grade_point\n2025,A,85,100,5\n")
        with self.assertRaises(ValueError) as ctx:
            parse_scale(df)
        self.assertIn("row 2", str(ctx.exception))

    def test_parse_courses(self):
        df = table("id,code,name,SKS,curriculum,semester\nc1,IF101,Algoritma,3,2024,1\n")
        courses = parse_courses(df)
        self.assertEqual(courses[0].credits, 3)
        self.assertEqual(courses[0].code, "IF101")
        self.assertEqual(courses[0].curriculum, "2024")

    def test_parse_courses_rejects_zero_credits(self):
        df = table("id,credits,curriculum,semester\nc1,0,2024,1\n")
        with self.assertRaises(ValueError):
            parse_courses(df)

    def test_parse_students_uses_nim_as_id(self):
        df = table("NIM,Nama,angkatan\n2101,Ani,2024\n")
        students = parse_students(df)
        self.assertEqual((students[0].id, students[0].nim, students[0].name), ("2101", "2101", "Ani"))
        self.assertEqual(students[0].angkatan, "2024")


class ExportTests(unittest.TestCase):
    def test_excel_export(self):
        report = build_report(
            [score("X", "P", 90), score("X", "Q", 72), score("Y", "P", 65), score("Y", "Q", 200)],
            [course("P", 3), course("Q", 2)],
            GradingScale(simple_scale()),
            semester=1,
            settings=settings(),
        )
        data = export_report_excel(report, settings())
        self.assertIsInstance(data, bytes)

        sheets = pd.read_excel(io.BytesIO(data), sheet_name=None, engine="openpyxl")
        self.assertEqual(list(sheets), ["Semester 1", "Rejected"])
        self.assertEqual(list(sheets["Semester 1"]["IPK"]), [3.6, 0.0])
        self.assertEqual(len(sheets["Rejected"]), 1)

        ws = load_workbook(io.BytesIO(data))["Semester 1"]
        # Row 2 is X: Q score 72 is a warning (column 8), P score 90 is not flagged.
        self.assertTrue(ws.cell(row=2, column=8).fill.fgColor.rgb.endswith("FFFFCC"))
        self.assertNotEqual(ws.cell(row=2, column=4).fill.fill_type, "solid")
        # Row 3 is Y: P score 65 is failing.
        self.assertTrue(ws.cell(row=3, column=4).fill.fgColor.rgb.endswith("FFCCCC"))


if __name__ == "__main__":
    unittest.main()
