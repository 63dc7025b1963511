import logging

import pandas as pd
import streamlit as st

from grade_ranking import DEFAULT_SCALE, GradingScale, build_report, get_settings, summarize
from grade_ranking.io_csv import (
    export_report_excel,
    parse_courses,
    parse_scale,
    parse_scores,
    parse_students,
    read_table,
)
from grade_ranking.report import rejections_to_dataframe, report_to_dataframe, scale_issues

settings = get_settings()
logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

# ------------------------
# Streamlit UI
# ------------------------

st.set_page_config(
    page_title="Semester Grade Report | IPK & Ranking",
    page_icon="🎓",
    layout="wide",
)

st.title("🎓 Semester Grade Report")
st.write(
    "Upload the scores, courses and students of one angkatan, choose the curriculum "
    "and semester, and get letter grades, grade points, IPK and ranking per student."
)

# ------------------------
# Input form
# ------------------------

with st.form("report_input_form"):
    st.subheader("1. Upload data")

    up1, up2 = st.columns(2)
    with up1:
        scores_file = st.file_uploader(
            "Scores (NIM, Nilai, Course code)", type=["csv", "xlsx"], key="scores_file"
        )
        courses_file = st.file_uploader(
            "Courses (id, code, name, credits, curriculum, semester)", type=["csv", "xlsx"], key="courses_file"
        )
    with up2:
        students_file = st.file_uploader(
            "Students (NIM, name, angkatan) - optional", type=["csv", "xlsx"], key="students_file"
        )
        scale_file = st.file_uploader(
            "Grading scale - optional, defaults to curriculum 2024", type=["csv", "xlsx"], key="scale_file"
        )

    st.subheader("2. Choose the scope")
    c1, c2 = st.columns(2)
    with c1:
        curriculum = st.text_input("Curriculum", value="2024")
    with c2:
        semester = st.number_input("Semester", min_value=1, max_value=14, value=1, step=1)

    submitted = st.form_submit_button("Build report", type="primary")


if submitted:
    if scores_file is None or courses_file is None:
        st.warning("Please upload at least the scores and the courses.")
        st.stop()

    try:
        courses = parse_courses(read_table(courses_file))
        students = parse_students(read_table(students_file)) if students_file is not None else None
        entries = parse_scale(read_table(scale_file)) if scale_file is not None else DEFAULT_SCALE
        records, import_rejections = parse_scores(read_table(scores_file), courses=courses, students=students)
    except ValueError as e:
        st.error(f"Upload error: {e}")
        st.stop()

    report = build_report(
        records,
        courses,
        GradingScale(entries),
        curriculum=curriculum.strip() or None,
        semester=int(semester),
        students=students,
        settings=settings,
    )
    report.rejections = import_rejections + report.rejections

    st.session_state["report"] = report
    st.session_state["scale_issues"] = scale_issues(report, entries)


# ------------------------
# Show report if we have it
# ------------------------

if "report" in st.session_state:
    report = st.session_state["report"]
    summary = summarize(report)

    st.markdown("---")
    for issue in st.session_state.get("scale_issues", []):
        st.warning(f"Grading scale: {issue}")

    m1, m2, m3, m4 = st.columns(4)
    m1.metric("Students", summary.students)
    m2.metric("Mean IPK", f"{summary.mean_gpa:.2f}")
    m3.metric("Highest IPK", f"{summary.highest_gpa:.2f}" if summary.highest_gpa is not None else "N/A")
    m4.metric("Lowest IPK", f"{summary.lowest_gpa:.2f}" if summary.lowest_gpa is not None else "N/A")

    st.subheader("Ranking")
    st.dataframe(report_to_dataframe(report, settings), use_container_width=True, hide_index=True)

    if summary.letter_distribution:
        st.bar_chart(pd.Series(summary.letter_distribution, name="Courses graded"))

    if report.rejections:
        st.error(f"{len(report.rejections)} score record(s) were rejected")
        st.dataframe(rejections_to_dataframe(report), use_container_width=True, hide_index=True)

    if report.skipped:
        st.info(f"{len(report.skipped)} score record(s) belong to courses outside this semester/curriculum.")

    st.download_button(
        "Download Excel",
        data=export_report_excel(report, settings),
        file_name=f"Nilai_Semester_{report.semester}_Kurikulum_{report.curriculum}.xlsx",
        mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )
else:
    st.info("Upload the files and click **Build report** to get started.")
