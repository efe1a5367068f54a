"""
JSON export.

We bundle the current courses, attendance records and the computed
statistics into one snapshot that can be shared or archived:

    {
      "courses": [...],
      "attendanceRecords": [...],
      "overallStats": {...},
      "courseStats": [...]
    }

The snapshot is built only from the given collections, so the same state
always produces the same JSON.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Sequence

from myattendance.model import AttendanceRecord, Course
from myattendance.stats import CourseStats, OverallStats, course_stats, overall_stats

DEFAULT_EXPORT_NAME = "attendance_export.json"


def _overall_to_dict(s: OverallStats) -> dict[str, Any]:
    return {
        "totalRecords": s.total_records,
        "totalPresent": s.total_present,
        "totalAbsent": s.total_absent,
        "overallRate": s.overall_rate,
        "totalCourses": s.total_courses,
    }


def _course_stats_to_dict(s: CourseStats) -> dict[str, Any]:
    out: dict[str, Any] = {
        "course": s.course.to_dict(),
        "totalClasses": s.total_classes,
        "presentCount": s.present_count,
        "absentCount": s.absent_count,
        "attendanceRate": s.attendance_rate,
    }
    # same as the stored format: no key at all when there is no date yet
    if s.last_attendance_date is not None:
        out["lastAttendanceDate"] = s.last_attendance_date
    return out


def build_export(courses: Sequence[Course], records: Sequence[AttendanceRecord]) -> dict[str, Any]:
    return {
        "courses": [c.to_dict() for c in courses],
        "attendanceRecords": [r.to_dict() for r in records],
        "overallStats": _overall_to_dict(overall_stats(courses, records)),
        "courseStats": [_course_stats_to_dict(s) for s in course_stats(courses, records)],
    }


def export_json(courses: Sequence[Course], records: Sequence[AttendanceRecord]) -> str:
    return json.dumps(build_export(courses, records), indent=2, ensure_ascii=False)


def write_export(
    courses: Sequence[Course], records: Sequence[AttendanceRecord], out_path: str | Path
) -> Path:
    """
    Write the export snapshot to a file. Returns the written path.

    A directory as out_path gets the default file name inside it.
    """
    out = Path(out_path)
    if out.is_dir():
        out = out / DEFAULT_EXPORT_NAME
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(export_json(courses, records) + "\n", encoding="utf-8")
    return out
