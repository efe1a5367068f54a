"""
Attendance statistics.

Everything here is a pure function of the current courses and attendance
records: nothing is cached or persisted, and the same input always gives the
same output.

Rate rule:
    attendance_rate = present / total * 100, and 0.0 when total == 0

Dates are 'YYYY-MM-DD' strings, so plain string comparison is date order.
Python's sorted() is stable (also with reverse=True), which keeps records with
equal dates in collection order.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from myattendance.model import AttendanceRecord, AttendanceStatus, Course

ALL_COURSES = "all"
GOOD_ATTENDANCE_THRESHOLD = 80.0
FAIR_ATTENDANCE_THRESHOLD = 60.0
RECENT_ACTIVITY_LIMIT = 5


@dataclass(frozen=True)
class CourseStats:
    course: Course
    total_classes: int
    present_count: int
    absent_count: int
    attendance_rate: float
    last_attendance_date: Optional[str]


@dataclass(frozen=True)
class OverallStats:
    total_records: int
    total_present: int
    total_absent: int
    overall_rate: float
    total_courses: int


def _rate(present: int, total: int) -> float:
    return present / total * 100 if total > 0 else 0.0


def course_stats(courses: Iterable[Course], records: Iterable[AttendanceRecord]) -> list[CourseStats]:
    """
    One CourseStats per course, in course order.
    """
    records = list(records)
    out: list[CourseStats] = []
    for course in courses:
        own = [r for r in records if r.course_id == course.id]
        total = len(own)
        present = sum(1 for r in own if r.status is AttendanceStatus.PRESENT)
        out.append(
            CourseStats(
                course=course,
                total_classes=total,
                present_count=present,
                absent_count=total - present,
                attendance_rate=_rate(present, total),
                last_attendance_date=max((r.date for r in own), default=None),
            )
        )
    return out


def overall_stats(courses: Sequence[Course], records: Sequence[AttendanceRecord]) -> OverallStats:
    total = len(records)
    present = sum(1 for r in records if r.status is AttendanceStatus.PRESENT)
    return OverallStats(
        total_records=total,
        total_present=present,
        total_absent=total - present,
        overall_rate=_rate(present, total),
        total_courses=len(courses),
    )


def best_course(stats: Iterable[CourseStats]) -> Optional[CourseStats]:
    """
    Highest attendance rate among courses with at least one class.
    Ties go to the course that comes first.
    """
    best: Optional[CourseStats] = None
    for s in stats:
        if s.total_classes > 0 and (best is None or s.attendance_rate > best.attendance_rate):
            best = s
    return best


def worst_course(
    stats: Iterable[CourseStats], threshold: float = GOOD_ATTENDANCE_THRESHOLD
) -> Optional[CourseStats]:
    """
    Lowest attendance rate among courses with at least one class, but only
    if it is below `threshold`. Ties go to the course that comes first.
    """
    worst: Optional[CourseStats] = None
    for s in stats:
        if s.total_classes > 0 and (worst is None or s.attendance_rate < worst.attendance_rate):
            worst = s
    if worst is not None and worst.attendance_rate < threshold:
        return worst
    return None


def recent_activity(
    records: Iterable[AttendanceRecord], limit: int = RECENT_ACTIVITY_LIMIT
) -> list[AttendanceRecord]:
    return sorted(records, key=lambda r: r.date, reverse=True)[:limit]


def filter_and_sort_records(
    records: Iterable[AttendanceRecord], course_id: str = ALL_COURSES, order: str = "desc"
) -> list[AttendanceRecord]:
    """
    Record browsing view: optional exact course filter + stable date sort.

    course_id="all" disables the filter. order is "asc" or "desc".
    """
    if order not in ("asc", "desc"):
        raise ValueError(f"Invalid sort order: {order!r} (expected 'asc' or 'desc')")

    if course_id != ALL_COURSES:
        records = [r for r in records if r.course_id == course_id]

    return sorted(records, key=lambda r: r.date, reverse=(order == "desc"))


def attendance_label(rate: float) -> str:
    if rate >= GOOD_ATTENDANCE_THRESHOLD:
        return "Excellent"
    if rate >= FAIR_ATTENDANCE_THRESHOLD:
        return "Good"
    return "Needs Improvement"
