"""
CLI (Command Line Interface).

This module provides quick terminal commands for power users and for testing, e.g.:

    myattendance courses
    myattendance add-course "Algorithms" CS201 --instructor "Dr. X"
    myattendance mark <course_id> present --date 2024-01-02
    myattendance records --course <course_id> --order asc
    myattendance stats
    myattendance export out.json
    myattendance interactive

Note:
- The interactive UI lives in myattendance/interactive.py
- This CLI is intentionally simple and prints plain text (no rich formatting)
- Every command loads the store first; a store that cannot be loaded is
  reported and nothing is modified
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import logging
from datetime import date
from typing import Awaitable, Callable

from rich.console import Console
from rich.logging import RichHandler

from myattendance.errors import NotFoundError, ValidationError
from myattendance.export import write_export
from myattendance.model import Course
from myattendance.repository import Repository
from myattendance.stats import (
    ALL_COURSES,
    attendance_label,
    best_course,
    course_stats,
    filter_and_sort_records,
    overall_stats,
    recent_activity,
    worst_course,
)
from myattendance.storage import JsonFileStore
from myattendance.validate import parse_status, require_date, require_non_empty


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _course_line(course: Course) -> str:
    bits = [course.id, course.code, course.name]
    if course.instructor:
        bits.append(course.instructor)
    return " | ".join(bits)


def _write_failed(repo: Repository) -> int:
    print(f"Error: {repo.error or 'change was not saved'}")
    return 1


async def _cmd_courses(args: argparse.Namespace, repo: Repository) -> int:
    """
    List all courses in insertion order.
    """
    if not repo.courses:
        print("No courses yet.")
        return 0
    for course in repo.courses:
        print(_course_line(course))
    return 0


async def _cmd_add_course(args: argparse.Namespace, repo: Repository) -> int:
    course = Course.create(
        name=require_non_empty(args.name, "Course name"),
        code=require_non_empty(args.code, "Course code"),
        instructor=(args.instructor or "").strip(),
    )
    if not await repo.add_course(course):
        return _write_failed(repo)
    print(f"Added: {course.code} {course.name} (id: {course.id})")
    return 0


async def _cmd_edit_course(args: argparse.Namespace, repo: Repository) -> int:
    """
    Full-record update: unspecified fields keep their current value.
    """
    current = repo.require_course(args.course_id)
    updated = dataclasses.replace(
        current,
        name=require_non_empty(args.name, "Course name") if args.name is not None else current.name,
        code=require_non_empty(args.code, "Course code") if args.code is not None else current.code,
        instructor=args.instructor.strip() if args.instructor is not None else current.instructor,
    )
    if not await repo.update_course(updated):
        return _write_failed(repo)
    print(f"Updated: {_course_line(updated)}")
    return 0


async def _cmd_delete_course(args: argparse.Namespace, repo: Repository) -> int:
    """
    Delete a course together with all of its attendance records.
    """
    course = repo.get_course(args.course_id)
    n_records = sum(1 for r in repo.attendance_records if r.course_id == args.course_id)
    # a course that is gone but still has records is a half-finished delete: finish it
    if course is None and n_records == 0:
        print(f"Course not found: {args.course_id}")
        return 1

    if not await repo.delete_course(args.course_id):
        return _write_failed(repo)
    label = f"{course.code} {course.name}" if course else args.course_id
    print(f"Deleted: {label} ({n_records} attendance records removed)")
    return 0


async def _cmd_mark(args: argparse.Namespace, repo: Repository) -> int:
    """
    Mark present/absent for one course on one date (insert or update).
    """
    day = require_date(args.date) if args.date else date.today().isoformat()
    status = parse_status(args.status)
    course = repo.require_course(args.course_id)

    existed = repo.find_attendance(course.id, day) is not None
    record = await repo.mark_attendance(course.id, day, status)
    if record is None:
        return _write_failed(repo)
    verb = "Updated" if existed else "Marked"
    print(f"{verb}: {course.code} {day} -> {record.status.value}")
    return 0


async def _cmd_records(args: argparse.Namespace, repo: Repository) -> int:
    """
    Browse attendance records, optionally filtered by course, sorted by date.
    """
    course_filter = args.course or ALL_COURSES
    if course_filter != ALL_COURSES:
        repo.require_course(course_filter)

    records = filter_and_sort_records(repo.attendance_records, course_id=course_filter, order=args.order)
    for r in records:
        course = repo.get_course(r.course_id)
        code = course.code if course else "(unknown course)"
        print(f"{r.date} | {code} | {r.status.value} | {r.id}")

    n = len(records)
    print(f"{n} record{'s' if n != 1 else ''} found")
    return 0


async def _cmd_delete_record(args: argparse.Namespace, repo: Repository) -> int:
    if not any(r.id == args.record_id for r in repo.attendance_records):
        print(f"Record not found: {args.record_id}")
        return 1
    if not await repo.delete_attendance_record(args.record_id):
        return _write_failed(repo)
    print(f"Deleted record: {args.record_id}")
    return 0


async def _cmd_stats(args: argparse.Namespace, repo: Repository) -> int:
    """
    Print per-course statistics, the overall summary and a few insights.
    """
    if not repo.courses:
        print("No courses yet.")
        return 0

    stats = course_stats(repo.courses, repo.attendance_records)
    for s in stats:
        last = s.last_attendance_date or "-"
        print(
            f"{s.course.code} {s.course.name}: {s.attendance_rate:.1f}% ({attendance_label(s.attendance_rate)}) | "
            f"total {s.total_classes} | present {s.present_count} | absent {s.absent_count} | last {last}"
        )

    overall = overall_stats(repo.courses, repo.attendance_records)
    print(
        f"\nOverall: {overall.overall_rate:.1f}% | courses {overall.total_courses} | "
        f"records {overall.total_records} | present {overall.total_present} | absent {overall.total_absent}"
    )

    best = best_course(stats)
    if best:
        print(f"Best attendance: {best.course.code} {best.course.name} ({best.attendance_rate:.1f}%)")
    worst = worst_course(stats)
    if worst:
        print(f"Needs attention: {worst.course.code} {worst.course.name} ({worst.attendance_rate:.1f}%)")

    recent = recent_activity(repo.attendance_records)
    if recent:
        print("\nRecent activity:")
        for r in recent:
            course = repo.get_course(r.course_id)
            code = course.code if course else r.course_id
            print(f"- {r.date} {code} {r.status.value}")
    return 0


async def _cmd_export(args: argparse.Namespace, repo: Repository) -> int:
    """
    Export courses, records and computed statistics into one JSON file.
    """
    out_path = (args.out or "").strip()
    if not out_path:
        print("Please provide output .json path.")
        return 1

    try:
        written = write_export(repo.courses, repo.attendance_records, out_path)
    except OSError as exc:
        print(f"Failed to export data: {exc}")
        return 1
    print(f"Exported {len(repo.courses)} courses and {len(repo.attendance_records)} records to: {written}")
    return 0


Handler = Callable[[argparse.Namespace, Repository], Awaitable[int]]

_HANDLERS: dict[str, Handler] = {
    "courses": _cmd_courses,
    "add-course": _cmd_add_course,
    "edit-course": _cmd_edit_course,
    "delete-course": _cmd_delete_course,
    "mark": _cmd_mark,
    "records": _cmd_records,
    "delete-record": _cmd_delete_record,
    "stats": _cmd_stats,
    "export": _cmd_export,
}


async def _run(args: argparse.Namespace) -> int:
    repo = Repository(JsonFileStore(args.store))
    if not await repo.load():
        print(f"Error: {repo.error}")
        return 1

    try:
        return await _HANDLERS[args.command](args, repo)
    except (ValidationError, NotFoundError) as exc:
        print(exc)
        return 1


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argparse CLI parser with sub-commands.
    """
    parser = argparse.ArgumentParser(prog="myattendance", description="MyAttendance CLI")
    parser.add_argument("--store", type=str, default=None, help="Path of the data file (default: ~/.myattendance/store.json)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("courses", help="List courses")

    p_add = sub.add_parser("add-course", help="Add a course")
    p_add.add_argument("name", type=str, help="Course name (e.g. Algorithms)")
    p_add.add_argument("code", type=str, help="Course code (e.g. CS201)")
    p_add.add_argument("--instructor", type=str, default="", help="Instructor name")

    p_edit = sub.add_parser("edit-course", help="Edit a course")
    p_edit.add_argument("course_id", type=str, help="Course id")
    p_edit.add_argument("--name", type=str, default=None)
    p_edit.add_argument("--code", type=str, default=None)
    p_edit.add_argument("--instructor", type=str, default=None)

    p_del = sub.add_parser("delete-course", help="Delete a course and all its attendance records")
    p_del.add_argument("course_id", type=str, help="Course id")

    p_mark = sub.add_parser("mark", help="Mark attendance for a course")
    p_mark.add_argument("course_id", type=str, help="Course id")
    p_mark.add_argument("status", type=str, help="present or absent")
    p_mark.add_argument("--date", type=str, default=None, help="YYYY-MM-DD (default: today)")

    p_records = sub.add_parser("records", help="Browse attendance records")
    p_records.add_argument("--course", type=str, default=ALL_COURSES, help="Course id or 'all'")
    p_records.add_argument("--order", choices=["asc", "desc"], default="desc", help="Sort by date")

    p_del_rec = sub.add_parser("delete-record", help="Delete one attendance record")
    p_del_rec.add_argument("record_id", type=str, help="Record id")

    sub.add_parser("stats", help="Show attendance statistics")

    p_export = sub.add_parser("export", help="Export all data and statistics to JSON")
    p_export.add_argument("out", type=str, help="Output file path (e.g. attendance_export.json)")

    sub.add_parser("interactive", help="Interactive menu mode")

    return parser


def main(argv: list[str] | None = None) -> None:
    """
    CLI entry point. Parses args, dispatches to command handlers,
    and exits via SystemExit with a return code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.verbose)

    if args.command == "interactive":
        from myattendance.interactive import run_interactive

        repo = Repository(JsonFileStore(args.store))
        asyncio.run(run_interactive(repo))
        raise SystemExit(0)

    if args.command in _HANDLERS:
        raise SystemExit(asyncio.run(_run(args)))

    raise SystemExit(2)
