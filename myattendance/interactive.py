from __future__ import annotations

import dataclasses
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Optional, Sequence

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from myattendance.errors import ValidationError
from myattendance.export import DEFAULT_EXPORT_NAME, write_export
from myattendance.model import AttendanceRecord, AttendanceStatus, Course
from myattendance.repository import Repository
from myattendance.stats import (
    ALL_COURSES,
    FAIR_ATTENDANCE_THRESHOLD,
    GOOD_ATTENDANCE_THRESHOLD,
    attendance_label,
    best_course,
    course_stats,
    filter_and_sort_records,
    overall_stats,
    recent_activity,
    worst_course,
)
from myattendance.validate import require_date, require_non_empty

console = Console()


def _println(msg: str = "") -> None:
    console.print(msg)


def _prompt(msg: str) -> str:
    return console.input(Text(msg))


def _rate_color(rate: float) -> str:
    if rate >= GOOD_ATTENDANCE_THRESHOLD:
        return "green"
    if rate >= FAIR_ATTENDANCE_THRESHOLD:
        return "yellow"
    return "red"


def _status_text(status: AttendanceStatus) -> str:
    return "[green]present[/]" if status is AttendanceStatus.PRESENT else "[red]absent[/]"


def _course_code(repo: Repository, course_id: str) -> str:
    course = repo.get_course(course_id)
    return escape(course.code) if course else "(unknown course)"


def _course_cell(course: Course) -> str:
    return f"[bold cyan]{escape(course.code)}[/] {escape(course.name)}"


def _error_text(repo: Repository) -> str:
    # a refused change (e.g. course deleted meanwhile) leaves no error behind
    return escape(str(repo.error)) if repo.error is not None else "change was not saved"


async def run_interactive(repo: Repository) -> None:
    """
    Interactive menu loop. Loads the data first; while the data cannot be
    loaded only reload and exit are offered.
    """
    await repo.load()
    selected_date = date.today().isoformat()

    while True:
        _print_header(repo, selected_date)

        if not repo.is_ready:
            choice = _prompt("\n[r] Reload data\n[0] Exit\nSelect: ").strip().lower()
            if choice == "0":
                _println("Bye.")
                return
            if choice == "r":
                await repo.refresh_data()
            else:
                _println("Invalid choice.")
            continue

        choice = _prompt(
            "\n[1] Mark attendance\n"
            "[2] Change date\n"
            "[3] View courses\n"
            "[4] Add course\n"
            "[5] Edit course\n"
            "[6] Delete course\n"
            "[7] Browse records\n"
            "[8] Statistics\n"
            "[9] Export JSON\n"
            "[r] Reload data\n"
            "[0] Exit\n"
            "Select: "
        ).strip().lower()

        if choice == "0":
            _println("Bye.")
            return

        if choice == "1":
            await _flow_mark(repo, selected_date)
        elif choice == "2":
            selected_date = _flow_change_date(selected_date)
        elif choice == "3":
            _flow_view_courses(repo)
        elif choice == "4":
            await _flow_add_course(repo)
        elif choice == "5":
            await _flow_edit_course(repo)
        elif choice == "6":
            await _flow_delete_course(repo)
        elif choice == "7":
            await _flow_records(repo)
        elif choice == "8":
            _flow_stats(repo)
        elif choice == "9":
            _flow_export(repo)
        elif choice == "r":
            if await repo.refresh_data():
                _println("Data reloaded.")
        else:
            _println("Invalid choice.")


def _print_header(repo: Repository, selected_date: str) -> None:
    _println("\n=== MyAttendance (interactive) ===")
    if repo.error is not None:
        _println(f"[bold red]Error:[/] {_error_text(repo)}")
    if not repo.is_ready:
        _println("Data is not available. Reload once the problem is fixed.")
        return

    today = date.today().isoformat()
    suffix = " (today)" if selected_date == today else ""
    _println(
        f"Date: [bold]{selected_date}[/]{suffix} | Courses: {len(repo.courses)} | "
        f"Records: {len(repo.attendance_records)}"
    )


def _pick_course(repo: Repository, title: str) -> Optional[Course]:
    courses = repo.courses
    if not courses:
        _println("No courses yet. Add one first.")
        return None

    table = Table(title=title, box=box.SIMPLE)
    table.add_column("#", justify="right")
    table.add_column("Code", style="bold cyan")
    table.add_column("Name")
    table.add_column("Instructor", style="magenta")
    for i, c in enumerate(courses, start=1):
        table.add_row(str(i), Text(c.code), Text(c.name), Text(c.instructor))
    console.print(table)

    pick = _prompt("Enter number [blank = back]: ").strip()
    if not pick:
        return None
    if not pick.isdigit():
        _println("Not a number.")
        return None
    i = int(pick)
    if not (1 <= i <= len(courses)):
        _println("Out of range.")
        return None
    return courses[i - 1]


def _flow_change_date(selected_date: str) -> str:
    """
    Step one day back/forward, jump to today, or type a date.
    """
    raw = _prompt("[p] previous day, [n] next day, [t] today, or YYYY-MM-DD [blank = keep]: ").strip().lower()
    if not raw:
        return selected_date
    if raw == "t":
        return date.today().isoformat()
    if raw in ("p", "n"):
        current = datetime.strptime(selected_date, "%Y-%m-%d").date()
        delta = timedelta(days=-1 if raw == "p" else 1)
        return (current + delta).isoformat()
    try:
        return require_date(raw)
    except ValidationError as exc:
        _println(escape(str(exc)))
        return selected_date


async def _flow_mark(repo: Repository, selected_date: str) -> None:
    """
    Mark attendance for the selected date. After marking, offer the next course
    without returning to the main menu.
    """
    while True:
        if not repo.courses:
            _println("No courses yet. Add one first.")
            return

        table = Table(title=f"Attendance on {selected_date}", box=box.SIMPLE)
        table.add_column("#", justify="right")
        table.add_column("Course")
        table.add_column("Status")
        for i, c in enumerate(repo.courses, start=1):
            existing = repo.find_attendance(c.id, selected_date)
            status = _status_text(existing.status) if existing else "[dim]not marked[/]"
            table.add_row(str(i), _course_cell(c), status)
        console.print(table)

        pick = _prompt("Enter number to mark [blank = back]: ").strip()
        if not pick:
            return
        if not pick.isdigit() or not (1 <= int(pick) <= len(repo.courses)):
            _println("Invalid selection.")
            continue
        course = repo.courses[int(pick) - 1]

        answer = _prompt("[p]resent / [a]bsent: ").strip().lower()
        if answer not in ("p", "a"):
            _println("Please answer p or a.")
            continue
        status = AttendanceStatus.PRESENT if answer == "p" else AttendanceStatus.ABSENT

        record = await repo.mark_attendance(course.id, selected_date, status)
        if record is None:
            _println(f"[red]Failed to save attendance:[/] {_error_text(repo)}")
        else:
            _println(f"{escape(course.code)} on {selected_date}: {_status_text(record.status)}")


def _flow_view_courses(repo: Repository) -> None:
    if not repo.courses:
        _println("No courses yet.")
        return

    table = Table(title="Courses", box=box.SIMPLE)
    table.add_column("Code", style="bold cyan")
    table.add_column("Name")
    table.add_column("Instructor", style="magenta")
    table.add_column("Created")
    table.add_column("Id", style="dim")
    for c in repo.courses:
        table.add_row(Text(c.code), Text(c.name), Text(c.instructor), c.created_at[:10], c.id)
    console.print(table)


CLEAR_FIELD = "-"


def _ask_course_fields(current: Optional[Course] = None) -> Optional[tuple[str, str, str]]:
    """
    Ask name, code and instructor. Blank keeps the current value,
    "-" clears it (only meaningful for the optional instructor).
    """

    def ask(label: str, old: str) -> str:
        hint = f" [{old}, '{CLEAR_FIELD}' = clear]" if old else ""
        value = _prompt(f"{label}{hint}: ").strip()
        if value == CLEAR_FIELD:
            return ""
        return value or old

    name = ask("Course name", current.name if current else "")
    code = ask("Course code", current.code if current else "")
    instructor = ask("Instructor (optional)", current.instructor if current else "")
    try:
        return require_non_empty(name, "Course name"), require_non_empty(code, "Course code"), instructor
    except ValidationError as exc:
        _println(f"[red]{escape(str(exc))}[/]")
        return None


async def _flow_add_course(repo: Repository) -> None:
    fields = _ask_course_fields()
    if fields is None:
        return
    name, code, instructor = fields
    course = Course.create(name=name, code=code, instructor=instructor)
    if await repo.add_course(course):
        _println(f"Added: {escape(course.code)} {escape(course.name)}")
    else:
        _println(f"[red]Failed to save course:[/] {_error_text(repo)}")


async def _flow_edit_course(repo: Repository) -> None:
    course = _pick_course(repo, "Edit course")
    if course is None:
        return
    fields = _ask_course_fields(course)
    if fields is None:
        return
    name, code, instructor = fields
    updated = dataclasses.replace(course, name=name, code=code, instructor=instructor)
    if await repo.update_course(updated):
        _println(f"Updated: {escape(updated.code)} {escape(updated.name)}")
    else:
        _println(f"[red]Failed to update course:[/] {_error_text(repo)}")


async def _flow_delete_course(repo: Repository) -> None:
    course = _pick_course(repo, "Delete course")
    if course is None:
        return
    n_records = sum(1 for r in repo.attendance_records if r.course_id == course.id)
    confirm = _prompt(
        f"Delete {course.code} {course.name} and its {n_records} attendance records? [y/N]: "
    ).strip().lower()
    if confirm != "y":
        return
    if await repo.delete_course(course.id):
        _println(f"Deleted: {escape(course.code)}")
    else:
        _println(f"[red]Failed to delete course:[/] {_error_text(repo)}")


def _records_table(repo: Repository, records: Sequence[AttendanceRecord], title: str) -> Table:
    table = Table(title=title, box=box.SIMPLE)
    table.add_column("#", justify="right")
    table.add_column("Date")
    table.add_column("Course", style="bold cyan")
    table.add_column("Status")
    for i, r in enumerate(records, start=1):
        table.add_row(str(i), r.date, _course_code(repo, r.course_id), _status_text(r.status))
    return table


async def _flow_records(repo: Repository) -> None:
    """
    Browse records with a course filter and a toggleable date order.
    Records can be deleted from the list.
    """
    course_filter = ALL_COURSES
    order = "desc"

    while True:
        records = filter_and_sort_records(repo.attendance_records, course_id=course_filter, order=order)
        label = "all courses" if course_filter == ALL_COURSES else _course_code(repo, course_filter)
        newest = "newest first" if order == "desc" else "oldest first"
        console.print(_records_table(repo, records, f"Records: {label}, {newest}"))
        n = len(records)
        _println(f"{n} record{'s' if n != 1 else ''} found")

        choice = _prompt("[f] filter course, [a] all courses, [s] toggle sort, [d] delete, [blank = back]: ")
        choice = choice.strip().lower()
        if not choice:
            return
        if choice == "f":
            course = _pick_course(repo, "Filter by course")
            if course is not None:
                course_filter = course.id
        elif choice == "a":
            course_filter = ALL_COURSES
        elif choice == "s":
            order = "asc" if order == "desc" else "desc"
        elif choice == "d":
            pick = _prompt("Enter number to delete: ").strip()
            if not pick.isdigit() or not (1 <= int(pick) <= n):
                _println("Invalid selection.")
                continue
            record = records[int(pick) - 1]
            if await repo.delete_attendance_record(record.id):
                _println(f"Deleted record {record.date} {_course_code(repo, record.course_id)}")
            else:
                _println(f"[red]Failed to delete record:[/] {_error_text(repo)}")
        else:
            _println("Invalid choice.")


def _flow_stats(repo: Repository) -> None:
    if not repo.courses:
        _println("No courses yet.")
        return

    stats = course_stats(repo.courses, repo.attendance_records)
    table = Table(title="Attendance by course", box=box.SIMPLE)
    table.add_column("Course")
    table.add_column("Rate", justify="right")
    table.add_column("Status")
    table.add_column("Total", justify="right")
    table.add_column("Present", justify="right")
    table.add_column("Absent", justify="right")
    table.add_column("Last marked")
    for s in stats:
        color = _rate_color(s.attendance_rate)
        table.add_row(
            _course_cell(s.course),
            f"[{color}]{s.attendance_rate:.1f}%[/]",
            f"[{color}]{attendance_label(s.attendance_rate)}[/]",
            str(s.total_classes),
            str(s.present_count),
            str(s.absent_count),
            s.last_attendance_date or "-",
        )
    console.print(table)

    overall = overall_stats(repo.courses, repo.attendance_records)
    color = _rate_color(overall.overall_rate)
    _println(
        f"Overall: [{color}]{overall.overall_rate:.1f}%[/] | courses {overall.total_courses} | "
        f"records {overall.total_records} | present {overall.total_present} | absent {overall.total_absent}"
    )

    best = best_course(stats)
    if best:
        _println(f"Best attendance: [green]{escape(best.course.code)}[/] ({best.attendance_rate:.1f}%)")
    worst = worst_course(stats)
    if worst:
        _println(f"Needs attention: [red]{escape(worst.course.code)}[/] ({worst.attendance_rate:.1f}%)")

    recent = recent_activity(repo.attendance_records)
    if recent:
        console.print(_records_table(repo, recent, "Recent activity"))


def _flow_export(repo: Repository) -> None:
    # Default to user's Downloads folder (works on Windows/macOS/Linux)
    downloads = Path.home() / "Downloads"
    out_in = _prompt(f"Please enter desired file name, default is [{DEFAULT_EXPORT_NAME}]: ").strip()
    out_path = downloads / (out_in or DEFAULT_EXPORT_NAME)
    if out_path.suffix.lower() != ".json":
        out_path = out_path.with_suffix(".json")

    try:
        written = write_export(repo.courses, repo.attendance_records, out_path)
    except OSError as exc:
        _println(f"[red]Failed to export data:[/] {escape(str(exc))}")
        return
    _println(f"\nExported {len(repo.courses)} courses and {len(repo.attendance_records)} records.")
    _println(f"Saved to: {escape(str(written.resolve()))}")
