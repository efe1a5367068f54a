"""
Smoke tests for the interactive menu: prompts are scripted, output is discarded.
"""

import io
import unittest
from unittest import mock

from rich.console import Console

from myattendance.interactive import run_interactive
from myattendance.model import AttendanceStatus, Course
from myattendance.repository import Repository
from myattendance.storage import COURSES_KEY, MemoryStore


class TestInteractive(unittest.IsolatedAsyncioTestCase):
    async def run_script(self, repo: Repository, answers: list[str]) -> str:
        out = io.StringIO()
        with mock.patch("myattendance.interactive._prompt", side_effect=answers), mock.patch(
            "myattendance.interactive.console", Console(file=out, width=120)
        ):
            await run_interactive(repo)
        return out.getvalue()

    async def test_add_course_then_mark_present(self) -> None:
        repo = Repository(MemoryStore())
        answers = [
            "4", "Algorithms", "CS201", "",   # add course
            "2", "2024-01-02",                # change date
            "1", "1", "p", "",                # mark first course present
            "0",
        ]
        await self.run_script(repo, answers)

        (course,) = repo.courses
        self.assertEqual((course.name, course.code, course.instructor), ("Algorithms", "CS201", ""))
        (record,) = repo.attendance_records
        self.assertEqual(record.course_id, course.id)
        self.assertEqual(record.date, "2024-01-02")
        self.assertIs(record.status, AttendanceStatus.PRESENT)

    async def test_brackets_in_course_fields_are_shown_verbatim(self) -> None:
        repo = Repository(MemoryStore())
        answers = [
            "4", "Intro [bold]", "CS[/x]", "[red]Dr. Y",  # add course
            "3",                                        # view courses
            "1", "1", "a", "",                          # mark absent
            "8",                                        # statistics
            "0",
        ]
        out = await self.run_script(repo, answers)

        (course,) = repo.courses
        self.assertEqual(course.code, "CS[/x]")
        self.assertEqual(len(repo.attendance_records), 1)
        self.assertIn("Added: CS[/x] Intro [bold]", out)
        self.assertIn("[red]Dr. Y", out)

    async def test_edit_can_clear_instructor(self) -> None:
        repo = Repository(MemoryStore())
        await repo.load()
        await repo.add_course(
            Course(id="c1", name="Algorithms", code="CS201", instructor="Dr. X", created_at="2024-01-01T00:00:00.000Z")
        )
        # blank keeps name and code, "-" clears the instructor
        await self.run_script(repo, ["5", "1", "", "", "-", "0"])

        (course,) = repo.courses
        self.assertEqual((course.name, course.code, course.instructor), ("Algorithms", "CS201", ""))

    async def test_broken_store_only_offers_reload(self) -> None:
        store = MemoryStore({COURSES_KEY: "oops"})
        repo = Repository(store)
        with self.assertLogs("myattendance.repository", level="ERROR"):
            out = await self.run_script(repo, ["1", "0"])
        self.assertIn("Invalid choice", out)
        self.assertFalse(repo.is_ready)

        store.data[COURSES_KEY] = "[]"
        await self.run_script(repo, ["r", "0"])
        self.assertTrue(repo.is_ready)


if __name__ == "__main__":
    unittest.main()
