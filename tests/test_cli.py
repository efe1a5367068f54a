"""
Tests for CLI entry points.

These tests focus on:
- Basic CLI argument validation (empty course name, bad dates, unknown ids)
- A full add -> mark -> stats -> export session against a temporary store
  (to avoid touching real user data during tests)
"""

import contextlib
import io
import json
import tempfile
import unittest
from pathlib import Path

from myattendance.cli import main


def run_cli(*argv: str) -> tuple[int, str]:
    out = io.StringIO()
    with contextlib.redirect_stdout(out):
        try:
            main(list(argv))
        except SystemExit as exc:
            return int(exc.code or 0), out.getvalue()
    return 0, out.getvalue()


def stored_courses(store: Path) -> list[dict]:
    data = json.loads(store.read_text(encoding="utf-8"))
    return json.loads(data["courses"])


class TestCLI(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.store = Path(self._tmp.name) / "store.json"

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_add_course_requires_name(self) -> None:
        code, out = run_cli("--store", str(self.store), "add-course", "  ", "CS201")
        self.assertNotEqual(code, 0)
        self.assertIn("must not be empty", out)
        self.assertFalse(self.store.exists())

    def test_mark_unknown_course(self) -> None:
        code, out = run_cli("--store", str(self.store), "mark", "nope", "present", "--date", "2024-01-02")
        self.assertEqual(code, 1)
        self.assertIn("Course not found", out)

    def test_full_session(self) -> None:
        store = str(self.store)
        code, out = run_cli("--store", store, "add-course", "Algorithms", "CS201", "--instructor", "Dr. X")
        self.assertEqual(code, 0)
        self.assertIn("Added: CS201 Algorithms", out)
        cid = stored_courses(self.store)[0]["id"]

        for day, status in [("2024-01-02", "present"), ("2024-01-03", "absent"), ("2024-01-04", "present")]:
            code, _ = run_cli("--store", store, "mark", cid, status, "--date", day)
            self.assertEqual(code, 0)

        # marking the same day again updates instead of inserting
        code, out = run_cli("--store", store, "mark", cid, "absent", "--date", "2024-01-04")
        self.assertEqual(code, 0)
        self.assertIn("Updated", out)
        run_cli("--store", store, "mark", cid, "present", "--date", "2024-01-04")

        code, out = run_cli("--store", store, "records", "--course", cid, "--order", "desc")
        self.assertEqual(code, 0)
        dates = [line.split(" | ")[0] for line in out.splitlines() if " | " in line]
        self.assertEqual(dates, ["2024-01-04", "2024-01-03", "2024-01-02"])
        self.assertIn("3 records found", out)

        code, out = run_cli("--store", store, "stats")
        self.assertEqual(code, 0)
        self.assertIn("CS201 Algorithms: 66.7%", out)
        self.assertIn("last 2024-01-04", out)

        export_path = Path(self._tmp.name) / "export" / "attendance_export.json"
        code, out = run_cli("--store", store, "export", str(export_path))
        self.assertEqual(code, 0)
        exported = json.loads(export_path.read_text(encoding="utf-8"))
        self.assertEqual(exported["courseStats"][0]["totalClasses"], 3)

        code, out = run_cli("--store", store, "delete-course", cid)
        self.assertEqual(code, 0)
        self.assertIn("3 attendance records removed", out)
        code, out = run_cli("--store", store, "records")
        self.assertIn("0 records found", out)

    def test_edit_course_keeps_unspecified_fields(self) -> None:
        store = str(self.store)
        run_cli("--store", store, "add-course", "Algorithms", "CS201", "--instructor", "Dr. X")
        cid = stored_courses(self.store)[0]["id"]

        code, _ = run_cli("--store", store, "edit-course", cid, "--name", "Advanced Algorithms")
        self.assertEqual(code, 0)
        (course,) = stored_courses(self.store)
        self.assertEqual(course["name"], "Advanced Algorithms")
        self.assertEqual(course["code"], "CS201")
        self.assertEqual(course["instructor"], "Dr. X")
        self.assertEqual(course["id"], cid)

    def test_bad_date_is_rejected(self) -> None:
        store = str(self.store)
        run_cli("--store", store, "add-course", "Algorithms", "CS201")
        cid = stored_courses(self.store)[0]["id"]
        code, out = run_cli("--store", store, "mark", cid, "present", "--date", "02/01/2024")
        self.assertEqual(code, 1)
        self.assertIn("expected YYYY-MM-DD", out)

    def test_export_to_unwritable_path_is_reported(self) -> None:
        # a regular file where a parent directory is needed cannot be created
        blocker = Path(self._tmp.name) / "blocker"
        blocker.write_text("", encoding="utf-8")
        code, out = run_cli("--store", str(self.store), "export", str(blocker / "sub" / "out.json"))
        self.assertEqual(code, 1)
        self.assertIn("Failed to export data", out)

    def test_corrupted_store_is_reported(self) -> None:
        self.store.write_text("{broken", encoding="utf-8")
        code, out = run_cli("--store", str(self.store), "courses")
        self.assertEqual(code, 1)
        self.assertIn("Error", out)
        # nothing was overwritten
        self.assertEqual(self.store.read_text(encoding="utf-8"), "{broken")


if __name__ == "__main__":
    unittest.main()
