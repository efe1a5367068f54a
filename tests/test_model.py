"""
Unit tests for the data model and its JSON representation.

Storage contract:
- Collections are JSON arrays with camelCase keys
- deserialize(serialize(x)) == x, field for field
- Malformed data raises LoadError instead of being silently dropped
"""

import json
import re
import unittest
from datetime import datetime, timezone

from myattendance.errors import LoadError
from myattendance.model import (
    AttendanceRecord,
    AttendanceStatus,
    Course,
    dump_courses,
    dump_records,
    load_courses,
    load_records,
    new_id,
    utc_timestamp,
)


class TestModel(unittest.TestCase):
    def setUp(self) -> None:
        self.courses = [
            Course(id="c1", name="Algorithms", code="CS201", instructor="Dr. X", created_at="2024-01-01T00:00:00.000Z"),
            Course(id="c2", name="Linear Algebra", code="MA110", instructor="", created_at="2024-01-05T08:30:00.000Z"),
        ]
        self.records = [
            AttendanceRecord(id="r1", course_id="c1", date="2024-01-02", status=AttendanceStatus.PRESENT),
            AttendanceRecord(id="r2", course_id="c2", date="2024-01-03", status=AttendanceStatus.ABSENT),
        ]

    def test_courses_roundtrip(self) -> None:
        self.assertEqual(load_courses(dump_courses(self.courses)), self.courses)

    def test_records_roundtrip(self) -> None:
        self.assertEqual(load_records(dump_records(self.records)), self.records)

    def test_stored_shape_uses_camel_case_and_no_extra_fields(self) -> None:
        data = json.loads(dump_records(self.records))
        self.assertEqual(data[0], {"id": "r1", "courseId": "c1", "date": "2024-01-02", "status": "present"})

        data = json.loads(dump_courses(self.courses))
        self.assertEqual(set(data[0]), {"id", "name", "code", "instructor", "createdAt"})

    def test_load_rejects_invalid_json(self) -> None:
        with self.assertRaises(LoadError):
            load_courses("{not json")

    def test_load_rejects_non_array(self) -> None:
        with self.assertRaises(LoadError):
            load_records('{"id": "r1"}')

    def test_load_rejects_missing_field(self) -> None:
        with self.assertRaises(LoadError):
            load_records('[{"id": "r1", "courseId": "c1", "status": "present"}]')

    def test_load_rejects_unknown_status(self) -> None:
        with self.assertRaises(LoadError):
            load_records('[{"id": "r1", "courseId": "c1", "date": "2024-01-02", "status": "late"}]')

    def test_new_id_is_unique_and_increasing(self) -> None:
        ids = [new_id() for _ in range(500)]
        self.assertEqual(len(set(ids)), len(ids))
        self.assertEqual([int(x) for x in ids], sorted(int(x) for x in ids))

    def test_utc_timestamp_format(self) -> None:
        ts = utc_timestamp(datetime(2024, 1, 1, 12, 30, 5, 123456, tzinfo=timezone.utc))
        self.assertEqual(ts, "2024-01-01T12:30:05.123Z")
        self.assertRegex(utc_timestamp(), re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$"))

    def test_course_create_assigns_id_and_timestamp(self) -> None:
        a = Course.create("Algorithms", "CS201")
        b = Course.create("Algorithms", "CS201")
        self.assertNotEqual(a.id, b.id)
        self.assertEqual(a.instructor, "")
        self.assertTrue(a.created_at.endswith("Z"))


if __name__ == "__main__":
    unittest.main()
