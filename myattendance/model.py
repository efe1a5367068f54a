"""
Central data model definitions used across the project.

This module defines the canonical structure of Course and AttendanceRecord
objects so that:
- all modules share the same field names
- the stored JSON keeps exactly the same shape on every write
- loading fails loudly (LoadError) instead of silently dropping fields

The persisted JSON uses camelCase keys (createdAt, courseId); the Python
attributes use snake_case.
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable

from myattendance.errors import LoadError


class AttendanceStatus(str, Enum):
    """Outcome of one class meeting."""

    PRESENT = "present"
    ABSENT = "absent"


@dataclass(frozen=True)
class Course:
    """
    Represents one tracked course as stored under the "courses" key.
    """

    id: str
    name: str
    code: str
    instructor: str
    created_at: str

    @classmethod
    def create(cls, name: str, code: str, instructor: str = "") -> "Course":
        """
        New course with a fresh id and the current UTC creation timestamp.
        """
        return cls(id=new_id(), name=name, code=code, instructor=instructor, created_at=utc_timestamp())

    def to_dict(self) -> dict[str, str]:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "instructor": self.instructor,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Course":
        fields = _require_fields(data, ("id", "name", "code", "instructor", "createdAt"), "course")
        return cls(
            id=fields["id"],
            name=fields["name"],
            code=fields["code"],
            instructor=fields["instructor"],
            created_at=fields["createdAt"],
        )


@dataclass(frozen=True)
class AttendanceRecord:
    """
    One (course, date) attendance outcome as stored under "attendanceRecords".
    """

    id: str
    course_id: str
    date: str
    status: AttendanceStatus

    def to_dict(self) -> dict[str, str]:
        return {
            "id": self.id,
            "courseId": self.course_id,
            "date": self.date,
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "AttendanceRecord":
        fields = _require_fields(data, ("id", "courseId", "date", "status"), "attendance record")
        try:
            status = AttendanceStatus(fields["status"])
        except ValueError:
            raise LoadError(f"Unknown attendance status: {fields['status']!r}") from None
        return cls(id=fields["id"], course_id=fields["courseId"], date=fields["date"], status=status)


def _require_fields(data: Any, names: tuple[str, ...], what: str) -> dict[str, str]:
    if not isinstance(data, dict):
        raise LoadError(f"Invalid {what}: expected an object, got {type(data).__name__}")
    out: dict[str, str] = {}
    for name in names:
        value = data.get(name)
        if not isinstance(value, str):
            raise LoadError(f"Invalid {what}: field {name!r} missing or not a string")
        out[name] = value
    return out


def _load_array(text: str, what: str) -> list[Any]:
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError) as exc:
        raise LoadError(f"Stored {what} are not valid JSON: {exc}") from exc
    if not isinstance(data, list):
        raise LoadError(f"Stored {what} must be a JSON array, got {type(data).__name__}")
    return data


def dump_courses(courses: Iterable[Course]) -> str:
    return json.dumps([c.to_dict() for c in courses], ensure_ascii=False)


def load_courses(text: str) -> list[Course]:
    return [Course.from_dict(item) for item in _load_array(text, "courses")]


def dump_records(records: Iterable[AttendanceRecord]) -> str:
    return json.dumps([r.to_dict() for r in records], ensure_ascii=False)


def load_records(text: str) -> list[AttendanceRecord]:
    return [AttendanceRecord.from_dict(item) for item in _load_array(text, "attendance records")]


_last_id = 0


def new_id() -> str:
    """
    Return a fresh identifier derived from the current time in microseconds.

    Successive calls within one process are strictly increasing, so two ids
    created in the same microsecond still differ.
    """
    global _last_id
    candidate = time.time_ns() // 1000
    if candidate <= _last_id:
        candidate = _last_id + 1
    _last_id = candidate
    return str(candidate)


def utc_timestamp(now: datetime | None = None) -> str:
    """
    ISO 8601 UTC timestamp with millisecond precision, e.g. 2024-01-01T00:00:00.000Z
    """
    dt = now if now is not None else datetime.now(timezone.utc)
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"
