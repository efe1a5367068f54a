"""
Entity repository: the single authoritative view of courses and attendance records.

The repository owns both collections and is the only writer of the
"courses" and "attendanceRecords" store keys. Every mutation is a
read-modify-write of a whole collection:

    lock -> compute next value from the *current* collection -> write -> swap

The in-memory collection is only swapped after the store write succeeded, so
a failed write leaves the state exactly as it was. Each collection has its own
asyncio.Lock, which serializes mutations issued back to back without awaiting
(no lost updates).

Store failures never escape: they are logged, recorded in `error` and
reported through the return value (False / None).
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import Callable, Iterable, Optional, Sequence, Union

from myattendance.errors import AttendanceError, LoadError, NotFoundError, WriteError
from myattendance.model import (
    AttendanceRecord,
    AttendanceStatus,
    Course,
    dump_courses,
    dump_records,
    load_courses,
    load_records,
    new_id,
)
from myattendance.storage import COURSES_KEY, RECORDS_KEY, KeyValueStore

logger = logging.getLogger(__name__)

CoursesUpdate = Union[Iterable[Course], Callable[[Sequence[Course]], Iterable[Course]]]
RecordsUpdate = Union[
    Iterable[AttendanceRecord], Callable[[Sequence[AttendanceRecord]], Iterable[AttendanceRecord]]
]


class Repository:
    """
    Explicit handle passed to every screen / command that needs data.

    A new repository is "loading" until `load()` has completed; until then
    both collections are empty and mutations are refused.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store
        self._courses: tuple[Course, ...] = ()
        self._records: tuple[AttendanceRecord, ...] = ()
        self._is_loading = True
        self._load_failed = False
        self._error: Optional[AttendanceError] = None
        self._courses_lock = asyncio.Lock()
        self._records_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def courses(self) -> tuple[Course, ...]:
        return self._courses

    @property
    def attendance_records(self) -> tuple[AttendanceRecord, ...]:
        return self._records

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def error(self) -> Optional[AttendanceError]:
        return self._error

    @property
    def is_ready(self) -> bool:
        return not self._is_loading and not self._load_failed

    def get_course(self, course_id: str) -> Optional[Course]:
        for course in self._courses:
            if course.id == course_id:
                return course
        return None

    def require_course(self, course_id: str) -> Course:
        course = self.get_course(course_id)
        if course is None:
            raise NotFoundError(f"Course not found: {course_id}")
        return course

    def find_attendance(self, course_id: str, date: str) -> Optional[AttendanceRecord]:
        """
        Lookup step of the upsert protocol: the record for (course_id, date), if any.
        """
        return _find_by_natural_key(self._records, course_id, date)

    # ------------------------------------------------------------------
    # Load / refresh
    # ------------------------------------------------------------------

    async def load(self) -> bool:
        """
        Read both collections from the store (concurrently).

        Missing keys mean empty collections. Unreadable or malformed data
        leaves both collections empty and records a LoadError.
        """
        async with self._courses_lock, self._records_lock:
            self._is_loading = True
            self._error = None
            try:
                results = await asyncio.gather(
                    self._store.get(COURSES_KEY), self._store.get(RECORDS_KEY), return_exceptions=True
                )
                for result in results:
                    if isinstance(result, BaseException):
                        raise result
                courses_raw, records_raw = results
                courses = load_courses(courses_raw) if courses_raw else []
                records = load_records(records_raw) if records_raw else []
            except Exception as exc:
                logger.error("Error loading data: %s", exc, exc_info=not isinstance(exc, LoadError))
                self._courses = ()
                self._records = ()
                self._load_failed = True
                self._error = exc if isinstance(exc, LoadError) else LoadError(f"Error loading data: {exc}")
                return False
            finally:
                self._is_loading = False

            self._courses = tuple(courses)
            self._records = tuple(records)
            self._load_failed = False
            logger.debug("Loaded %d courses and %d attendance records", len(courses), len(records))
            return True

    async def refresh(self) -> bool:
        """
        Discard in-memory state and reload whatever the store currently holds.
        """
        return await self.load()

    refresh_data = refresh

    # ------------------------------------------------------------------
    # Whole-collection read-modify-write
    # ------------------------------------------------------------------

    async def set_courses(self, value: CoursesUpdate) -> bool:
        async with self._courses_lock:
            return await self._commit_courses(value)

    async def set_attendance_records(self, value: RecordsUpdate) -> bool:
        async with self._records_lock:
            return await self._commit_records(value)

    async def _commit_courses(self, value: CoursesUpdate) -> bool:
        # caller holds self._courses_lock
        if not self._check_ready("update courses"):
            return False
        next_courses = tuple(value(self._courses) if callable(value) else value)
        if not await self._write(COURSES_KEY, dump_courses, next_courses, "courses"):
            return False
        self._courses = next_courses
        return True

    async def _commit_records(self, value: RecordsUpdate) -> bool:
        # caller holds self._records_lock
        if not self._check_ready("update attendance records"):
            return False
        next_records = tuple(value(self._records) if callable(value) else value)
        if not await self._write(RECORDS_KEY, dump_records, next_records, "attendance records"):
            return False
        self._records = next_records
        return True

    def _check_ready(self, action: str) -> bool:
        if self._is_loading:
            logger.warning("Refusing to %s: data has not been loaded yet", action)
            return False
        if self._load_failed:
            logger.warning("Refusing to %s: last load failed (%s)", action, self._error)
            return False
        return True

    async def _write(self, key: str, dump: Callable[[Iterable], str], items: tuple, label: str) -> bool:
        try:
            payload = dump(items)
            await self._store.set(key, payload)
        except Exception as exc:
            logger.error("Error updating %s: %s", label, exc, exc_info=True)
            self._error = WriteError(f"Error updating {label}: {exc}")
            return False
        self._error = None
        return True

    # ------------------------------------------------------------------
    # Courses
    # ------------------------------------------------------------------

    async def add_course(self, course: Course) -> bool:
        return await self.set_courses(lambda prev: [*prev, course])

    async def update_course(self, course: Course) -> bool:
        """
        Replace the course with the same id. Unknown ids are a silent no-op.
        """
        return await self.set_courses(lambda prev: [course if c.id == course.id else c for c in prev])

    async def delete_course(self, course_id: str) -> bool:
        """
        Delete a course and every attendance record that references it.

        If the course write fails nothing else happens. If purging the records
        fails, the course is written back so no record is left orphaned.
        Calling this again for an already deleted course still purges its
        records.
        """
        async with self._courses_lock, self._records_lock:
            previous = self._courses
            if not await self._commit_courses(lambda prev: [c for c in prev if c.id != course_id]):
                return False

            if await self._commit_records(lambda prev: [r for r in prev if r.course_id != course_id]):
                logger.debug("Deleted course %s with its attendance records", course_id)
                return True

            records_error = self._error
            if await self._commit_courses(previous):
                logger.warning("Restored course %s after its records could not be deleted", course_id)
            else:
                logger.error(
                    "Could not restore course %s; its records stay orphaned until the delete is retried",
                    course_id,
                )
            self._error = records_error
            return False

    # ------------------------------------------------------------------
    # Attendance records
    # ------------------------------------------------------------------

    async def add_attendance_record(self, record: AttendanceRecord) -> bool:
        """
        Append a record. Refused when its course does not exist.
        """
        async with self._courses_lock, self._records_lock:
            if not self._check_course_exists(record.course_id, "add attendance record"):
                return False
            return await self._commit_records(lambda prev: [*prev, record])

    async def update_attendance_record(self, record: AttendanceRecord) -> bool:
        """
        Replace the record with the same id. Unknown ids are a silent no-op;
        a record pointing at a missing course is refused.
        """
        async with self._courses_lock, self._records_lock:
            if not self._check_course_exists(record.course_id, "update attendance record"):
                return False
            return await self._commit_records(lambda prev: [record if r.id == record.id else r for r in prev])

    async def delete_attendance_record(self, record_id: str) -> bool:
        return await self.set_attendance_records(lambda prev: [r for r in prev if r.id != record_id])

    def _check_course_exists(self, course_id: str, action: str) -> bool:
        # caller holds self._courses_lock
        if self.get_course(course_id) is None:
            logger.warning("Refusing to %s: course %s does not exist", action, course_id)
            return False
        return True

    async def mark_attendance(
        self, course_id: str, date: str, status: AttendanceStatus | str
    ) -> Optional[AttendanceRecord]:
        """
        Upsert by natural key (course_id, date).

        1. look for an existing record for (course_id, date)
        2. found     -> same id, new status (update)
        3. not found -> fresh id (add)

        Both steps run under the course and records locks (same order as
        delete_course) against the latest in-memory state, so rapid repeated
        marks never create duplicates and a mark never outlives its course.
        Returns the stored record, or None if the course does not exist or
        the write was rejected.
        """
        status = AttendanceStatus(status)
        async with self._courses_lock, self._records_lock:
            if not self._check_course_exists(course_id, "mark attendance"):
                return None
            existing = _find_by_natural_key(self._records, course_id, date)
            if existing is not None:
                record = dataclasses.replace(existing, status=status)
                ok = await self._commit_records(lambda prev: [record if r.id == record.id else r for r in prev])
            else:
                taken = {r.id for r in self._records}
                record_id = new_id()
                while record_id in taken:
                    record_id = new_id()
                record = AttendanceRecord(id=record_id, course_id=course_id, date=date, status=status)
                ok = await self._commit_records(lambda prev: [*prev, record])
            return record if ok else None


def _find_by_natural_key(
    records: Iterable[AttendanceRecord], course_id: str, date: str
) -> Optional[AttendanceRecord]:
    for record in records:
        if record.course_id == course_id and record.date == date:
            return record
    return None
