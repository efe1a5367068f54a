"""
Input validation used by the CLI and the interactive menu before any mutation.

The repository itself only relies on ids, so empty names or malformed dates
have to be rejected here.
"""

from __future__ import annotations

from datetime import datetime

from myattendance.errors import ValidationError
from myattendance.model import AttendanceStatus


def require_non_empty(value: str | None, field_name: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"{field_name} must not be empty")
    return value.strip()


def require_date(value: str | None) -> str:
    """
    Accept only 'YYYY-MM-DD' calendar dates (zero padded, no time part).
    """
    text = (value or "").strip()
    try:
        parsed = datetime.strptime(text, "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError(f"Invalid date {value!r}, expected YYYY-MM-DD") from None
    # strptime accepts '2024-1-2'; the stored form must be zero padded
    if parsed.isoformat() != text:
        raise ValidationError(f"Invalid date {value!r}, expected YYYY-MM-DD")
    return text


def parse_status(value: str | None) -> AttendanceStatus:
    text = (value or "").strip().lower()
    try:
        return AttendanceStatus(text)
    except ValueError:
        choices = ", ".join(s.value for s in AttendanceStatus)
        raise ValidationError(f"Invalid status {value!r}, expected one of: {choices}") from None
