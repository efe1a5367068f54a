class AttendanceError(Exception):
    """Base exception for everything raised or recorded by myattendance."""


class LoadError(AttendanceError):
    """Stored data could not be read or parsed."""


class WriteError(AttendanceError):
    """A collection could not be written to the store."""


class ValidationError(AttendanceError):
    """Raised when user input is invalid before it reaches the repository."""


class NotFoundError(AttendanceError):
    """Raised when a caller explicitly requires an entity that does not exist."""
