"""
Persistent key-value storage for the user's courses and attendance records.

This module manages the file:

    ~/.myattendance/store.json      (or $MYATTENDANCE_HOME/store.json)

The file holds one JSON object mapping string keys to string values:

    {"courses": "[...]", "attendanceRecords": "[...]"}

Design rationale:
- the repository only needs an async get/set/remove/clear/list_keys contract
- every value is an already-serialized string, so the store never has to know
  what a Course or AttendanceRecord looks like
- writes replace the whole file atomically (temp file + os.replace), so a crash
  mid-write keeps the previous contents intact
"""

from __future__ import annotations

import asyncio
import json
import os
import tempfile
from pathlib import Path
from typing import Protocol

COURSES_KEY = "courses"
RECORDS_KEY = "attendanceRecords"

HOME_ENV_VAR = "MYATTENDANCE_HOME"


class KeyValueStore(Protocol):
    async def get(self, key: str) -> str | None:
        raise NotImplementedError

    async def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    async def remove(self, key: str) -> None:
        raise NotImplementedError

    async def clear(self) -> None:
        raise NotImplementedError

    async def list_keys(self) -> list[str]:
        raise NotImplementedError


def default_store_path() -> Path:
    """
    Return the default path of store.json.

    $MYATTENDANCE_HOME wins if set, otherwise a hidden folder in the user's
    home directory is used.

    Using a function instead of a constant makes testing easier,
    because tests can override the environment or pass a path directly.
    """
    home = os.environ.get(HOME_ENV_VAR, "").strip()
    base_dir = Path(home).expanduser() if home else Path.home() / ".myattendance"
    return base_dir / "store.json"


class JsonFileStore:
    """
    Durable store backed by a single JSON file.

    Blocking file I/O runs in a worker thread so the event loop stays free.
    Errors (OSError, corrupted file) propagate to the caller; the repository
    decides what they mean.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        # Use custom path if provided (mainly for tests),
        # otherwise fall back to the default location
        self.path = Path(path) if path is not None else default_store_path()

    def _read_all(self) -> dict[str, str]:
        # First run: file does not exist yet -> empty store
        if not self.path.exists():
            return {}
        data = json.loads(self.path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not contain a JSON object")
        return data

    def _write_all(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".store-", suffix=".json", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _set_sync(self, key: str, value: str) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def _remove_sync(self, key: str) -> None:
        data = self._read_all()
        if key in data:
            del data[key]
            self._write_all(data)

    async def get(self, key: str) -> str | None:
        data = await asyncio.to_thread(self._read_all)
        value = data.get(key)
        if value is not None and not isinstance(value, str):
            raise ValueError(f"Value for key {key!r} is not a string")
        return value

    async def set(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._set_sync, key, value)

    async def remove(self, key: str) -> None:
        await asyncio.to_thread(self._remove_sync, key)

    async def clear(self) -> None:
        await asyncio.to_thread(self._write_all, {})

    async def list_keys(self) -> list[str]:
        data = await asyncio.to_thread(self._read_all)
        return sorted(data)


class MemoryStore:
    """
    In-process store (tests, throwaway sessions). Nothing survives the process.
    """

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value

    async def remove(self, key: str) -> None:
        self.data.pop(key, None)

    async def clear(self) -> None:
        self.data.clear()

    async def list_keys(self) -> list[str]:
        return sorted(self.data)
