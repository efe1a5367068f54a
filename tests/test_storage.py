"""
Unit tests for the key-value stores.

Storage contract:
- Missing file / missing key -> None
- Values round-trip unchanged as strings
- A corrupted file raises instead of being treated as empty
"""

import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from myattendance.storage import HOME_ENV_VAR, JsonFileStore, MemoryStore, default_store_path


class TestJsonFileStore(unittest.IsolatedAsyncioTestCase):
    async def test_missing_file_returns_none(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            store = JsonFileStore(Path(d) / "missing.json")
            self.assertIsNone(await store.get("courses"))
            self.assertEqual(await store.list_keys(), [])

    async def test_set_get_remove_roundtrip(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            p = Path(d) / "nested" / "store.json"
            store = JsonFileStore(p)
            await store.set("courses", '[{"id": "c1"}]')
            await store.set("attendanceRecords", "[]")

            self.assertEqual(await store.get("courses"), '[{"id": "c1"}]')
            self.assertEqual(await store.list_keys(), ["attendanceRecords", "courses"])

            # a second instance sees the durable contents
            self.assertEqual(await JsonFileStore(p).get("attendanceRecords"), "[]")

            await store.remove("courses")
            self.assertIsNone(await store.get("courses"))
            await store.remove("courses")

            await store.clear()
            self.assertEqual(await store.list_keys(), [])
            self.assertEqual(json.loads(p.read_text(encoding="utf-8")), {})

    async def test_write_leaves_no_temp_files(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            store = JsonFileStore(Path(d) / "store.json")
            await store.set("courses", "[]")
            self.assertEqual(os.listdir(d), ["store.json"])

    async def test_corrupted_file_raises(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            p = Path(d) / "store.json"
            p.write_text("{broken", encoding="utf-8")
            with self.assertRaises(ValueError):
                await JsonFileStore(p).get("courses")


class TestMemoryStore(unittest.IsolatedAsyncioTestCase):
    async def test_basic_operations(self) -> None:
        store = MemoryStore({"courses": "[]"})
        self.assertEqual(await store.get("courses"), "[]")
        await store.set("attendanceRecords", "[]")
        self.assertEqual(await store.list_keys(), ["attendanceRecords", "courses"])
        await store.remove("courses")
        self.assertIsNone(await store.get("courses"))
        await store.clear()
        self.assertEqual(await store.list_keys(), [])


class TestDefaultPath(unittest.TestCase):
    def test_env_var_overrides_home(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            with mock.patch.dict(os.environ, {HOME_ENV_VAR: d}):
                self.assertEqual(default_store_path(), Path(d) / "store.json")

    def test_default_is_in_home_directory(self) -> None:
        env = {k: v for k, v in os.environ.items() if k != HOME_ENV_VAR}
        with mock.patch.dict(os.environ, env, clear=True):
            self.assertEqual(default_store_path(), Path.home() / ".myattendance" / "store.json")


if __name__ == "__main__":
    unittest.main()
