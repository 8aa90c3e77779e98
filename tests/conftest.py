"""Shared fixtures for the Fragment Notes tests."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

import pytest

# Keep the server module's import-time storage out of the home directory.
os.environ.setdefault(
    "FRAGMENT_NOTES_STORAGE_DIR", tempfile.mkdtemp(prefix="fragment-notes-tests-")
)

from fragment_notes.config import Settings  # noqa: E402
from fragment_notes.models import iso_from_millis  # noqa: E402
from fragment_notes.storage import (  # noqa: E402
    FileKeyValueStore,
    MemoryKeyValueStore,
    NotePersistence,
)
from fragment_notes.store import NoteStore  # noqa: E402

START_MS = 1_700_000_000_000  # 2023-11-14T22:13:20Z


class FakeClock:
    """Manually advanced clock; every reading moves forward by ``step`` ms."""

    def __init__(self, start: int = START_MS, step: int = 1) -> None:
        self.current = start
        self.step = step

    def now(self) -> int:
        value = self.current
        self.current += self.step
        return value

    def now_iso(self) -> str:
        return iso_from_millis(self.now())

    def advance(self, millis: int) -> None:
        self.current += millis


class CountingIds:
    """Deterministic ids: n1, n2, ..."""

    def __init__(self) -> None:
        self.issued = 0

    def __call__(self) -> str:
        self.issued += 1
        return f"n{self.issued}"


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def kv() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture()
def persistence(kv: MemoryKeyValueStore) -> NotePersistence:
    return NotePersistence(kv)


@pytest.fixture()
def store(persistence: NotePersistence, clock: FakeClock) -> NoteStore:
    return NoteStore(persistence, clock=clock, id_factory=CountingIds())


@pytest.fixture()
def file_persistence(tmp_path: Path) -> NotePersistence:
    return NotePersistence(FileKeyValueStore(tmp_path / "storage"))


@pytest.fixture()
def fast_settings(tmp_path: Path) -> Settings:
    """Settings with short debounce windows so timer tests stay quick."""
    return Settings(
        storage_dir=tmp_path / "storage",
        title_debounce_seconds=0.05,
        content_debounce_seconds=0.03,
        status_timeout_seconds=2.0,
    )
