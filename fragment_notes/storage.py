"""Key-value storage layer for Fragment Notes."""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Iterable, Literal, Protocol

from fragment_notes.metrics import STORAGE_LOAD_FAILURES
from fragment_notes.models import NOTE_LIST, Note

logger = logging.getLogger("fragment_notes.storage")

Theme = Literal["light", "dark"]
THEMES: tuple[str, ...] = ("light", "dark")
DEFAULT_THEME: Theme = "light"

_KEY_PATTERN = re.compile(r"[A-Za-z0-9_][A-Za-z0-9_.-]*")


class KeyValueStore(Protocol):
    """Synchronous local key-value storage holding string values."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryKeyValueStore:
    """Dict-backed store for tests and throwaway sessions."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class FileKeyValueStore:
    """Stores each key as a UTF-8 file inside ``directory``.

    A write lands in a temporary file next to the target and is moved into
    place with ``os.replace``, so readers see either the old value or the
    new one.
    """

    def __init__(self, directory: Path) -> None:
        self._dir = Path(directory)
        self._dir.mkdir(parents=True, exist_ok=True)

    @property
    def directory(self) -> Path:
        return self._dir

    def _path(self, key: str) -> Path:
        if not _KEY_PATTERN.fullmatch(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self._dir / key

    def get(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            logger.error("Stored value for '%s' is not valid UTF-8: %s", key, exc)
            return None

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{key}.", suffix=".tmp", dir=self._dir)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(value)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


class NotePersistence:
    """Reads and writes the note collection and theme preference."""

    def __init__(
        self,
        kv: KeyValueStore,
        notes_key: str = "notes",
        theme_key: str = "theme",
    ) -> None:
        self._kv = kv
        self._notes_key = notes_key
        self._theme_key = theme_key

    # ------------------------------------------------------------------
    # Notes
    # ------------------------------------------------------------------

    def save_notes(self, notes: Iterable[Note]) -> None:
        """Serialize the whole collection and overwrite the stored value."""
        payload = NOTE_LIST.dump_json(list(notes), by_alias=True).decode("utf-8")
        self._kv.set(self._notes_key, payload)

    def load_notes(self) -> list[Any] | None:
        """Return the raw stored records, or ``None`` if absent or unreadable."""
        raw = self._kv.get(self._notes_key)
        if raw is None or not raw.strip():
            logger.info("No stored notes under '%s'", self._notes_key)
            return None
        try:
            records = json.loads(raw)
        except json.JSONDecodeError as exc:
            STORAGE_LOAD_FAILURES.inc()
            logger.error("Failed to parse stored notes: %s — starting fresh", exc)
            return None
        if not isinstance(records, list):
            STORAGE_LOAD_FAILURES.inc()
            logger.error(
                "Stored notes are a %s, expected a list — starting fresh",
                type(records).__name__,
            )
            return None
        return records

    # ------------------------------------------------------------------
    # Theme
    # ------------------------------------------------------------------

    def save_theme(self, name: str) -> None:
        if name not in THEMES:
            raise ValueError(f"Unknown theme: {name!r}")
        self._kv.set(self._theme_key, name)

    def load_theme(self) -> str:
        name = self._kv.get(self._theme_key)
        if name is None:
            return DEFAULT_THEME
        if name not in THEMES:
            logger.warning("Ignoring unknown stored theme '%s'", name)
            return DEFAULT_THEME
        return name
