"""In-memory note collection backed by NotePersistence."""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterable, Mapping
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import Any

from fragment_notes.clock import Clock, SystemClock, TimestampIdSource
from fragment_notes.metrics import NOTE_OPERATIONS, NOTES_STORED
from fragment_notes.models import (
    DEFAULT_TITLE,
    NEW_NOTE_TITLE,
    Note,
    count_words,
    iso_from_millis,
    millis_from_iso,
)
from fragment_notes.query import filter_notes, sort_for_display
from fragment_notes.storage import NotePersistence

logger = logging.getLogger("fragment_notes.store")

Listener = Callable[["NoteStore"], None]

EDITABLE_FIELDS = frozenset({"title", "content"})


def _text_or_default(value: Any, default: str) -> str:
    if value is None or value == "":
        return default
    if isinstance(value, str):
        return value
    return str(value)


def _millis_or_none(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, float) and math.isfinite(value) and value >= 0:
        return int(value)
    if isinstance(value, str) and value.strip().isdecimal():
        return int(value.strip())
    return None


def _created_millis_or_none(value: Any) -> int | None:
    """Creation instant of a stored ``date``.

    Accepts ISO-8601, the browser's ``Date.toString()`` and ``toUTCString()``
    forms, and bare epoch millis.
    """
    if not isinstance(value, str):
        millis = _millis_or_none(value)
    else:
        text = value.strip()
        try:
            return millis_from_iso(text)
        except ValueError:
            pass
        try:
            moment = datetime.strptime(text.split(" (")[0], "%a %b %d %Y %H:%M:%S GMT%z")
        except ValueError:
            try:
                moment = parsedate_to_datetime(text)
            except (TypeError, ValueError, IndexError):
                moment = None
        if moment is not None:
            if moment.tzinfo is None:
                moment = moment.replace(tzinfo=UTC)
            return millis_from_iso(moment.isoformat())
        millis = _millis_or_none(text)
    if millis is None:
        return None
    try:
        iso_from_millis(millis)
    except (OverflowError, ValueError):
        return None
    return millis
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, float) and value >= 0:
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


class NoteStore:
    """Owns the canonical note collection.

    Every mutation persists the full collection and then notifies listeners
    registered with :meth:`subscribe`. Notes are kept in insertion order with
    the newest note first; :meth:`get_all` and :meth:`get_filtered` return
    the display order instead.
    """

    def __init__(
        self,
        persistence: NotePersistence,
        clock: Clock | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._persistence = persistence
        self._clock = clock or SystemClock()
        self._new_id = id_factory or TimestampIdSource()
        self._notes: list[Note] = []
        self._listeners: list[Listener] = []

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener(store)`` after every change. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _changed(self) -> None:
        NOTES_STORED.set(len(self._notes))
        for listener in list(self._listeners):
            listener(self)

    def _persist(self) -> None:
        self._persistence.save_notes(self._notes)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def notes(self) -> list[Note]:
        """Notes in persisted order (newest insertion first)."""
        return list(self._notes)

    def __len__(self) -> int:
        return len(self._notes)

    def get(self, note_id: str) -> Note | None:
        for note in self._notes:
            if note.id == note_id:
                return note
        return None

    def get_all(self) -> list[Note]:
        """All notes, most recently modified first."""
        return sort_for_display(self._notes)

    def get_filtered(self, query: str) -> list[Note]:
        """Notes matching ``query``, most recently modified first."""
        return sort_for_display(filter_notes(self._notes, query))

    @staticmethod
    def count_words(text: str) -> int:
        return count_words(text)

    def word_count_of(self, text: str) -> int:
        return count_words(text)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _unique_id(self, taken: set[str]) -> str:
        note_id = self._new_id()
        while note_id in taken:
            note_id = self._new_id()
        return note_id

    def create(self, title: str = NEW_NOTE_TITLE, content: str = "") -> Note:
        """Create a note, insert it at the front and persist."""
        now = self._clock.now()
        note = Note(
            id=self._unique_id({n.id for n in self._notes}),
            title=_text_or_default(title, DEFAULT_TITLE),
            content=_text_or_default(content, ""),
            created_at=iso_from_millis(now),
            last_modified=now,
        )
        self._notes.insert(0, note)
        self._persist()
        NOTE_OPERATIONS.labels(operation="create", status="ok").inc()
        logger.info("Created note %s — '%s'", note.id, note.title)
        self._changed()
        return note

    def update(self, note_id: str, fields: Mapping[str, Any] | None = None) -> Note | None:
        """Merge ``fields`` onto the note with ``note_id``.

        Only ``title`` and ``content`` are editable; ``None`` values count as
        absent. An explicit empty ``content`` clears the note, an empty
        ``title`` falls back to "Untitled". Unknown ids are ignored and
        return ``None``.
        """
        note = self.get(note_id)
        if note is None:
            NOTE_OPERATIONS.labels(operation="update", status="not_found").inc()
            logger.warning("Note %s not found for update", note_id)
            return None

        fields = dict(fields or {})
        ignored = sorted(set(fields) - EDITABLE_FIELDS)
        if ignored:
            logger.warning("Ignoring non-editable fields %s for note %s", ignored, note_id)

        title = fields.get("title")
        if title is not None:
            note.title = _text_or_default(title, DEFAULT_TITLE)
        content = fields.get("content")
        if content is not None:
            note.content = content if isinstance(content, str) else str(content)
        note.last_modified = max(self._clock.now(), note.last_modified)

        self._persist()
        NOTE_OPERATIONS.labels(operation="update", status="ok").inc()
        logger.debug("Updated note %s (%d words)", note.id, note.word_count)
        self._changed()
        return note

    def delete(self, note_id: str) -> bool:
        """Remove the note with ``note_id``. Returns False when it does not exist."""
        remaining = [n for n in self._notes if n.id != note_id]
        if len(remaining) == len(self._notes):
            NOTE_OPERATIONS.labels(operation="delete", status="not_found").inc()
            logger.warning("Note %s not found for deletion", note_id)
            return False
        self._notes = remaining
        self._persist()
        NOTE_OPERATIONS.labels(operation="delete", status="ok").inc()
        logger.info("Deleted note %s", note_id)
        self._changed()
        return True

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def normalize(self, raw_records: Iterable[Any]) -> list[Note]:
        """Turn stored records of unknown shape into valid notes.

        Field defaults:

        ============  ==============================================
        id            fresh id (also when blank or already taken)
        title         "Untitled"
        content       ""
        date          now when unreadable; legacy formats become ISO
        lastModified  now; raised to the creation instant if earlier
        ============  ==============================================

        No record is dropped and stored word counts are ignored.
        """
        notes: list[Note] = []
        seen: set[str] = set()
        for index, raw in enumerate(raw_records):
            if not isinstance(raw, Mapping):
                logger.warning("Stored note #%d is a %s, using defaults", index, type(raw).__name__)
                raw = {}
            notes.append(self._normalize_record(raw, seen))
            seen.add(notes[-1].id)
        return notes

    def _normalize_record(self, raw: Mapping[str, Any], taken: set[str]) -> Note:
        note_id = _text_or_default(raw.get("id"), "")
        if not note_id.strip() or note_id in taken:
            fresh = self._unique_id(taken)
            if note_id:
                logger.warning("Duplicate note id %s reassigned to %s", note_id, fresh)
            note_id = fresh

        created_at = raw.get("date")
        try:
            created_millis = millis_from_iso(created_at)
        except (TypeError, ValueError):
            created_millis = _created_millis_or_none(created_at)
            if created_millis is None:
                if created_at:
                    logger.warning("Note %s has unreadable date %r, resetting", note_id, created_at)
                created_millis = self._clock.now()
            created_at = iso_from_millis(created_millis)

        last_modified = _millis_or_none(raw.get("lastModified"))
        if last_modified is None:
            last_modified = self._clock.now()
        last_modified = max(last_modified, created_millis)

        return Note(
            id=note_id,
            title=_text_or_default(raw.get("title"), DEFAULT_TITLE),
            content=_text_or_default(raw.get("content"), ""),
            created_at=created_at,
            last_modified=last_modified,
        )

    def load(self) -> list[Note]:
        """Replace the collection with the persisted one.

        Missing or corrupt storage yields an empty collection.
        """
        records = self._persistence.load_notes()
        self._notes = self.normalize(records) if records else []
        NOTE_OPERATIONS.labels(operation="load", status="ok").inc()
        logger.info("Loaded %d notes", len(self._notes))
        self._changed()
        return self.notes
