"""Presentation-side controller for Fragment Notes.

Holds the search state, the debounced editing timers, the theme and the
status line. It keeps a reference to the single :class:`NoteStore` and
recomputes its view whenever the store changes.
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Callable, Hashable
from datetime import UTC, datetime, tzinfo
from typing import Any

from fragment_notes.clock import Clock, SystemClock
from fragment_notes.config import Settings, settings as default_settings
from fragment_notes.models import DEFAULT_TITLE, NEW_NOTE_TITLE, Note, millis_from_iso
from fragment_notes.query import filter_notes, matches, sort_for_display
from fragment_notes.storage import NotePersistence
from fragment_notes.store import NoteStore

logger = logging.getLogger("fragment_notes.app")

READY = "Ready"
DELETE_PROMPT = "Delete this note?"
_DAY_MS = 24 * 60 * 60 * 1000


def format_date(created_at: str, now_ms: int, tz: tzinfo | None = None) -> str:
    """Human friendly creation date: Today, Yesterday, N days ago or a short date."""
    created_ms = millis_from_iso(created_at)
    diff_days = math.ceil(abs(now_ms - created_ms) / _DAY_MS)
    if diff_days <= 1:
        return "Today"
    if diff_days == 2:
        return "Yesterday"
    if diff_days <= 7:
        return f"{diff_days - 1} days ago"

    created = datetime.fromtimestamp(created_ms / 1000, tz=UTC).astimezone(tz)
    now = datetime.fromtimestamp(now_ms / 1000, tz=UTC).astimezone(tz)
    label = f"{created:%b} {created.day}"
    if created.year != now.year:
        label += f", {created.year}"
    return label


class Debouncer:
    """Per-key trailing-edge debounce on the running asyncio loop.

    Scheduling a key again before its delay elapses replaces the pending
    call, so only the last call runs.
    """

    def __init__(self, delay: float) -> None:
        self._delay = delay
        self._pending: dict[Hashable, tuple[asyncio.TimerHandle, Callable[[], Any]]] = {}

    @property
    def pending(self) -> int:
        return len(self._pending)

    def schedule(self, key: Hashable, callback: Callable[[], Any]) -> None:
        loop = asyncio.get_running_loop()
        self.cancel(key)
        handle = loop.call_later(self._delay, self._fire, key)
        self._pending[key] = (handle, callback)

    def _fire(self, key: Hashable) -> None:
        _, callback = self._pending.pop(key)
        callback()

    def cancel(self, key: Hashable) -> None:
        entry = self._pending.pop(key, None)
        if entry is not None:
            entry[0].cancel()

    def flush(self) -> None:
        """Run every pending call now."""
        pending, self._pending = self._pending, {}
        for handle, callback in pending.values():
            handle.cancel()
            callback()


class StatusLine:
    """Shows a message for a while, then falls back to "Ready"."""

    def __init__(self, clock: Clock, timeout_ms: int) -> None:
        self._clock = clock
        self._timeout_ms = timeout_ms
        self._message = READY
        self._shown_at = 0

    def show(self, message: str) -> None:
        self._message = message
        self._shown_at = self._clock.now()

    @property
    def text(self) -> str:
        if self._message != READY and self._clock.now() - self._shown_at >= self._timeout_ms:
            self._message = READY
        return self._message


class NotesApp:
    """Orchestrates user actions against a :class:`NoteStore`."""

    def __init__(
        self,
        store: NoteStore,
        persistence: NotePersistence,
        clock: Clock | None = None,
        config: Settings | None = None,
    ) -> None:
        config = config or default_settings
        self.store = store
        self._persistence = persistence
        self._clock = clock or SystemClock()
        self._title_edits = Debouncer(config.title_debounce_seconds)
        self._content_edits = Debouncer(config.content_debounce_seconds)
        self._status = StatusLine(self._clock, int(config.status_timeout_seconds * 1000))

        self.search_active = False
        self.search_query = ""
        self.theme = persistence.load_theme()
        self._view: list[Note] = []

        self._unsubscribe = store.subscribe(lambda _store: self._refresh_view())
        self._refresh_view()

    # ------------------------------------------------------------------
    # View state
    # ------------------------------------------------------------------

    def _refresh_view(self) -> None:
        query = self.search_query if self.search_active else ""
        self._view = sort_for_display(filter_notes(self.store.notes, query))

    @property
    def view(self) -> list[Note]:
        """Notes to display, filtered by the active search and sorted by recency."""
        return list(self._view)

    @property
    def status(self) -> str:
        return self._status.text

    @property
    def note_count_label(self) -> str:
        count = len(self.store)
        return f"{count} note{'' if count == 1 else 's'}"

    @property
    def empty_state(self) -> str | None:
        """Placeholder to show instead of the list, if any.

        ``"empty"`` when there are no notes, ``"no-results"`` when the active
        search hides every note.
        """
        if self._view:
            return None
        return "empty" if len(self.store) == 0 else "no-results"

    def is_highlighted(self, note: Note) -> bool:
        return self.search_active and matches(note, self.search_query)

    def display_date(self, note: Note, tz: tzinfo | None = None) -> str:
        return format_date(note.created_at, self._clock.now(), tz)

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def toggle_search(self) -> bool:
        self.search_active = not self.search_active
        if not self.search_active:
            self.clear_search()
        return self.search_active

    def search(self, query: str) -> list[Note]:
        if not query.strip():
            self.clear_search()
            return self.view
        self.search_active = True
        self.search_query = query
        self._refresh_view()
        self._status.show(f"Found {len(self._view)} note(s)")
        return self.view

    def clear_search(self) -> None:
        self.search_query = ""
        self._refresh_view()

    # ------------------------------------------------------------------
    # Notes
    # ------------------------------------------------------------------

    def create_note(self, title: str = NEW_NOTE_TITLE, content: str = "") -> Note:
        note = self.store.create(title, content)
        self._status.show("Note created")
        return note

    def delete_note(self, note_id: str, confirm: Callable[[str], bool]) -> bool:
        """Delete after ``confirm(prompt)`` agrees. Pending edits for the note are dropped."""
        if not confirm(DELETE_PROMPT):
            return False
        self._title_edits.cancel(note_id)
        self._content_edits.cancel(note_id)
        if not self.store.delete(note_id):
            return False
        self._status.show("Note deleted")
        return True

    def edit_title(self, note_id: str, value: str) -> None:
        """Save a title after the title input has been idle for the debounce interval."""
        self._title_edits.schedule(
            note_id,
            lambda: self.store.update(note_id, {"title": value or DEFAULT_TITLE}),
        )

    def edit_content(self, note_id: str, value: str) -> None:
        """Save content after the editor has been idle for the debounce interval."""
        self._content_edits.schedule(
            note_id,
            lambda: self.store.update(note_id, {"content": value}),
        )

    @property
    def pending_edits(self) -> int:
        return self._title_edits.pending + self._content_edits.pending

    def flush_edits(self) -> None:
        self._title_edits.flush()
        self._content_edits.flush()

    def close(self) -> None:
        """Flush pending edits and stop observing the store."""
        self.flush_edits()
        self._unsubscribe()

    # ------------------------------------------------------------------
    # Theme
    # ------------------------------------------------------------------

    def toggle_theme(self) -> str:
        self.theme = "light" if self.theme == "dark" else "dark"
        self._persistence.save_theme(self.theme)
        self._status.show(f"{self.theme.capitalize()} theme enabled")
        logger.info("Theme switched to %s", self.theme)
        return self.theme
