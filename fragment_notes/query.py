"""Search and ordering over note collections.

All functions are pure: they never mutate the notes or the input sequence.
"""

from __future__ import annotations

from collections.abc import Iterable

from fragment_notes.models import Note


def matches(note: Note, query: str) -> bool:
    """Case-insensitive substring match on title or content.

    A blank query matches nothing, so an inactive search highlights no note.
    """
    if not query.strip():
        return False
    term = query.lower()
    return term in note.title.lower() or term in note.content.lower()


def filter_notes(notes: Iterable[Note], query: str) -> list[Note]:
    """Return the notes matching ``query``; a blank query returns every note."""
    if not query.strip():
        return list(notes)
    return [note for note in notes if matches(note, query)]


def sort_for_display(notes: Iterable[Note]) -> list[Note]:
    """Most recently modified first; ties keep their original order."""
    return sorted(notes, key=lambda note: note.last_modified, reverse=True)
