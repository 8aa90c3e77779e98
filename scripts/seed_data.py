"""Seed a Fragment Notes storage directory with sample notes for demos.

Writes straight to the key-value files, so the MCP server does not need to
be running.

Usage:
    python scripts/seed_data.py [--storage-dir ~/.fragment_notes] [--theme dark]
"""

from __future__ import annotations

import argparse
from pathlib import Path

from fragment_notes.config import settings
from fragment_notes.storage import FileKeyValueStore, NotePersistence
from fragment_notes.store import NoteStore

# Each entry: (title, content)
SAMPLE_NOTES: list[tuple[str, str]] = [
    (
        "Shopping",
        "milk eggs bread\ncoffee beans",
    ),
    (
        "Meeting Notes",
        "Discussed migrating the notes app to a key-value store. "
        "Decision: keep the whole collection in one key and write it atomically.",
    ),
    (
        "Reading List",
        "Designing Data-Intensive Applications\nThe Pragmatic Programmer",
    ),
    (
        "Project Ideas",
        "A tiny markdown previewer. A CLI that tallies words per note.",
    ),
    ("Scratch", ""),
]


def seed(store: NoteStore, notes: list[tuple[str, str]] = SAMPLE_NOTES) -> int:
    """Create ``notes`` in ``store``; returns how many were added."""
    for title, content in notes:
        store.create(title, content)
    return len(notes)


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed Fragment Notes with sample data")
    parser.add_argument("--storage-dir", type=Path, default=settings.storage_dir)
    parser.add_argument("--theme", choices=("light", "dark"), default=None)
    parser.add_argument(
        "--replace",
        action="store_true",
        help="Discard existing notes instead of adding to them",
    )
    args = parser.parse_args()

    persistence = NotePersistence(
        FileKeyValueStore(args.storage_dir),
        notes_key=settings.notes_key,
        theme_key=settings.theme_key,
    )
    store = NoteStore(persistence)
    if not args.replace:
        store.load()
    existing = len(store)

    added = seed(store)
    if args.theme:
        persistence.save_theme(args.theme)

    print(f"Seeded {added} notes into {args.storage_dir} ({existing} already present)")


if __name__ == "__main__":
    main()
