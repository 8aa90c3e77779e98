"""
Fragment Notes MCP Server

Exposes tools for creating, editing, searching and deleting notes via the
Model Context Protocol.  Runs with SSE transport on the configured port.
"""

import logging
from datetime import UTC, datetime

from mcp.server.fastmcp import FastMCP

from fragment_notes.app import NotesApp
from fragment_notes.clock import SystemClock
from fragment_notes.config import Settings, settings
from fragment_notes.models import NEW_NOTE_TITLE, Note
from fragment_notes.storage import FileKeyValueStore, NotePersistence
from fragment_notes.store import NoteStore

logger = logging.getLogger("fragment_notes.server")


def build_app(config: Settings) -> NotesApp:
    """Wire storage, store and controller for the given settings and load the notes."""
    clock = SystemClock()
    persistence = NotePersistence(
        FileKeyValueStore(config.storage_dir),
        notes_key=config.notes_key,
        theme_key=config.theme_key,
    )
    store = NoteStore(persistence, clock=clock)
    store.load()
    return NotesApp(store, persistence, clock=clock, config=config)


# ---------------------------------------------------------------------------
# MCP server + application state
# ---------------------------------------------------------------------------
mcp = FastMCP("fragment-notes", host=settings.server_host, port=settings.server_port)
app = build_app(settings)


def _note_payload(note: Note) -> dict:
    payload = note.to_record()
    payload["displayDate"] = app.display_date(note)
    payload["highlighted"] = app.is_highlighted(note)
    return payload


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------


@mcp.tool()
def create_note(title: str = NEW_NOTE_TITLE, content: str = "") -> dict:
    """Create a new note.

    Use this tool when the user wants to write down or remember something.

    Args:
        title: Short title for the note. Defaults to "New Note".
        content: The note body.

    Returns:
        Dictionary with the created note and a status message.
    """
    note = app.create_note(title, content)
    logger.info("Tool create_note invoked — id=%s", note.id)
    return {"note": _note_payload(note), "message": app.status}


@mcp.tool()
def update_note(note_id: str, title: str | None = None, content: str | None = None) -> dict:
    """Immediately change a note's title and/or content.

    Fields left out keep their current value. An empty content string clears
    the note.

    Args:
        note_id: Id of the note to change.
        title: New title, optional.
        content: New content, optional.

    Returns:
        Dictionary with the updated note, or found=False for an unknown id.
    """
    note = app.store.update(note_id, {"title": title, "content": content})
    logger.info("Tool update_note invoked — id=%s, found=%s", note_id, note is not None)
    if note is None:
        return {"found": False, "note": None}
    return {"found": True, "note": _note_payload(note)}


@mcp.tool()
async def edit_note(note_id: str, title: str | None = None, content: str | None = None) -> dict:
    """Record an in-progress edit; it is saved once editing pauses.

    Use this tool while the user is still typing. Title edits settle after
    0.5 s of quiet, content edits after 0.3 s. Repeated edits replace each
    other and only the last one is saved.

    Args:
        note_id: Id of the note being edited.
        title: Current title text, optional.
        content: Current content text, optional.

    Returns:
        Dictionary with the number of edits waiting to be saved.
    """
    if title is not None:
        app.edit_title(note_id, title)
    if content is not None:
        app.edit_content(note_id, content)
    return {"pending_edits": app.pending_edits}


@mcp.tool()
def delete_note(note_id: str, confirm: bool = False) -> dict:
    """Delete a note. Requires explicit confirmation.

    Ask the user before calling this with confirm=True; deletion cannot be
    undone.

    Args:
        note_id: Id of the note to delete.
        confirm: Must be True for the note to be deleted.

    Returns:
        Dictionary with deleted=True/False and a message.
    """
    deleted = app.delete_note(note_id, confirm=lambda _prompt: confirm)
    logger.info("Tool delete_note invoked — id=%s, deleted=%s", note_id, deleted)
    if not confirm:
        return {"deleted": False, "message": "Deletion not confirmed."}
    if not deleted:
        return {"deleted": False, "message": f"Note {note_id} not found."}
    return {"deleted": True, "message": app.status}


@mcp.tool()
def list_notes(query: str = "") -> dict:
    """List notes, most recently modified first, optionally filtered by a search term.

    The search is a case-insensitive substring match on title and content.

    Args:
        query: Optional search text. Empty lists every note.

    Returns:
        Dictionary with matching notes, their count and the total note count.
    """
    if query.strip():
        app.search(query)
    else:
        app.clear_search()
    notes = app.view
    logger.info("Tool list_notes invoked — query='%s', found=%d", query, len(notes))
    return {
        "count": len(notes),
        "total": app.note_count_label,
        "empty_state": app.empty_state,
        "notes": [_note_payload(n) for n in notes],
    }


@mcp.tool()
def get_note(note_id: str) -> dict:
    """Fetch a single note by id.

    Args:
        note_id: Id of the note.

    Returns:
        Dictionary with found=True and the note, or found=False.
    """
    note = app.store.get(note_id)
    if note is None:
        return {"found": False, "note": None}
    return {"found": True, "note": _note_payload(note)}


@mcp.tool()
def word_count(text: str) -> dict:
    """Count the words in a piece of text the same way notes are counted."""
    return {"word_count": app.store.word_count_of(text)}


@mcp.tool()
def toggle_theme() -> dict:
    """Switch between the light and dark theme and remember the choice."""
    theme = app.toggle_theme()
    return {"theme": theme, "message": app.status}


@mcp.tool()
def health_check() -> dict:
    """Check whether the Fragment Notes server is healthy.

    Returns:
        Dictionary with server status, note count, and timestamp.
    """
    logger.info("Tool health_check invoked")
    return {
        "status": "healthy",
        "server": "fragment-notes",
        "total_notes": len(app.store),
        "pending_edits": app.pending_edits,
        "theme": app.theme,
        "timestamp": datetime.now(UTC).isoformat(),
    }


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
def main() -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    )
    logger.info("Starting Fragment Notes MCP server on port %d ...", settings.server_port)
    try:
        mcp.run(transport="sse")
    finally:
        app.close()


if __name__ == "__main__":
    main()
