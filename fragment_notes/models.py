"""Pydantic models for Fragment Notes."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, computed_field

DEFAULT_TITLE = "Untitled"
NEW_NOTE_TITLE = "New Note"

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_MILLISECOND = timedelta(milliseconds=1)


def count_words(text: str) -> int:
    """Number of whitespace-separated tokens in ``text`` (0 when blank)."""
    return len(text.split())


def iso_from_millis(millis: int) -> str:
    """Format epoch milliseconds as an ISO-8601 UTC string, e.g. ``2024-01-05T10:00:00.000Z``."""
    moment = _EPOCH + timedelta(milliseconds=millis)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def millis_from_iso(value: str) -> int:
    """Parse an ISO-8601 string into epoch milliseconds.

    Naive timestamps are read as UTC. Raises ``ValueError`` when the string
    is not ISO-8601.
    """
    moment = datetime.fromisoformat(value)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return (moment - _EPOCH) // _MILLISECOND


class Note(BaseModel):
    """A single note.

    Serialized field names follow the persisted layout
    (``date``, ``lastModified``, ``wordCount``).
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., min_length=1, description="Opaque unique identifier")
    title: str = Field(DEFAULT_TITLE, description="Note title")
    content: str = Field("", description="Note body")
    created_at: str = Field(..., alias="date", description="ISO-8601 creation timestamp")
    last_modified: int = Field(
        ..., alias="lastModified", ge=0, description="Epoch millis of the last mutation"
    )

    @computed_field(alias="wordCount")  # type: ignore[prop-decorator]
    @property
    def word_count(self) -> int:
        """Word count of the current content."""
        return count_words(self.content)

    @property
    def created_millis(self) -> int:
        """Creation timestamp in epoch millis."""
        return millis_from_iso(self.created_at)

    def to_record(self) -> dict:
        """Return the persisted representation of this note."""
        return self.model_dump(by_alias=True)


NOTE_LIST = TypeAdapter(list[Note])
