"""
Notes Model - Pydantic model for user notes.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from shared.models.common import CamelModel, ensure_utc, generate_object_id, utc_now


TITLE_MAX_LENGTH = 200
CONTENT_MAX_LENGTH = 5000


class NotePublic(CamelModel):
    """Note as returned to its owner."""
    id: str
    title: str
    content: str
    created_at: datetime
    updated_at: datetime


class NotesModel(BaseModel):
    """
    Note model for MongoDB persistence.

    - note_id: Unique note identifier (24-char hex)
    - user_id: Owner; a note is never shared
    - title / content: trimmed text
    - created_at / updated_at: equal at creation, updated_at moves on edit
    """
    note_id: str = Field(description="Unique note ID")
    user_id: str = Field(description="User ID who owns this note")
    title: str = Field(min_length=1, max_length=TITLE_MAX_LENGTH)
    content: str = Field(min_length=1, max_length=CONTENT_MAX_LENGTH)
    created_at: datetime
    updated_at: datetime

    @field_validator("created_at", "updated_at", mode="after")
    @classmethod
    def as_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    def to_document(self) -> dict:
        """Convert to MongoDB document format."""
        return {
            "_id": self.note_id,
            "note_id": self.note_id,
            "user_id": self.user_id,
            "title": self.title,
            "content": self.content,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_document(cls, doc: dict) -> "NotesModel":
        """Create model from MongoDB document."""
        return cls(
            note_id=doc.get("note_id") or str(doc.get("_id")),
            user_id=doc["user_id"],
            title=doc["title"],
            content=doc["content"],
            created_at=doc["created_at"],
            updated_at=doc["updated_at"],
        )

    def to_public(self) -> NotePublic:
        return NotePublic(
            id=self.note_id,
            title=self.title,
            content=self.content,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class NoteCreate(BaseModel):
    """Model for creating a new note."""
    user_id: str
    title: str
    content: str

    def to_note(self, now: Optional[datetime] = None) -> NotesModel:
        """Convert to full note model with generated fields."""
        now = now or utc_now()
        return NotesModel(
            note_id=generate_object_id(),
            user_id=self.user_id,
            title=self.title.strip(),
            content=self.content.strip(),
            created_at=now,
            updated_at=now,
        )


class NotesPage(BaseModel):
    """One page of a user's notes plus the owner's total count."""
    notes: list[NotesModel]
    total: int
