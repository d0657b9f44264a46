"""
Note Service - Per-user note CRUD with MongoDB persistence.

Every query is scoped by owner: another user's note id behaves exactly
like an unknown id.
"""
from datetime import datetime
from typing import Callable, Optional

from pymongo import DESCENDING, ReturnDocument
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from shared.persistance.mongo_db import mongo_pool
from shared.models.notes_model import NoteCreate, NotesModel, NotesPage
from shared.models.common import utc_now
from shared.models.result import Err, ErrorKind, Ok, Result
from shared.services.logger import get_logger
from config.settings import settings


logger = get_logger(__name__)

NOT_FOUND = "Note not found"


class NoteService:
    """Service for managing a user's notes."""

    def __init__(
        self,
        collection: Optional[Collection] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize note service.

        Args:
            collection: MongoDB collection (injected for testing, otherwise uses pool)
            clock: Returns the current UTC time
        """
        self._collection = collection
        self._clock = clock

    @property
    def collection(self) -> Collection:
        """Get notes collection (lazy-loaded from pool if not injected)."""
        if self._collection is None:
            self._collection = mongo_pool.get_collection(
                settings.NOTES_COLLECTION,
                settings.MONGO_DB,
            )
        return self._collection

    def create_note(self, user_id: str, title: str, content: str) -> Result:
        """
        Create a note owned by user_id.

        Returns:
            Ok(NotesModel) or Err(OPERATION_FAILED)
        """
        note = NoteCreate(user_id=user_id, title=title, content=content).to_note(self._clock())

        try:
            self.collection.insert_one(note.to_document())
        except PyMongoError:
            logger.exception(f"Create note failed for user {user_id}")
            return Err(kind=ErrorKind.OPERATION_FAILED, message="Failed to create note")

        logger.info(f"Note created: {note.note_id}")
        return Ok(value=note, message="Note created successfully")

    def get_user_notes(self, user_id: str, page: int = 1, limit: int = 10) -> Result:
        """
        List a page of user_id's notes, newest first.

        Returns:
            Ok(NotesPage) or Err(OPERATION_FAILED)
        """
        skip = (page - 1) * limit

        try:
            docs = (
                self.collection.find({"user_id": user_id})
                .sort("created_at", DESCENDING)
                .skip(skip)
                .limit(limit)
            )
            notes = [NotesModel.from_document(doc) for doc in docs]
            total = self.collection.count_documents({"user_id": user_id})
        except PyMongoError:
            logger.exception(f"Listing notes failed for user {user_id}")
            return Err(kind=ErrorKind.OPERATION_FAILED, message="Failed to retrieve notes")

        return Ok(value=NotesPage(notes=notes, total=total), message="Notes retrieved successfully")

    def update_note(self, user_id: str, note_id: str, title: str, content: str) -> Result:
        """
        Replace title and content of one of user_id's notes.

        Returns:
            Ok(NotesModel), Err(NOTE_NOT_FOUND) or Err(OPERATION_FAILED)
        """
        now = self._clock()

        try:
            doc = self.collection.find_one_and_update(
                {"note_id": note_id, "user_id": user_id},
                {"$set": {
                    "title": title.strip(),
                    "content": content.strip(),
                    "updated_at": now,
                }},
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError:
            logger.exception(f"Update note {note_id} failed")
            return Err(kind=ErrorKind.OPERATION_FAILED, message="Failed to update note")

        if not doc:
            return Err(kind=ErrorKind.NOTE_NOT_FOUND, message=NOT_FOUND)

        logger.info(f"Note updated: {note_id}")
        return Ok(value=NotesModel.from_document(doc), message="Note updated successfully")

    def delete_note(self, user_id: str, note_id: str) -> Result:
        """
        Delete one of user_id's notes.

        Returns:
            Ok, Err(NOTE_NOT_FOUND) or Err(OPERATION_FAILED)
        """
        try:
            result = self.collection.delete_one({"note_id": note_id, "user_id": user_id})
        except PyMongoError:
            logger.exception(f"Delete note {note_id} failed")
            return Err(kind=ErrorKind.OPERATION_FAILED, message="Failed to delete note")

        if result.deleted_count == 0:
            return Err(kind=ErrorKind.NOTE_NOT_FOUND, message=NOT_FOUND)

        logger.info(f"Note deleted: {note_id}")
        return Ok(message="Note deleted successfully")
