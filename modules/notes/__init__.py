"""
Notes Module - Per-user note CRUD.

Structure:
- services/: Business logic (NoteService)
- http_handlers/: FastAPI routes for this module
"""
from modules.notes.services.note_service import NoteService

__all__ = ["NoteService"]
