"""
Notes Services Package.
"""
from modules.notes.services.note_service import NoteService

__all__ = ["NoteService"]
