"""
Models package - Pydantic models for data validation.
"""
from shared.models.users_model import (
    AuthProvider,
    OtpChallenge,
    UserCreate,
    UserPublic,
    UsersModel,
)
from shared.models.notes_model import (
    NoteCreate,
    NotePublic,
    NotesModel,
    NotesPage,
)
from shared.models.result import Err, ErrorKind, Ok, Result

__all__ = [
    "AuthProvider",
    "OtpChallenge",
    "UserCreate",
    "UserPublic",
    "UsersModel",
    "NoteCreate",
    "NotePublic",
    "NotesModel",
    "NotesPage",
    "Err",
    "ErrorKind",
    "Ok",
    "Result",
]
