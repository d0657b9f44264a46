"""
Notes HTTP Handler - CRUD on the current user's notes.

Every route requires a verified account. Routes are plain ``def`` so the
blocking pymongo calls run in the threadpool.
"""
import math

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, field_validator

from modules.container import get_note_service
from modules.auth.http_handlers.dependencies import require_verified_user
from modules.notes.services.note_service import NoteService
from shared.http.errors import ValidationError, error_from_result
from shared.http.responses import success_response
from shared.models.common import is_object_id
from shared.models.notes_model import CONTENT_MAX_LENGTH, TITLE_MAX_LENGTH
from shared.models.users_model import UsersModel


router = APIRouter(prefix="/notes", tags=["Notes"])


# --- Request Models ---

class NoteRequest(BaseModel):
    """Request body for creating or updating a note."""
    title: str
    content: str

    @field_validator("title")
    @classmethod
    def check_title(cls, v: str) -> str:
        v = v.strip()
        if not 1 <= len(v) <= TITLE_MAX_LENGTH:
            raise ValueError(f"Title must be between 1 and {TITLE_MAX_LENGTH} characters")
        return v

    @field_validator("content")
    @classmethod
    def check_content(cls, v: str) -> str:
        v = v.strip()
        if not 1 <= len(v) <= CONTENT_MAX_LENGTH:
            raise ValueError(f"Content must be between 1 and {CONTENT_MAX_LENGTH} characters")
        return v


# --- Dependencies ---

def valid_note_id(note_id: str) -> str:
    """Dependency: reject malformed note ids before the body is looked at."""
    if not is_object_id(note_id):
        raise ValidationError(errors=[{"field": "id", "message": "Invalid note ID"}])
    return note_id


# --- Routes ---

@router.post("", status_code=201)
def create_note(
    body: NoteRequest,
    user: UsersModel = Depends(require_verified_user),
    note_service: NoteService = Depends(get_note_service),
):
    """Create a note."""
    result = note_service.create_note(user.user_id, body.title, body.content)

    if not result.ok:
        raise error_from_result(result)

    return success_response(
        result.message,
        {"note": result.value.to_public().to_response()},
        status_code=201,
    )


@router.get("")
def list_notes(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user: UsersModel = Depends(require_verified_user),
    note_service: NoteService = Depends(get_note_service),
):
    """List the current user's notes, newest first."""
    result = note_service.get_user_notes(user.user_id, page, limit)

    if not result.ok:
        raise error_from_result(result)

    notes_page = result.value
    return success_response(result.message, {
        "notes": [note.to_public().to_response() for note in notes_page.notes],
        "pagination": {
            "total": notes_page.total,
            "page": page,
            "limit": limit,
            "totalPages": math.ceil(notes_page.total / limit),
        },
    })


@router.put("/{note_id}")
def update_note(
    body: NoteRequest,
    user: UsersModel = Depends(require_verified_user),
    note_id: str = Depends(valid_note_id),
    note_service: NoteService = Depends(get_note_service),
):
    """Replace a note's title and content."""
    result = note_service.update_note(user.user_id, note_id, body.title, body.content)

    if not result.ok:
        raise error_from_result(result)

    return success_response(result.message, {"note": result.value.to_public().to_response()})


@router.delete("/{note_id}")
def delete_note(
    user: UsersModel = Depends(require_verified_user),
    note_id: str = Depends(valid_note_id),
    note_service: NoteService = Depends(get_note_service),
):
    """Delete a note."""
    result = note_service.delete_note(user.user_id, note_id)

    if not result.ok:
        raise error_from_result(result)

    return success_response(result.message)
