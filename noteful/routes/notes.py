"""
Noteful Backend — Notes Route Handlers
=======================================

What:  /api/notes list/search, detail, create, update, delete.
How:   Extracts the trusted owner from the bearer token, delegates to
       NoteService, maps the result to a status code.

Status mapping done here (everything else comes from exception handlers):
    POST   → 201 + Location: /api/notes/{id}
    DELETE → 204, or 404 when the id was well-formed but matched nothing
"""

import logging

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from noteful.database import commit_session, get_db_session
from noteful.exceptions import NotFoundError
from noteful.schemas.common import ErrorResponse
from noteful.schemas.note import NoteResponse, NoteWrite
from noteful.security import AuthUser, get_current_user
from noteful.services.note_service import note_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notes", tags=["Notes"])

ERRORS = {
    400: {"description": "Malformed input or id", "model": ErrorResponse},
    401: {"description": "Missing or invalid token", "model": ErrorResponse},
}


@router.get(
    "",
    response_model=list[NoteResponse],
    responses=ERRORS,
    summary="List or search the caller's notes",
)
async def list_notes(
    search_term: str | None = Query(
        default=None,
        alias="searchTerm",
        description="Case-insensitive substring of title or content",
    ),
    folder_id: str | None = Query(default=None, alias="folderId"),
    tag_id: str | None = Query(default=None, alias="tagId"),
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> list[NoteResponse]:
    """Results are ordered by `updatedAt`, newest first; no match is `[]`."""
    return await note_service.list_notes(
        db,
        owner_id=user.id,
        search_term=search_term,
        folder_id=folder_id,
        tag_id=tag_id,
    )


@router.get(
    "/{note_id}",
    response_model=NoteResponse,
    responses={**ERRORS, 404: {"description": "Note not found", "model": ErrorResponse}},
    summary="Get one of the caller's notes",
)
async def get_note(
    note_id: str,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> NoteResponse:
    # note_id is a plain str so a malformed id becomes our 400, not FastAPI's 422
    return await note_service.get_note(db, owner_id=user.id, note_id=note_id)


@router.post(
    "",
    response_model=NoteResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        **ERRORS,
        403: {"description": "Body names another owner", "model": ErrorResponse},
        422: {"description": "Folder or tag not owned by the caller", "model": ErrorResponse},
    },
    summary="Create a note",
)
async def create_note(
    body: NoteWrite,
    request: Request,
    response: Response,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> NoteResponse:
    note = await note_service.create_note(db, owner_id=user.id, body=body)
    await commit_session(db)
    response.headers["Location"] = f"{request.url.path.rstrip('/')}/{note.id}"
    return note


@router.put(
    "/{note_id}",
    response_model=NoteResponse,
    responses={
        **ERRORS,
        403: {"description": "Attempted owner transfer", "model": ErrorResponse},
        404: {"description": "Note not found", "model": ErrorResponse},
        422: {"description": "Folder or tag not owned by the caller", "model": ErrorResponse},
    },
    summary="Partially update a note",
)
async def update_note(
    note_id: str,
    body: NoteWrite,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> NoteResponse:
    """
    Only fields present in the body change. Send `"folderId": ""` to take
    the note out of its folder.
    """
    note = await note_service.update_note(db, owner_id=user.id, note_id=note_id, patch=body)
    await commit_session(db)
    return note


@router.delete(
    "/{note_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={**ERRORS, 404: {"description": "Note not found", "model": ErrorResponse}},
    summary="Delete a note",
)
async def delete_note(
    note_id: str,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    if not await note_service.delete_note(db, owner_id=user.id, note_id=note_id):
        raise NotFoundError(resource="note", resource_id=note_id)
    await commit_session(db)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
