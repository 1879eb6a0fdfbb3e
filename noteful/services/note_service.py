"""
Noteful Backend — Note Service (Ownership & Integrity Engine)
==============================================================

What:  Create, read, search, update and delete notes for one trusted owner.
How:   Each write runs in three phases:

    ┌──────────────┐    ┌──────────────────┐    ┌──────────────┐
    │ Pure checks  │───▶│ Store checks     │───▶│ Mutation     │
    │ (rules.py)   │    │ (ownership.py)   │    │ + flush      │
    └──────────────┘    └──────────────────┘    └──────────────┘
      title, id format,   note visible to the     only reached when
      owner field         owner, folder/tags      every check passed
                          owned by the owner

    Nothing is mutated until all checks pass, so a rejected request leaves
    no partial write behind.

Design Decision:
    NoteService is stateless. It receives the session and the owner id on
    every call and only flushes; the write route commits (`commit_session`).
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from noteful.database import next_timestamp, utcnow
from noteful.exceptions import InternalError
from noteful.models.note import Note
from noteful.models.tag import Tag
from noteful.schemas.note import NoteResponse, NoteWrite
from noteful.services.ownership import (
    check_folder_reference,
    find_owned,
    get_owned,
    resolve_tag_references,
)
from noteful.services.rules import (
    check_id_format,
    check_id_list_format,
    check_same_owner,
    enforce,
    parse_id,
    require_id,
    require_owner,
    require_text,
)

logger = logging.getLogger(__name__)


def to_note_response(note: Note) -> NoteResponse:
    return NoteResponse(
        id=note.id,
        title=note.title,
        content=note.content,
        folder_id=note.folder_id,
        tags=note.tag_ids,
        owner_id=note.owner_id,
        created_at=note.created_at,
        updated_at=note.updated_at,
    )


def _folder_ref(raw: Optional[str]) -> Optional[uuid.UUID]:
    # "" and None both mean "no folder"
    return parse_id(raw) if raw else None


class NoteService:
    """
    Business rules for notes.

    Error contract:
        ValidationError     missing title, malformed ids
        ForbiddenError      body names a different owner
        NotFoundError       note absent or owned by someone else
        IntegrityError      folder/tag not owned by the caller
        InternalError       store failure (logged, generic to client)
    """

    async def create_note(
        self,
        db: AsyncSession,
        owner_id: uuid.UUID,
        body: NoteWrite,
    ) -> NoteResponse:
        """
        Creates a note owned by `owner_id`.

        The owner is always the trusted identity; a body that names anyone
        else is rejected rather than silently corrected.
        """
        enforce(
            require_owner(owner_id),
            require_text(body.title, "title", "missing title"),
            check_id_format(body.folder_id, "folderId", allow_empty=True),
            check_id_list_format(body.tags, "tags"),
            check_same_owner(
                body.owner_id, owner_id, "Cannot create a note on behalf of another user"
            ),
        )

        folder_id = _folder_ref(body.folder_id)
        tag_ids = [parse_id(tag_id) for tag_id in body.tags or []]

        try:
            enforce(await check_folder_reference(db, owner_id, folder_id))
            tag_check, tags = await resolve_tag_references(db, owner_id, tag_ids)
            enforce(tag_check)

            now = utcnow()
            note = Note(
                title=body.title,
                content=body.content,
                folder_id=folder_id,
                owner_id=owner_id,
                created_at=now,
                updated_at=now,
            )
            note.tags = tags
            db.add(note)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error creating note for owner %s: %s", owner_id, e, exc_info=True)
            raise InternalError(
                message="Could not create the note",
                context={"owner_id": str(owner_id), "error_type": type(e).__name__},
            ) from e

        logger.info("Note %s created (owner=%s, folder=%s, tags=%d)", note.id, owner_id, folder_id, len(tags))
        return to_note_response(note)

    async def get_note(
        self,
        db: AsyncSession,
        owner_id: uuid.UUID,
        note_id: str,
    ) -> NoteResponse:
        enforce(require_owner(owner_id))
        note_uuid = require_id(note_id)
        note = await get_owned(db, Note, owner_id, note_uuid, "note")
        return to_note_response(note)

    async def list_notes(
        self,
        db: AsyncSession,
        owner_id: uuid.UUID,
        search_term: Optional[str] = None,
        folder_id: Optional[str] = None,
        tag_id: Optional[str] = None,
    ) -> List[NoteResponse]:
        """
        Owner-scoped search, newest `updated_at` first.

        `search_term` is a case-insensitive substring of title OR content,
        matched literally. Other owners' notes are never considered, so a
        foreign folder or tag id simply matches nothing. No match returns
        an empty list, never an error.
        """
        enforce(require_owner(owner_id))

        query = select(Note).where(Note.owner_id == owner_id)

        if search_term:
            query = query.where(
                or_(
                    Note.title.icontains(search_term, autoescape=True),
                    Note.content.icontains(search_term, autoescape=True),
                )
            )
        if folder_id:
            query = query.where(Note.folder_id == require_id(folder_id, "folderId"))
        if tag_id:
            query = query.where(Note.tags.any(Tag.id == require_id(tag_id, "tagId")))

        query = query.order_by(Note.updated_at.desc(), Note.id)

        try:
            result = await db.execute(query)
            notes = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Database error listing notes for owner %s: %s", owner_id, e, exc_info=True)
            raise InternalError(
                message="Could not retrieve notes",
                context={"error_type": type(e).__name__},
            ) from e

        return [to_note_response(note) for note in notes]

    async def update_note(
        self,
        db: AsyncSession,
        owner_id: uuid.UUID,
        note_id: str,
        patch: NoteWrite,
    ) -> NoteResponse:
        """
        Applies a partial update.

        Only fields present in the body are touched. `folderId: ""` (or
        null) clears the folder; omitting it keeps the current one. Folder
        and tag ownership are re-checked whenever those fields are present.
        """
        fields = patch.model_fields_set

        checks = [require_owner(owner_id)]
        if "title" in fields:
            checks.append(require_text(patch.title, "title", "missing title"))
        if "folder_id" in fields:
            checks.append(check_id_format(patch.folder_id, "folderId", allow_empty=True))
        if "tags" in fields:
            checks.append(check_id_list_format(patch.tags, "tags"))
        if "owner_id" in fields:
            checks.append(
                check_same_owner(patch.owner_id, owner_id, "Cannot transfer note to another user")
            )
        enforce(*checks)
        note_uuid = require_id(note_id)

        # Visibility before integrity: a foreign note is a 404 whatever the body says
        note = await get_owned(db, Note, owner_id, note_uuid, "note")

        new_folder_id = note.folder_id
        if "folder_id" in fields:
            new_folder_id = _folder_ref(patch.folder_id)
            enforce(await check_folder_reference(db, owner_id, new_folder_id))

        new_tags = None
        if "tags" in fields:
            tag_check, new_tags = await resolve_tag_references(
                db, owner_id, [parse_id(tag_id) for tag_id in patch.tags or []]
            )
            enforce(tag_check)

        # ── All checks passed: apply ─────────────────────────────────────
        if "title" in fields:
            note.title = patch.title
        if "content" in fields:
            note.content = patch.content
        note.folder_id = new_folder_id
        if new_tags is not None:
            note.tags = new_tags
        note.updated_at = next_timestamp(note.updated_at)

        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error updating note %s: %s", note_uuid, e, exc_info=True)
            raise InternalError(
                message="Could not update the note",
                context={"note_id": str(note_uuid), "error_type": type(e).__name__},
            ) from e

        logger.info("Note %s updated (fields=%s)", note_uuid, sorted(fields))
        return to_note_response(note)

    async def delete_note(
        self,
        db: AsyncSession,
        owner_id: uuid.UUID,
        note_id: str,
    ) -> bool:
        """
        Deletes an owned note.

        Idempotent: an absent or foreign id changes nothing. Returns whether
        a note was actually removed; the route decides how to report that.
        """
        enforce(require_owner(owner_id))
        note_uuid = require_id(note_id)

        note = await find_owned(db, Note, owner_id, note_uuid)
        if note is None:
            logger.debug("Delete of note %s by owner %s matched nothing", note_uuid, owner_id)
            return False

        await db.delete(note)
        await db.flush()
        logger.info("Note %s deleted (owner=%s)", note_uuid, owner_id)
        return True


note_service = NoteService()
