"""
Noteful Backend — Folder & Tag Services
========================================

What:  Owner-scoped CRUD for the two "collection" kinds a note can point at,
       with per-owner name uniqueness and cascade reference removal.

Folders and tags share every rule except what deletion does to notes, so
one base class carries the rules and each subclass supplies `_unlink_notes`:

    FolderService._unlink_notes   notes.folder_id = NULL for the owner's notes
    TagService._unlink_notes      drop the tag from the owner's notes' tag sets

Cascade is reference removal, never deletion: the notes survive, and any
field other than the removed reference (updated_at included) is untouched.

Atomicity:
    The unlink and the delete are flushed in the request's session and
    committed together by the write route (`commit_session`). A crash between the two
    rolls both back, so a deleted folder/tag id is never left referenced.

Uniqueness:
    Checked with a query before the write, and backed by the
    UNIQUE(owner_id, name) constraint. A duplicate-key fault from the store
    (two concurrent creates racing past the pre-check) is translated into the
    same ConflictError.
"""

import logging
import uuid
from typing import List, Optional, Type, Union

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError as DuplicateKeyError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from noteful.database import next_timestamp, utcnow
from noteful.exceptions import ConflictError, InternalError
from noteful.models.folder import Folder
from noteful.models.note import Note
from noteful.models.tag import Tag
from noteful.schemas.collection import (
    CollectionResponse,
    CollectionWrite,
    FolderResponse,
    TagResponse,
)
from noteful.services.ownership import find_owned, get_owned
from noteful.services.rules import (
    check_same_owner,
    enforce,
    require_id,
    require_owner,
    require_text,
)

logger = logging.getLogger(__name__)

CollectionModel = Union[Folder, Tag]


class CollectionService:
    """Shared rules for folders and tags. Subclasses set the class attributes."""

    model: Type[CollectionModel]
    response_model: Type[CollectionResponse]
    resource: str

    def _to_response(self, entity: CollectionModel) -> CollectionResponse:
        return self.response_model(
            id=entity.id,
            name=entity.name,
            owner_id=entity.owner_id,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )

    async def _ensure_name_free(
        self,
        db: AsyncSession,
        owner_id: uuid.UUID,
        name: str,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        query = select(self.model.id).where(
            self.model.owner_id == owner_id,
            self.model.name == name,
        )
        if exclude_id is not None:
            query = query.where(self.model.id != exclude_id)
        if (await db.execute(query)).first() is not None:
            raise ConflictError(
                message="name already exists",
                context={"resource": self.resource, "name": name},
            )

    async def _flush(self, db: AsyncSession, name: str) -> None:
        """Flushes, mapping a duplicate-key fault to ConflictError."""
        try:
            await db.flush()
        except DuplicateKeyError as e:
            logger.info("Duplicate %s name '%s' rejected by the store", self.resource, name)
            raise ConflictError(
                message="name already exists",
                context={"resource": self.resource, "name": name},
            ) from e
        except SQLAlchemyError as e:
            logger.error("Database error writing %s: %s", self.resource, e, exc_info=True)
            raise InternalError(
                message=f"Could not save the {self.resource}",
                context={"error_type": type(e).__name__},
            ) from e

    async def _unlink_notes(
        self,
        db: AsyncSession,
        owner_id: uuid.UUID,
        entity: CollectionModel,
    ) -> int:
        raise NotImplementedError

    # ── Operations ───────────────────────────────────────────────────────

    async def list_items(self, db: AsyncSession, owner_id: uuid.UUID) -> List[CollectionResponse]:
        """All of the owner's entities, sorted by name."""
        enforce(require_owner(owner_id))
        result = await db.execute(
            select(self.model)
            .where(self.model.owner_id == owner_id)
            .order_by(self.model.name)
        )
        return [self._to_response(entity) for entity in result.scalars().all()]

    async def get_item(
        self,
        db: AsyncSession,
        owner_id: uuid.UUID,
        item_id: str,
    ) -> CollectionResponse:
        enforce(require_owner(owner_id))
        entity = await get_owned(db, self.model, owner_id, require_id(item_id), self.resource)
        return self._to_response(entity)

    async def create_item(
        self,
        db: AsyncSession,
        owner_id: uuid.UUID,
        body: CollectionWrite,
    ) -> CollectionResponse:
        enforce(
            require_owner(owner_id),
            require_text(body.name, "name", "missing name"),
            check_same_owner(
                body.owner_id,
                owner_id,
                f"Cannot create a {self.resource} on behalf of another user",
            ),
        )
        await self._ensure_name_free(db, owner_id, body.name)

        now = utcnow()
        entity = self.model(name=body.name, owner_id=owner_id, created_at=now, updated_at=now)
        db.add(entity)
        await self._flush(db, body.name)

        logger.info("%s %s created (owner=%s)", self.resource.capitalize(), entity.id, owner_id)
        return self._to_response(entity)

    async def update_item(
        self,
        db: AsyncSession,
        owner_id: uuid.UUID,
        item_id: str,
        body: CollectionWrite,
    ) -> CollectionResponse:
        """Renames an owned entity. The name is required; ownership never moves."""
        enforce(require_owner(owner_id))
        entity_id = require_id(item_id)
        enforce(
            require_text(body.name, "name", "missing name"),
            check_same_owner(
                body.owner_id,
                owner_id,
                f"Cannot transfer {self.resource} to a different user",
            ),
        )

        entity = await get_owned(db, self.model, owner_id, entity_id, self.resource)
        await self._ensure_name_free(db, owner_id, body.name, exclude_id=entity_id)

        entity.name = body.name
        entity.updated_at = next_timestamp(entity.updated_at)
        await self._flush(db, body.name)

        logger.info("%s %s renamed (owner=%s)", self.resource.capitalize(), entity_id, owner_id)
        return self._to_response(entity)

    async def delete_item(
        self,
        db: AsyncSession,
        owner_id: uuid.UUID,
        item_id: str,
    ) -> bool:
        """
        Deletes an owned entity and removes every reference to it from the
        owner's notes. Absent/foreign ids are a no-op (returns False) and
        touch no notes.
        """
        enforce(require_owner(owner_id))
        entity_id = require_id(item_id)

        entity = await find_owned(db, self.model, owner_id, entity_id)
        if entity is None:
            return False

        try:
            unlinked = await self._unlink_notes(db, owner_id, entity)
            # References go first so the row is unreferenced when it is deleted
            await db.flush()
            await db.delete(entity)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error deleting %s %s: %s", self.resource, entity_id, e, exc_info=True)
            raise InternalError(
                message=f"Could not delete the {self.resource}",
                context={"resource_id": str(entity_id), "error_type": type(e).__name__},
            ) from e

        logger.info(
            "%s %s deleted (owner=%s, notes unlinked=%d)",
            self.resource.capitalize(), entity_id, owner_id, unlinked,
        )
        return True


class FolderService(CollectionService):
    model = Folder
    response_model = FolderResponse
    resource = "folder"

    async def _unlink_notes(self, db: AsyncSession, owner_id: uuid.UUID, entity: Folder) -> int:
        result = await db.execute(
            select(Note).where(Note.owner_id == owner_id, Note.folder_id == entity.id)
        )
        notes = result.scalars().all()
        for note in notes:
            note.folder_id = None
        return len(notes)


class TagService(CollectionService):
    model = Tag
    response_model = TagResponse
    resource = "tag"

    async def _unlink_notes(self, db: AsyncSession, owner_id: uuid.UUID, entity: Tag) -> int:
        result = await db.execute(
            select(Note).where(Note.owner_id == owner_id, Note.tags.any(Tag.id == entity.id))
        )
        notes = result.scalars().all()
        for note in notes:
            note.tags = [tag for tag in note.tags if tag.id != entity.id]
        return len(notes)


folder_service = FolderService()
tag_service = TagService()
