"""
Noteful Backend — Owner-Scoped Lookups & Reference Resolution
==============================================================

What:  The store-facing half of the ownership rules.
       - `find_owned` / `get_owned`: fetch one entity *through its owner*
       - `check_folder_reference` / `resolve_tag_references`: confirm that
         every folder/tag a note points at belongs to the same owner

Information hiding:
    Lookups always filter on `owner_id` in SQL. An entity owned by someone
    else therefore looks exactly like one that does not exist. `get_owned`
    raises the same NotFoundError for both, and list queries simply do not
    return it.
"""

import uuid
from typing import List, Optional, Sequence, Tuple, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from noteful.exceptions import IntegrityError, NotFoundError
from noteful.models.folder import Folder
from noteful.models.tag import Tag
from noteful.services.rules import PASSED, CheckResult, failed, unique_ids

ModelT = TypeVar("ModelT")


async def find_owned(
    db: AsyncSession,
    model: Type[ModelT],
    owner_id: uuid.UUID,
    entity_id: uuid.UUID,
) -> Optional[ModelT]:
    result = await db.execute(
        select(model).where(model.id == entity_id, model.owner_id == owner_id)
    )
    return result.scalar_one_or_none()


async def get_owned(
    db: AsyncSession,
    model: Type[ModelT],
    owner_id: uuid.UUID,
    entity_id: uuid.UUID,
    resource: str,
) -> ModelT:
    """Like `find_owned`, but absent/foreign raises NotFoundError (404)."""
    entity = await find_owned(db, model, owner_id, entity_id)
    if entity is None:
        raise NotFoundError(resource=resource, resource_id=str(entity_id))
    return entity


async def check_folder_reference(
    db: AsyncSession,
    owner_id: uuid.UUID,
    folder_id: Optional[uuid.UUID],
) -> CheckResult:
    """No folder is always fine; otherwise it must be one of the owner's."""
    if folder_id is None:
        return PASSED
    if await find_owned(db, Folder, owner_id, folder_id) is None:
        return failed(
            IntegrityError(
                message="folder not found",
                field="folderId",
                missing_ids=[folder_id],
            )
        )
    return PASSED


async def resolve_tag_references(
    db: AsyncSession,
    owner_id: uuid.UUID,
    tag_ids: Sequence[uuid.UUID],
) -> Tuple[CheckResult, List[Tag]]:
    """
    Loads the owner's tags for `tag_ids` in one query.

    Returns the check outcome and, when it passed, the Tag objects in
    request order. Every id that did not resolve is listed in the error.
    """
    wanted = unique_ids(tag_ids)
    if not wanted:
        return PASSED, []

    result = await db.execute(
        select(Tag).where(Tag.owner_id == owner_id, Tag.id.in_(wanted))
    )
    found = {tag.id: tag for tag in result.scalars().all()}
    missing = [tag_id for tag_id in wanted if tag_id not in found]
    if missing:
        return (
            failed(IntegrityError(message="tag not found", field="tags", missing_ids=missing)),
            [],
        )
    return PASSED, [found[tag_id] for tag_id in wanted]
