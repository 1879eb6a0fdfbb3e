"""
Noteful Backend — Note Request/Response Schemas
================================================

What:  The API contract for /api/notes.
Why:   Schemas are kept separate from the ORM model so the response never
       carries anything but the public fields, and so request bodies can be
       checked for field *presence* (partial update semantics).

Partial updates:
    `NoteWrite.model_fields_set` tells the service which fields the client
    actually sent. An omitted `folderId` leaves the folder alone, while
    `"folderId": ""` clears it.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import AliasChoices, Field, field_validator

from noteful.schemas.common import CamelModel


class NoteWrite(CamelModel):
    """Body of POST /api/notes and PUT /api/notes/{id}."""
    title: Optional[str] = Field(default=None, description="Required on create; cannot be cleared")
    content: Optional[str] = Field(default=None)
    folder_id: Optional[str] = Field(
        default=None,
        description="Folder id; empty string means 'no folder'",
    )
    tags: Optional[List[str]] = Field(default=None, description="Tag ids owned by the caller")
    owner_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("ownerId", "owner_id", "userId"),
        description="Must equal the caller's id when present",
    )


class NoteResponse(CamelModel):
    """
    Full representation of a note.

    `tags` is the set of referenced tag ids, sorted by tag name.
    """
    id: uuid.UUID
    title: str
    content: Optional[str] = None
    folder_id: Optional[uuid.UUID] = None
    tags: List[uuid.UUID] = Field(default_factory=list)
    owner_id: uuid.UUID
    created_at: datetime
    updated_at: datetime

    @field_validator("tags", mode="before")
    @classmethod
    def tag_objects_to_ids(cls, v):
        # ORM instances carry Tag objects; the API only exposes their ids
        return [getattr(tag, "id", tag) for tag in (v or [])]

