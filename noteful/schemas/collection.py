"""
Folder and Tag request/response schemas.

Both kinds share one shape: a name unique per owner. The request side is
deliberately loose (everything optional, plain strings) so the service can
answer with its own ValidationError/ForbiddenError instead of a generic
schema error.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, Field

from noteful.schemas.common import CamelModel


class CollectionWrite(CamelModel):
    """Body of POST and PUT on /api/folders and /api/tags."""
    name: Optional[str] = Field(default=None, description="Display name, unique per owner")
    # Older clients send the owner as `userId`
    owner_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("ownerId", "owner_id", "userId"),
        description="Must equal the caller's id when present",
    )


class CollectionResponse(CamelModel):
    id: uuid.UUID
    name: str
    owner_id: uuid.UUID
    created_at: datetime
    updated_at: datetime


class FolderResponse(CollectionResponse):
    pass


class TagResponse(CollectionResponse):
    pass
