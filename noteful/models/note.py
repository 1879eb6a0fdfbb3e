"""
Noteful Backend — Note SQLAlchemy Model
========================================

What:  The `notes` table plus the `note_tags` association table.
Who:   Used by NoteService for CRUD and by the folder/tag services for
       cascade reference removal.

Table Design Rationale:
    - owner_id: every read and write is filtered on it; the service layer
      never issues a notes query without it
    - folder_id: optional reference to a folder of the SAME owner. The
      database cannot express "same owner", so the service checks it
      before every write.
    - note_tags: many-to-many set of tag references. Primary key on
      (note_id, tag_id) collapses duplicates.
    - (owner_id, updated_at) index: list/search results are ordered by it

Query Patterns:
    - List: SELECT ... WHERE owner_id = :owner ORDER BY updated_at DESC
    - Search: ... AND (lower(title) LIKE :term OR lower(content) LIKE :term)
    - Folder filter: ... AND folder_id = :folder
    - Tag filter: ... AND EXISTS (SELECT 1 FROM note_tags WHERE tag_id = :tag)
"""

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import Column, ForeignKey, Index, String, Table, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from noteful.database import Base, UTCDateTime, utcnow
from noteful.models.tag import Tag


note_tags = Table(
    "note_tags",
    Base.metadata,
    Column("note_id", Uuid, ForeignKey("notes.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", Uuid, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
)


class Note(Base):
    """
    A note owned by exactly one user.

    Lifecycle:
        1. Created with a validated title and owner-checked references
        2. Updated by partial patches; updated_at strictly increases
        3. Folder/tag deletion clears references here, never the note
        4. Deleted only by its owner
    """

    __tablename__ = "notes"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    title: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
        comment="Required, never empty",
    )

    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True, default=None)

    folder_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("folders.id", ondelete="SET NULL"),
        nullable=True,
        default=None,
        index=True,
    )

    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    # selectin: async sessions cannot lazy-load on attribute access
    tags: Mapped[List[Tag]] = relationship(
        Tag,
        secondary=note_tags,
        lazy="selectin",
        order_by=Tag.name,
    )

    __table_args__ = (
        # B-tree scans backwards for ORDER BY updated_at DESC
        Index("idx_notes_owner_updated_at", "owner_id", "updated_at"),
    )

    @property
    def tag_ids(self) -> List[uuid.UUID]:
        # Freshly assigned collections keep request order, so sort here too
        return [tag.id for tag in sorted(self.tags, key=lambda tag: tag.name)]

    def __repr__(self) -> str:
        return f"<Note(id={self.id}, title='{self.title}', owner_id={self.owner_id})>"
