"""
Noteful Backend — Folder SQLAlchemy Model
==========================================

What:  The `folders` table. A folder groups notes; a note sits in at most one.

Table Design Rationale:
    - owner_id: strict partition key, every query filters on it
    - UNIQUE(owner_id, name): names are unique per owner, not globally.
      Two users can both have a "Work" folder.
    - Deleting a folder never deletes notes; the service unsets
      `notes.folder_id` first (ON DELETE SET NULL is a backstop for rows
      written outside the service).
"""

import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from noteful.database import Base, UTCDateTime, utcnow


class Folder(Base):
    __tablename__ = "folders"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Display name, unique per owner (case-sensitive)",
    )

    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("owner_id", "name", name="uq_folders_owner_name"),
    )

    def __repr__(self) -> str:
        return f"<Folder(id={self.id}, name='{self.name}', owner_id={self.owner_id})>"
