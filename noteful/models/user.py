"""
Noteful Backend — User SQLAlchemy Model
========================================

What:  The `users` table backing the Identity Store.
Why:   Every folder, tag and note hangs off a user through `owner_id`.

The password column only ever holds a bcrypt digest. No response schema
exposes it.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from noteful.database import Base, UTCDateTime, utcnow


class User(Base):
    """An account. Immutable after signup (no update/delete path)."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    # Unique index doubles as the login lookup path
    username: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
        comment="Login name; unique, no leading/trailing whitespace",
    )

    password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="bcrypt digest, never serialized",
    )

    fullname: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        default=None,
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        default=utcnow,
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}')>"
