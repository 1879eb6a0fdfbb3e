"""Create users, folders, tags, notes and note_tags

Revision ID: 001
Revises: None
Create Date: 2026-10-18 00:00:00.000000+00:00

What:  Initial Noteful schema.
How:   Generic UUID columns (native UUID on PostgreSQL, CHAR(32) elsewhere)
       and TIMESTAMP WITH TIME ZONE for every timestamp.

Ownership layout:
    users ─┬─< folders      UNIQUE(owner_id, name)
           ├─< tags         UNIQUE(owner_id, name)
           └─< notes >── folders (SET NULL)
                 └─< note_tags >── tags (CASCADE)

Rollback: downgrade() drops every table (destructive).
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def _collection_table(name: str) -> None:
    """folders and tags share one shape: a name unique per owner."""
    op.create_table(
        name,
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "name",
            sa.String(255),
            nullable=False,
            comment="Display name, unique per owner (case-sensitive)",
        ),
        sa.Column("owner_id", sa.Uuid(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("owner_id", "name", name=f"uq_{name}_owner_name"),
    )
    op.create_index(f"ix_{name}_owner_id", name, ["owner_id"])


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "username",
            sa.String(255),
            nullable=False,
            comment="Login name; unique, no leading/trailing whitespace",
        ),
        sa.Column("password", sa.String(255), nullable=False, comment="bcrypt digest, never serialized"),
        sa.Column("fullname", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    _collection_table("folders")
    _collection_table("tags")

    op.create_table(
        "notes",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(500), nullable=False, comment="Required, never empty"),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("folder_id", sa.Uuid(), nullable=True),
        sa.Column("owner_id", sa.Uuid(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["folder_id"], ["folders.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_notes_folder_id", "notes", ["folder_id"])
    op.create_index("ix_notes_owner_id", "notes", ["owner_id"])
    # List and search order by updated_at DESC within one owner
    op.create_index("idx_notes_owner_updated_at", "notes", ["owner_id", "updated_at"])

    op.create_table(
        "note_tags",
        sa.Column("note_id", sa.Uuid(), nullable=False),
        sa.Column("tag_id", sa.Uuid(), nullable=False),
        sa.ForeignKeyConstraint(["note_id"], ["notes.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["tag_id"], ["tags.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("note_id", "tag_id"),
    )


def downgrade() -> None:
    op.drop_table("note_tags")
    op.drop_index("idx_notes_owner_updated_at", table_name="notes")
    op.drop_index("ix_notes_owner_id", table_name="notes")
    op.drop_index("ix_notes_folder_id", table_name="notes")
    op.drop_table("notes")
    for name in ("tags", "folders"):
        op.drop_index(f"ix_{name}_owner_id", table_name=name)
        op.drop_table(name)
    op.drop_index("ix_users_username", table_name="users")
    op.drop_table("users")
