"""
ORM models. Importing this package registers every table with `Base.metadata`
(Alembic autogenerate and `Database.create_all` rely on that).
"""

from noteful.models.user import User
from noteful.models.folder import Folder
from noteful.models.tag import Tag
from noteful.models.note import Note, note_tags

__all__ = ["User", "Folder", "Tag", "Note", "note_tags"]
