"""
User and token schemas.

`UserResponse` is the only outward shape of a user; it has no password
field, so a digest cannot leak through serialization.
"""

import uuid
from typing import Optional

from pydantic import Field

from noteful.schemas.common import CamelModel


class UserCreate(CamelModel):
    username: Optional[str] = None
    password: Optional[str] = None
    fullname: Optional[str] = None


class UserResponse(CamelModel):
    id: uuid.UUID
    username: str
    fullname: Optional[str] = None


class LoginRequest(CamelModel):
    username: Optional[str] = None
    password: Optional[str] = None


class TokenResponse(CamelModel):
    auth_token: str = Field(description="Bearer token (JWT)")
