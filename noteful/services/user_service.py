"""
Noteful Backend — User Service (Identity Store)
================================================

What:  Signup, lookup and credential checks for user accounts.
Who:   Used only by the auth/users routes. The notes/folders/tags services
       never see credentials; they get the owner id from the verified token.

bcrypt is deliberately slow, so hashing and checking run in Starlette's
threadpool instead of blocking the event loop.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError as DuplicateKeyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from noteful.exceptions import AuthenticationError, ConflictError, ValidationError
from noteful.models.user import User
from noteful.schemas.user import UserCreate, UserResponse
from noteful.security import AuthUser, hash_password, verify_password
from noteful.services.rules import (
    check_no_surrounding_whitespace,
    check_password,
    enforce,
    require_text,
)

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Incorrect username or password"


def to_user_response(user: User) -> UserResponse:
    return UserResponse(id=user.id, username=user.username, fullname=user.fullname)


def to_auth_user(user: User) -> AuthUser:
    return AuthUser(id=user.id, username=user.username, fullname=user.fullname)


class UserService:
    def __init__(self, bcrypt_rounds: int = 10):
        self.bcrypt_rounds = bcrypt_rounds

    async def find_by_username(self, db: AsyncSession, username: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()

    async def find_by_id(self, db: AsyncSession, user_id: uuid.UUID) -> Optional[User]:
        result = await db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def verify_password(self, user: User, password: str) -> bool:
        return await run_in_threadpool(verify_password, password, user.password)

    async def create(self, db: AsyncSession, body: UserCreate) -> UserResponse:
        """
        Registers a new account.

        Rules, checked in this order:
            username present, password present           → 400
            password 8..72 characters                    → 400
            no leading/trailing whitespace in either     → 400
            username not taken                           → 409
        """
        enforce(
            require_text(body.username, "username", "Missing `username` field"),
            require_text(body.password, "password", "Missing `password` field"),
        )
        enforce(
            check_password(body.password),
            check_no_surrounding_whitespace(body.username, "username"),
            check_no_surrounding_whitespace(body.password, "password"),
        )

        if await self.find_by_username(db, body.username) is not None:
            raise ConflictError(message="The username already exists", context={"username": body.username})

        digest = await run_in_threadpool(hash_password, body.password, self.bcrypt_rounds)
        user = User(username=body.username, password=digest, fullname=body.fullname)
        db.add(user)
        try:
            await db.flush()
        except DuplicateKeyError as e:
            raise ConflictError(message="The username already exists", context={"username": body.username}) from e

        logger.info("User %s registered (%s)", user.id, user.username)
        return to_user_response(user)

    async def authenticate(self, db: AsyncSession, username: Optional[str], password: Optional[str]) -> User:
        """
        Checks login credentials.

        Missing fields are a 400; an unknown user and a wrong password give
        the same 401 so the response does not reveal which usernames exist.
        """
        if not username or not password:
            raise ValidationError(message="Missing `username` or `password` field")

        user = await self.find_by_username(db, username)
        if user is None or not await self.verify_password(user, password):
            logger.info("Failed login for username '%s'", username)
            raise AuthenticationError(message=INVALID_CREDENTIALS)
        return user
