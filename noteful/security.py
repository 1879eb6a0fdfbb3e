"""
Noteful Backend — Identity & Token Boundary
============================================

What:  Password hashing (bcrypt), bearer token signing/verification
       (python-jose JWT) and the FastAPI dependency that turns an
       `Authorization: Bearer ...` header into a trusted identity.
Who:   The auth routes issue tokens; every notes/folders/tags route depends
       on `get_current_user` and hands `user.id` to the services as owner.

Token layout:
    {
        "sub": "<username>",
        "user": {"id": "...", "username": "...", "fullname": "..."},
        "iat": 1700000000,
        "exp": 1700604800,
        "jti": "<random uuid>"
    }
    `jti` makes every issued token distinct, so a refresh within the same
    second still yields a new token.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import BaseModel, ValidationError as PydanticValidationError

from noteful.config import Settings
from noteful.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

# auto_error=False: missing credentials become our AuthenticationError (401)
# instead of FastAPI's bare 403
bearer_scheme = HTTPBearer(auto_error=False)

# bcrypt only looks at the first 72 bytes
BCRYPT_MAX_BYTES = 72


class AuthUser(BaseModel):
    """The identity claim carried inside a token."""
    id: uuid.UUID
    username: str
    fullname: Optional[str] = None


def hash_password(password: str, rounds: int = 10) -> str:
    password_bytes = password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    return bcrypt.hashpw(password_bytes, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    password_bytes = plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    try:
        return bcrypt.checkpw(password_bytes, hashed_password.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt digest
        logger.warning("Password check against a malformed digest")
        return False


class TokenIssuer:
    """
    Signs and verifies bearer tokens.

    Built once per app from Settings and kept on `app.state.token_issuer`.
    """

    def __init__(self, settings: Settings):
        self.secret = settings.jwt_secret
        self.algorithm = settings.jwt_algorithm
        self.expiry = timedelta(minutes=settings.jwt_expiry_minutes)

    def issue(self, user: AuthUser, expires_delta: Optional[timedelta] = None) -> str:
        now = datetime.now(timezone.utc)
        claims = {
            "sub": user.username,
            "user": user.model_dump(mode="json"),
            "iat": now,
            "exp": now + (expires_delta if expires_delta is not None else self.expiry),
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(claims, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> AuthUser:
        """
        Decodes and checks a token (signature, expiry, subject binding).

        Raises:
            AuthenticationError: for any token that is not fully valid
        """
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
            user = AuthUser(**payload["user"])
        except (JWTError, KeyError, TypeError, PydanticValidationError) as e:
            raise AuthenticationError(
                message="Invalid or expired token",
                context={"reason": type(e).__name__},
            ) from e

        # Token must be bound to exactly one user
        if payload.get("sub") != user.username:
            raise AuthenticationError(
                message="Invalid or expired token",
                context={"reason": "subject_mismatch"},
            )
        return user

    def refresh(self, token: str) -> str:
        """Issues a fresh token for the holder of a still-valid one."""
        return self.issue(self.verify(token))


def get_token_issuer(request: Request) -> TokenIssuer:
    return request.app.state.token_issuer


async def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError(message="Missing bearer token")
    return credentials.credentials


async def get_current_user(
    token: str = Depends(get_bearer_token),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> AuthUser:
    """Dependency: the trusted caller identity for this request."""
    return issuer.verify(token)
