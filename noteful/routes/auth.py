"""
Noteful Backend — Signup, Login & Token Refresh
================================================

    POST /api/users     {username, password, fullname?} → 201 + Location
    POST /api/login     {username, password}            → {authToken}
    POST /api/refresh   Authorization: Bearer <token>   → {authToken}

Refresh needs only a still-valid token, no credentials. The new token is
always distinct from the presented one.
"""

import logging

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from noteful.database import commit_session, get_db_session
from noteful.schemas.common import ErrorResponse
from noteful.schemas.user import LoginRequest, TokenResponse, UserCreate, UserResponse
from noteful.security import TokenIssuer, get_bearer_token, get_token_issuer
from noteful.services.user_service import UserService, to_auth_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Auth"])


def get_user_service(request: Request) -> UserService:
    return request.app.state.user_service


@router.post(
    "/users",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Missing or invalid credentials", "model": ErrorResponse},
        409: {"description": "Username taken", "model": ErrorResponse},
    },
    summary="Register a new user",
)
async def create_user(
    body: UserCreate,
    request: Request,
    response: Response,
    users: UserService = Depends(get_user_service),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    user = await users.create(db, body)
    await commit_session(db)
    response.headers["Location"] = f"{request.url.path.rstrip('/')}/{user.id}"
    return user


@router.post(
    "/login",
    response_model=TokenResponse,
    responses={
        400: {"description": "Missing username or password", "model": ErrorResponse},
        401: {"description": "Incorrect username or password", "model": ErrorResponse},
        429: {"description": "Too many attempts", "model": ErrorResponse},
    },
    summary="Exchange credentials for a bearer token",
)
async def login(
    body: LoginRequest,
    users: UserService = Depends(get_user_service),
    issuer: TokenIssuer = Depends(get_token_issuer),
    db: AsyncSession = Depends(get_db_session),
) -> TokenResponse:
    user = await users.authenticate(db, body.username, body.password)
    logger.info("User %s logged in", user.id)
    return TokenResponse(auth_token=issuer.issue(to_auth_user(user)))


@router.post(
    "/refresh",
    response_model=TokenResponse,
    responses={401: {"description": "Missing, invalid or expired token", "model": ErrorResponse}},
    summary="Exchange a still-valid token for a fresh one",
)
async def refresh(
    token: str = Depends(get_bearer_token),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> TokenResponse:
    return TokenResponse(auth_token=issuer.refresh(token))
