"""
Noteful Backend — Folder & Tag Route Handlers
==============================================

What:  /api/folders and /api/tags. Both resources have the same five
       endpoints, so one factory builds a router around each service.

    GET    /api/{kind}          → 200 list sorted by name
    GET    /api/{kind}/{id}     → 200 | 400 | 404
    POST   /api/{kind}          → 201 + Location | 400 | 403 | 409
    PUT    /api/{kind}/{id}     → 200 | 400 | 403 | 404 | 409
    DELETE /api/{kind}/{id}     → 204 | 400 | 404 (notes keep living, references cleared)
"""

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from noteful.database import commit_session, get_db_session
from noteful.exceptions import NotFoundError
from noteful.schemas.collection import CollectionResponse, CollectionWrite, FolderResponse, TagResponse
from noteful.schemas.common import ErrorResponse
from noteful.security import AuthUser, get_current_user
from noteful.services.collection_service import (
    CollectionService,
    folder_service,
    tag_service,
)


def build_collection_router(
    service: CollectionService,
    path: str,
    response_model: type[CollectionResponse],
    tag: str,
) -> APIRouter:
    router = APIRouter(prefix=path, tags=[tag])
    noun = service.resource
    base_errors = {
        400: {"description": "Malformed input or id", "model": ErrorResponse},
        401: {"description": "Missing or invalid token", "model": ErrorResponse},
    }

    @router.get("", response_model=list[response_model], responses=base_errors, summary=f"List {noun}s")
    async def list_items(
        user: AuthUser = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_session),
    ):
        return await service.list_items(db, owner_id=user.id)

    @router.get(
        "/{item_id}",
        response_model=response_model,
        responses={**base_errors, 404: {"model": ErrorResponse}},
        summary=f"Get a {noun}",
    )
    async def get_item(
        item_id: str,
        user: AuthUser = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_session),
    ):
        return await service.get_item(db, owner_id=user.id, item_id=item_id)

    @router.post(
        "",
        response_model=response_model,
        status_code=status.HTTP_201_CREATED,
        responses={**base_errors, 403: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
        summary=f"Create a {noun}",
    )
    async def create_item(
        body: CollectionWrite,
        request: Request,
        response: Response,
        user: AuthUser = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_session),
    ):
        item = await service.create_item(db, owner_id=user.id, body=body)
        await commit_session(db)
        response.headers["Location"] = f"{request.url.path.rstrip('/')}/{item.id}"
        return item

    @router.put(
        "/{item_id}",
        response_model=response_model,
        responses={
            **base_errors,
            403: {"model": ErrorResponse},
            404: {"model": ErrorResponse},
            409: {"model": ErrorResponse},
        },
        summary=f"Rename a {noun}",
    )
    async def update_item(
        item_id: str,
        body: CollectionWrite,
        user: AuthUser = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_session),
    ):
        item = await service.update_item(db, owner_id=user.id, item_id=item_id, body=body)
        await commit_session(db)
        return item

    @router.delete(
        "/{item_id}",
        status_code=status.HTTP_204_NO_CONTENT,
        responses={**base_errors, 404: {"model": ErrorResponse}},
        summary=f"Delete a {noun} and clear note references to it",
    )
    async def delete_item(
        item_id: str,
        user: AuthUser = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_session),
    ) -> Response:
        if not await service.delete_item(db, owner_id=user.id, item_id=item_id):
            raise NotFoundError(resource=noun, resource_id=item_id)
        await commit_session(db)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return router


folders_router = build_collection_router(folder_service, "/api/folders", FolderResponse, "Folders")
tags_router = build_collection_router(tag_service, "/api/tags", TagResponse, "Tags")
