"""
Client Proofing Routes

Served on a tenant host (subdomain or custom domain) to the client of a
PRIVATE gallery.

POST   /api/p/galleries/{gallery_id}/login              → start client gallery session
GET    /api/p/galleries/{gallery_id}/selection          → current selection (created lazily)
POST   /api/p/galleries/{gallery_id}/selection/items    → add {photoId}
DELETE /api/p/galleries/{gallery_id}/selection/items    → remove {photoId}
POST   /api/p/galleries/{gallery_id}/selection/submit   → submit
"""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from proofdesk.auth import (
    create_client_gallery_session_token,
    get_client_gallery_session,
    is_client_session_valid,
    set_session_cookie,
    verify_client_credentials,
)
from proofdesk.config import settings
from proofdesk.database import TenantGateway, get_db, get_gateway
from proofdesk.exceptions import (
    AuthenticationError,
    GalleryNotFound,
    GalleryNotPrivate,
    InvalidCredentialsError,
    InvalidGalleryAccess,
)
from proofdesk.middleware.tenant import with_tenant_request_scope
from proofdesk.services import gallery_service, selection_service

router = APIRouter(prefix="/api/p/galleries", tags=["Client Proofing"])
logger = logging.getLogger(__name__)


class ClientLogin(BaseModel):
    username: str
    password: str


class SelectionItemRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    photo_id: int = Field(alias="photoId")


async def _require_client_username(request: Request, tenant_id: int, gallery_id: int, gateway: TenantGateway) -> str:
    """Check the client gallery session, then return the gallery's client username."""
    session = get_client_gallery_session(request)
    if not is_client_session_valid(session, tenant_id, gallery_id):
        raise AuthenticationError()

    gallery = await gallery_service.get_gallery(gallery_id, gateway)
    if gallery is None:
        raise GalleryNotFound(gallery_id)
    if not gallery.is_private:
        raise GalleryNotPrivate(gallery_id)
    if not gallery.client_username:
        raise InvalidGalleryAccess("CLIENT_USERNAME_REQUIRED")
    return gallery.client_username


@router.post("/{gallery_id}/login")
async def client_login_route(
    gallery_id: int,
    payload: ClientLogin,
    request: Request,
    db: AsyncSession = Depends(get_db),
    gateway: TenantGateway = Depends(get_gateway),
) -> JSONResponse:
    """Verify the gallery's client credentials and issue a client gallery session."""

    async def handle(tenant_id: int) -> JSONResponse:
        gallery = await gallery_service.get_gallery(gallery_id, gateway)
        if gallery is None:
            raise GalleryNotFound(gallery_id)
        if not gallery.is_private:
            raise GalleryNotPrivate(gallery_id)
        if not verify_client_credentials(
            payload.username, payload.password, gallery.client_username, gallery.client_password_hash
        ):
            raise InvalidCredentialsError()

        response = JSONResponse({"ok": True, "galleryId": gallery_id})
        token = create_client_gallery_session_token(tenant_id, gallery_id)
        set_session_cookie(response, settings.client_gallery_cookie_name, token)
        logger.info("Client gallery session started: tenant_id=%d gallery_id=%d", tenant_id, gallery_id)
        return response

    return await with_tenant_request_scope(request, db, handle)


@router.get("/{gallery_id}/selection")
async def get_selection_route(
    gallery_id: int,
    request: Request,
    db: AsyncSession = Depends(get_db),
    gateway: TenantGateway = Depends(get_gateway),
) -> dict[str, Any]:
    async def handle(tenant_id: int) -> dict[str, Any]:
        client_username = await _require_client_username(request, tenant_id, gallery_id, gateway)
        selection = await selection_service.get_with_items(gallery_id, client_username, gateway)
        if selection is None:
            selection = await selection_service.create_or_get_draft(gallery_id, client_username, gateway)
        return selection_service.serialize_selection(selection)

    return await with_tenant_request_scope(request, db, handle)


@router.post("/{gallery_id}/selection/items")
async def add_selection_item_route(
    gallery_id: int,
    request: Request,
    payload: SelectionItemRequest = Body(...),
    db: AsyncSession = Depends(get_db),
    gateway: TenantGateway = Depends(get_gateway),
) -> dict[str, Any]:
    async def handle(tenant_id: int) -> dict[str, Any]:
        client_username = await _require_client_username(request, tenant_id, gallery_id, gateway)
        selection = await selection_service.add_item(gallery_id, client_username, payload.photo_id, gateway)
        return selection_service.serialize_selection(selection)

    return await with_tenant_request_scope(request, db, handle)


@router.delete("/{gallery_id}/selection/items")
async def remove_selection_item_route(
    gallery_id: int,
    request: Request,
    payload: SelectionItemRequest = Body(...),
    db: AsyncSession = Depends(get_db),
    gateway: TenantGateway = Depends(get_gateway),
) -> dict[str, Any]:
    async def handle(tenant_id: int) -> dict[str, Any]:
        client_username = await _require_client_username(request, tenant_id, gallery_id, gateway)
        selection = await selection_service.remove_item(gallery_id, client_username, payload.photo_id, gateway)
        return selection_service.serialize_selection(selection)

    return await with_tenant_request_scope(request, db, handle)


@router.post("/{gallery_id}/selection/submit")
async def submit_selection_route(
    gallery_id: int,
    request: Request,
    db: AsyncSession = Depends(get_db),
    gateway: TenantGateway = Depends(get_gateway),
) -> dict[str, Any]:
    async def handle(tenant_id: int) -> dict[str, Any]:
        client_username = await _require_client_username(request, tenant_id, gallery_id, gateway)
        selection = await selection_service.submit(gallery_id, client_username, gateway)
        return selection_service.serialize_selection(selection)

    return await with_tenant_request_scope(request, db, handle)
