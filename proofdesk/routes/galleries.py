"""
Gallery Workspace Routes

Tenant-session routes; every handler runs inside the session tenant's scope.

GET    /api/galleries                                   → list galleries
POST   /api/galleries                                   → create gallery
GET    /api/galleries/{gallery_id}                      → gallery with photos
PATCH  /api/galleries/{gallery_id}                      → update gallery
DELETE /api/galleries/{gallery_id}                      → delete gallery (best-effort)
POST   /api/galleries/{gallery_id}/photos               → prepare upload
POST   /api/galleries/{gallery_id}/photos/{id}/finalize → record uploaded size
PATCH  /api/galleries/{gallery_id}/photos/{id}          → update photo metadata
DELETE /api/galleries/{gallery_id}/photos/{id}          → delete photo (best-effort)
"""

import logging

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, ConfigDict, Field, field_validator

from proofdesk.auth import TenantSession, require_tenant_session
from proofdesk.database import TenantGateway, get_gateway
from proofdesk.exceptions import GalleryNotFound, PhotoNotFound
from proofdesk.models.gallery import Gallery, GalleryAccessMode, Photo
from proofdesk.services import gallery_service, photo_service, storage_service
from proofdesk.utils.request_scope import tenant_scope

router = APIRouter(prefix="/api/galleries", tags=["Galleries"])
logger = logging.getLogger(__name__)


# ── Pydantic schemas ───────────────────────────────────────────────────────────


class GalleryCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str | None = None
    access_mode: str = GalleryAccessMode.PUBLIC.value
    client_username: str | None = None
    client_password: str | None = None
    max_selections: int | None = Field(default=None, ge=0)


class GalleryUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    access_mode: str | None = None
    client_username: str | None = None
    client_password: str | None = None
    max_selections: int | None = Field(default=None, ge=0)

    @field_validator("title", "access_mode")
    @classmethod
    def not_null(cls, v: str | None) -> str:
        if v is None:
            msg = "Field may be omitted but not set to null"
            raise ValueError(msg)
        return v


class PhotoResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    gallery_id: int
    storage_key: str | None
    original_filename: str | None
    mime_type: str | None
    bytes: int | None
    width: int | None
    height: int | None
    alt_text: str | None
    caption: str | None
    sort_order: int


class GalleryResponse(BaseModel):
    id: int
    title: str
    description: str | None
    access_mode: str
    client_username: str | None
    max_selections: int | None
    created_at: str | None

    @classmethod
    def from_gallery(cls, gallery: Gallery) -> "GalleryResponse":
        return cls(
            id=gallery.id,
            title=gallery.title,
            description=gallery.description,
            access_mode=gallery.access_mode,
            client_username=gallery.client_username,
            max_selections=gallery.max_selections,
            created_at=gallery.created_at.isoformat() if gallery.created_at else None,
        )


class GalleryDetailResponse(GalleryResponse):
    photos: list[PhotoResponse] = []


class UploadRequest(BaseModel):
    size_bytes: int = Field(alias="bytes")
    mime_type: str | None = None
    filename: str | None = None

    model_config = ConfigDict(populate_by_name=True)


class UploadResponse(BaseModel):
    photo_id: int
    storage_key: str
    upload_url: str


class FinalizeRequest(BaseModel):
    size_bytes: int = Field(alias="bytes")
    width: int | None = Field(default=None, ge=0)
    height: int | None = Field(default=None, ge=0)

    model_config = ConfigDict(populate_by_name=True)


class PhotoUpdate(BaseModel):
    alt_text: str | None = None
    caption: str | None = None
    sort_order: int | None = None

    @field_validator("sort_order")
    @classmethod
    def not_null(cls, v: int | None) -> int:
        if v is None:
            msg = "Field may be omitted but not set to null"
            raise ValueError(msg)
        return v


# ── Galleries ──────────────────────────────────────────────────────────────────


@router.get("", response_model=list[GalleryResponse])
async def list_galleries_route(
    session: TenantSession = Depends(require_tenant_session),
    gateway: TenantGateway = Depends(get_gateway),
) -> list[GalleryResponse]:
    with tenant_scope(session.tenant_id):
        galleries = await gallery_service.list_galleries(gateway)
    return [GalleryResponse.from_gallery(g) for g in galleries]


@router.post("", response_model=GalleryResponse, status_code=status.HTTP_201_CREATED)
async def create_gallery_route(
    payload: GalleryCreate,
    session: TenantSession = Depends(require_tenant_session),
    gateway: TenantGateway = Depends(get_gateway),
) -> GalleryResponse:
    with tenant_scope(session.tenant_id):
        gallery = await gallery_service.create_gallery(
            title=payload.title,
            gateway=gateway,
            access_mode=payload.access_mode,
            description=payload.description,
            client_username=payload.client_username,
            client_password=payload.client_password,
            max_selections=payload.max_selections,
        )
    return GalleryResponse.from_gallery(gallery)


@router.get("/{gallery_id}", response_model=GalleryDetailResponse)
async def get_gallery_route(
    gallery_id: int,
    session: TenantSession = Depends(require_tenant_session),
    gateway: TenantGateway = Depends(get_gateway),
) -> GalleryDetailResponse:
    with tenant_scope(session.tenant_id):
        gallery = await gallery_service.get_gallery(gallery_id, gateway)
        if gallery is None:
            raise GalleryNotFound(gallery_id)
        photos = await photo_service.list_photos(gallery_id, gateway)
    base = GalleryResponse.from_gallery(gallery)
    return GalleryDetailResponse(
        **base.model_dump(),
        photos=[PhotoResponse.model_validate(p) for p in photos],
    )


@router.patch("/{gallery_id}", response_model=GalleryResponse)
async def update_gallery_route(
    gallery_id: int,
    payload: GalleryUpdate,
    session: TenantSession = Depends(require_tenant_session),
    gateway: TenantGateway = Depends(get_gateway),
) -> GalleryResponse:
    updates = payload.model_dump(exclude_unset=True)
    with tenant_scope(session.tenant_id):
        gallery = await gallery_service.update_gallery(gallery_id, updates, gateway)
    return GalleryResponse.from_gallery(gallery)


@router.delete("/{gallery_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_gallery_route(
    gallery_id: int,
    session: TenantSession = Depends(require_tenant_session),
    gateway: TenantGateway = Depends(get_gateway),
) -> Response:
    with tenant_scope(session.tenant_id):
        await gallery_service.delete_gallery(gallery_id, gateway)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ── Photos ─────────────────────────────────────────────────────────────────────


@router.post("/{gallery_id}/photos", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def prepare_upload_route(
    gallery_id: int,
    payload: UploadRequest,
    session: TenantSession = Depends(require_tenant_session),
    gateway: TenantGateway = Depends(get_gateway),
) -> UploadResponse:
    """Allocate a photo and return a signed URL the browser uploads the bytes to."""
    with tenant_scope(session.tenant_id):
        prepared = await storage_service.prepare_upload(
            gallery_id=gallery_id,
            size_bytes=payload.size_bytes,
            mime_type=payload.mime_type,
            filename=payload.filename,
            gateway=gateway,
        )
    return UploadResponse(
        photo_id=prepared.photo_id,
        storage_key=prepared.storage_key,
        upload_url=prepared.upload_url,
    )


@router.post("/{gallery_id}/photos/{photo_id}/finalize", response_model=PhotoResponse)
async def finalize_upload_route(
    gallery_id: int,
    photo_id: int,
    payload: FinalizeRequest,
    session: TenantSession = Depends(require_tenant_session),
    gateway: TenantGateway = Depends(get_gateway),
) -> Photo:
    with tenant_scope(session.tenant_id):
        if await photo_service.get_photo(photo_id, gateway, gallery_id=gallery_id) is None:
            raise PhotoNotFound(photo_id)
        return await storage_service.finalize_upload(
            photo_id=photo_id,
            size_bytes=payload.size_bytes,
            gateway=gateway,
            width=payload.width,
            height=payload.height,
        )


@router.patch("/{gallery_id}/photos/{photo_id}", response_model=PhotoResponse)
async def update_photo_route(
    gallery_id: int,
    photo_id: int,
    payload: PhotoUpdate,
    session: TenantSession = Depends(require_tenant_session),
    gateway: TenantGateway = Depends(get_gateway),
) -> Photo:
    with tenant_scope(session.tenant_id):
        if await photo_service.get_photo(photo_id, gateway, gallery_id=gallery_id) is None:
            raise PhotoNotFound(photo_id)
        return await photo_service.update_photo(photo_id, payload.model_dump(exclude_unset=True), gateway)


@router.delete("/{gallery_id}/photos/{photo_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_photo_route(
    gallery_id: int,
    photo_id: int,
    session: TenantSession = Depends(require_tenant_session),
    gateway: TenantGateway = Depends(get_gateway),
) -> Response:
    with tenant_scope(session.tenant_id):
        if await photo_service.get_photo(photo_id, gateway, gallery_id=gallery_id) is not None:
            await photo_service.delete_photo(photo_id, gateway)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
