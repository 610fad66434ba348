"""
Gallery Service

Tenant-scoped CRUD for galleries. Every function reads the ambient tenant
through the TenantGateway and filters on (id, tenant_id); a gallery of
another tenant is indistinguishable from a missing one.
"""

import logging
from typing import Any

from sqlalchemy import delete, func, select

from proofdesk.auth import hash_password
from proofdesk.database import TenantGateway
from proofdesk.exceptions import GalleryNotFound, InvalidGalleryAccess
from proofdesk.models.gallery import Gallery, GalleryAccessMode, Photo
from proofdesk.models.proof_selection import ProofSelection, ProofSelectionItem
from proofdesk.services.tenant_service import adjust_storage_usage, lock_tenant_for_storage

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = {"title", "description", "max_selections"}
NOT_NULL_FIELDS = {"title"}


def build_gallery_access(
    access_mode: str,
    client_username: str | None = None,
    client_password: str | None = None,
    existing_password_hash: str | None = None,
    require_password: bool = True,
) -> dict[str, Any]:
    """
    Normalize gallery access settings.

    PUBLIC galleries carry no client credentials. PRIVATE galleries need a
    client username and either a new password or, when editing, the
    existing hash.
    """
    mode = (access_mode or "").upper()
    if mode == GalleryAccessMode.PUBLIC.value:
        return {"access_mode": mode, "client_username": None, "client_password_hash": None}
    if mode != GalleryAccessMode.PRIVATE.value:
        raise InvalidGalleryAccess("INVALID_ACCESS_MODE")

    username = (client_username or "").strip()
    if not username:
        raise InvalidGalleryAccess("CLIENT_USERNAME_REQUIRED")

    if client_password:
        return {"access_mode": mode, "client_username": username, "client_password_hash": hash_password(client_password)}
    if not require_password and existing_password_hash:
        return {"access_mode": mode, "client_username": username, "client_password_hash": existing_password_hash}
    raise InvalidGalleryAccess("CLIENT_PASSWORD_REQUIRED")


async def create_gallery(
    title: str,
    gateway: TenantGateway,
    access_mode: str = GalleryAccessMode.PUBLIC.value,
    description: str | None = None,
    client_username: str | None = None,
    client_password: str | None = None,
    max_selections: int | None = None,
) -> Gallery:
    access = build_gallery_access(access_mode, client_username, client_password)
    async with gateway.transaction() as (db, tenant_id):
        gallery = Gallery(
            tenant_id=tenant_id,
            title=title,
            description=description,
            max_selections=max_selections,
            **access,
        )
        db.add(gallery)
        await db.flush()
    logger.info("Gallery created: id=%d tenant_id=%d mode=%s", gallery.id, tenant_id, gallery.access_mode)
    return gallery


async def list_galleries(gateway: TenantGateway) -> list[Gallery]:
    async with gateway.session() as (db, tenant_id):
        result = await db.execute(
            select(Gallery).where(Gallery.tenant_id == tenant_id).order_by(Gallery.created_at.desc(), Gallery.id.desc())
        )
        return list(result.scalars().all())


async def get_gallery(gallery_id: int, gateway: TenantGateway) -> Gallery | None:
    """Return the scoped tenant's gallery, or None."""
    async with gateway.session() as (db, tenant_id):
        result = await db.execute(select(Gallery).where(Gallery.id == gallery_id, Gallery.tenant_id == tenant_id))
        return result.scalars().first()


async def update_gallery(gallery_id: int, updates: dict[str, Any], gateway: TenantGateway) -> Gallery:
    """
    Apply a partial update.

    ``access_mode``/``client_username``/``client_password`` are re-validated
    together; leaving the password empty keeps the current hash.
    """
    async with gateway.transaction() as (db, tenant_id):
        result = await db.execute(select(Gallery).where(Gallery.id == gallery_id, Gallery.tenant_id == tenant_id))
        gallery = result.scalars().first()
        if gallery is None:
            raise GalleryNotFound(gallery_id)

        for field, value in updates.items():
            if field in UPDATABLE_FIELDS and not (value is None and field in NOT_NULL_FIELDS):
                setattr(gallery, field, value)

        if {"access_mode", "client_username", "client_password"} & updates.keys():
            access = build_gallery_access(
                updates.get("access_mode", gallery.access_mode),
                updates.get("client_username", gallery.client_username),
                updates.get("client_password"),
                existing_password_hash=gallery.client_password_hash,
                require_password=False,
            )
            for field, value in access.items():
                setattr(gallery, field, value)
        await db.flush()
    return gallery


async def delete_gallery(gallery_id: int, gateway: TenantGateway) -> bool:
    """
    Best-effort delete. A gallery that is already gone (or belongs to another
    tenant) is not an error; returns whether a row was removed.
    """
    async with gateway.transaction() as (db, tenant_id):
        await lock_tenant_for_storage(tenant_id, db)
        freed = await db.scalar(
            select(func.coalesce(func.sum(Photo.bytes), 0)).where(
                Photo.gallery_id == gallery_id, Photo.tenant_id == tenant_id
            )
        )
        selection_ids = select(ProofSelection.id).where(
            ProofSelection.gallery_id == gallery_id, ProofSelection.tenant_id == tenant_id
        )
        await db.execute(
            delete(ProofSelectionItem).where(
                ProofSelectionItem.tenant_id == tenant_id, ProofSelectionItem.selection_id.in_(selection_ids)
            )
        )
        await db.execute(
            delete(ProofSelection).where(ProofSelection.gallery_id == gallery_id, ProofSelection.tenant_id == tenant_id)
        )
        await db.execute(delete(Photo).where(Photo.gallery_id == gallery_id, Photo.tenant_id == tenant_id))
        result = await db.execute(delete(Gallery).where(Gallery.id == gallery_id, Gallery.tenant_id == tenant_id))
        if freed:
            await adjust_storage_usage(tenant_id, -int(freed), db)
    deleted = (result.rowcount or 0) > 0
    logger.info("Gallery delete: id=%d tenant_id=%d deleted=%s", gallery_id, tenant_id, deleted)
    return deleted
