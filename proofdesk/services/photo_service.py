"""
Photo Service

Tenant-scoped reads and edits of photo metadata. Uploads live in
``storage_service``.
"""

import logging
from typing import Any

from sqlalchemy import delete, select

from proofdesk.database import TenantGateway
from proofdesk.exceptions import PhotoNotFound
from proofdesk.models.gallery import Photo
from proofdesk.models.proof_selection import ProofSelectionItem
from proofdesk.services.tenant_service import adjust_storage_usage, lock_tenant_for_storage

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = {"alt_text", "caption", "sort_order"}
NOT_NULL_FIELDS = {"sort_order"}


async def list_photos(gallery_id: int, gateway: TenantGateway) -> list[Photo]:
    async with gateway.session() as (db, tenant_id):
        result = await db.execute(
            select(Photo)
            .where(Photo.gallery_id == gallery_id, Photo.tenant_id == tenant_id)
            .order_by(Photo.sort_order, Photo.id)
        )
        return list(result.scalars().all())


async def get_photo(photo_id: int, gateway: TenantGateway, gallery_id: int | None = None) -> Photo | None:
    async with gateway.session() as (db, tenant_id):
        query = select(Photo).where(Photo.id == photo_id, Photo.tenant_id == tenant_id)
        if gallery_id is not None:
            query = query.where(Photo.gallery_id == gallery_id)
        result = await db.execute(query)
        return result.scalars().first()


async def update_photo(photo_id: int, updates: dict[str, Any], gateway: TenantGateway) -> Photo:
    async with gateway.transaction() as (db, tenant_id):
        result = await db.execute(select(Photo).where(Photo.id == photo_id, Photo.tenant_id == tenant_id))
        photo = result.scalars().first()
        if photo is None:
            raise PhotoNotFound(photo_id)
        for field, value in updates.items():
            if field in EDITABLE_FIELDS and not (value is None and field in NOT_NULL_FIELDS):
                setattr(photo, field, value)
        await db.flush()
    return photo


async def delete_photo(photo_id: int, gateway: TenantGateway) -> bool:
    """Best-effort delete; frees the photo's bytes from the tenant counter."""
    async with gateway.transaction() as (db, tenant_id):
        await lock_tenant_for_storage(tenant_id, db)
        result = await db.execute(
            select(Photo)
            .where(Photo.id == photo_id, Photo.tenant_id == tenant_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        photo = result.scalars().first()
        if photo is None:
            logger.info("Photo delete: id=%d tenant_id=%d already gone", photo_id, tenant_id)
            return False
        freed = photo.bytes or 0
        await db.execute(
            delete(ProofSelectionItem).where(
                ProofSelectionItem.photo_id == photo_id, ProofSelectionItem.tenant_id == tenant_id
            )
        )
        await db.delete(photo)
        if freed:
            await adjust_storage_usage(tenant_id, -freed, db)
    logger.info("Photo deleted: id=%d tenant_id=%d freed=%d", photo_id, tenant_id, freed)
    return True
