"""
Storage Service

Upload preparation and finalization for gallery photos.

The object store itself is an external collaborator: this module only
generates storage keys and HMAC-signed upload URLs. Byte accounting against
the tenant quota happens in the same transaction as the photo mutation that
triggers it.
"""

import hashlib
import hmac
import logging
import re
import time
import uuid
from dataclasses import dataclass
from urllib.parse import quote, urlencode

from sqlalchemy import func, select

from proofdesk.config import settings
from proofdesk.database import TenantGateway
from proofdesk.exceptions import GalleryNotFound, InvalidBytes, PhotoNotFound
from proofdesk.models.gallery import Gallery, Photo
from proofdesk.services.tenant_service import adjust_storage_usage, check_storage_quota, lock_tenant_for_storage

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass(frozen=True)
class PreparedUpload:
    photo_id: int
    storage_key: str
    upload_url: str


def _validate_bytes(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidBytes(value)
    return value


def safe_filename(filename: str | None) -> str:
    name = (filename or "").replace("\\", "/").rsplit("/", 1)[-1]
    name = _UNSAFE_FILENAME_CHARS.sub("-", name).strip(".-")
    return name or f"upload-{uuid.uuid4().hex[:8]}"


def tenant_photo_key(tenant_id: int, gallery_id: int, photo_id: int, filename: str) -> str:
    return f"tenant/{tenant_id}/gallery/{gallery_id}/photo/{photo_id}/{safe_filename(filename)}"


def _create_signature(storage_key: str, expires: int) -> str:
    return hmac.new(
        settings.secret_key.encode("utf-8"),
        f"{storage_key}:{expires}".encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def generate_upload_url(storage_key: str, ttl_seconds: int | None = None) -> str:
    expires = int(time.time()) + (ttl_seconds or settings.storage_upload_url_ttl_seconds)
    query = urlencode({"expires": expires, "sig": _create_signature(storage_key, expires)})
    return f"{settings.storage_upload_base_url.rstrip('/')}/{quote(storage_key)}?{query}"


def verify_upload_signature(storage_key: str, expires: int, signature: str) -> bool:
    if expires < int(time.time()):
        return False
    return hmac.compare_digest(_create_signature(storage_key, expires), signature or "")


async def prepare_upload(
    gallery_id: int,
    size_bytes: int,
    mime_type: str | None,
    filename: str | None,
    gateway: TenantGateway,
) -> PreparedUpload:
    """
    Allocate a photo row and a signed upload URL.

    The declared size is checked against the tenant quota up front; the
    counter itself only moves when the upload is finalized with the real size.

    Raises:
        InvalidBytes, GalleryNotFound, StorageQuotaExceeded
    """
    size_bytes = _validate_bytes(size_bytes)
    async with gateway.transaction() as (db, tenant_id):
        result = await db.execute(select(Gallery.id).where(Gallery.id == gallery_id, Gallery.tenant_id == tenant_id))
        if result.scalar_one_or_none() is None:
            raise GalleryNotFound(gallery_id)

        tenant = await lock_tenant_for_storage(tenant_id, db)
        check_storage_quota(tenant, size_bytes)

        next_order = await db.scalar(
            select(func.coalesce(func.max(Photo.sort_order), -1) + 1).where(
                Photo.gallery_id == gallery_id, Photo.tenant_id == tenant_id
            )
        )
        photo = Photo(
            tenant_id=tenant_id,
            gallery_id=gallery_id,
            original_filename=filename,
            mime_type=mime_type,
            sort_order=next_order or 0,
        )
        db.add(photo)
        await db.flush()
        photo.storage_key = tenant_photo_key(tenant_id, gallery_id, photo.id, filename or "")
        storage_key = photo.storage_key
        photo_id = photo.id

    logger.info("Upload prepared: tenant_id=%d gallery_id=%d photo_id=%d", tenant_id, gallery_id, photo_id)
    return PreparedUpload(photo_id=photo_id, storage_key=storage_key, upload_url=generate_upload_url(storage_key))


async def finalize_upload(
    photo_id: int,
    size_bytes: int,
    gateway: TenantGateway,
    width: int | None = None,
    height: int | None = None,
) -> Photo:
    """
    Record the real size and dimensions of an uploaded photo.

    The tenant's byte counter moves by the difference to the previously
    recorded size, within the same transaction. The tenant row is locked
    before the photo is read; a second finalize of the same photo sees the
    size the first one recorded.
    """
    size_bytes = _validate_bytes(size_bytes)
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
            raise PhotoNotFound(photo_id)

        delta = size_bytes - (photo.bytes or 0)
        if delta:
            await adjust_storage_usage(tenant_id, delta, db)
        photo.bytes = size_bytes
        if width is not None:
            photo.width = width
        if height is not None:
            photo.height = height
        await db.flush()
    logger.info("Upload finalized: tenant_id=%d photo_id=%d bytes=%d", tenant_id, photo_id, size_bytes)
    return photo
