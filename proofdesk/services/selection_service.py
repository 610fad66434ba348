"""
Proof Selection Service

A gallery client's selection of photos from a PRIVATE gallery, one per
(tenant, gallery, client username):

    DRAFT ──submit──> SUBMITTED (terminal, immutable)

Every operation validates the gallery first (GalleryNotFound /
GalleryNotPrivate) and runs as a single transaction through the
TenantGateway. The unique constraints on selections and items turn a lost
race (two first touches, two identical adds) into an IntegrityError; the
transaction is then retried once and finds the row the winner created.
"""

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any, TypeVar

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from proofdesk.database import TenantGateway
from proofdesk.exceptions import (
    GalleryNotFound,
    GalleryNotPrivate,
    MaxSelectionsExceeded,
    PhotoNotFound,
    SelectionNotFound,
    SelectionSubmitted,
)
from proofdesk.models.gallery import Gallery, Photo
from proofdesk.models.proof_selection import ProofSelection, ProofSelectionItem, SelectionStatus

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_CONFLICT_ATTEMPTS = 2


async def _run_transaction(gateway: TenantGateway, operation: Callable[[AsyncSession, int], Awaitable[T]]) -> T:
    for attempt in range(1, MAX_CONFLICT_ATTEMPTS + 1):
        try:
            async with gateway.transaction() as (db, tenant_id):
                return await operation(db, tenant_id)
        except IntegrityError:
            if attempt == MAX_CONFLICT_ATTEMPTS:
                raise
            logger.info("Selection write conflict, retrying (attempt %d)", attempt)
    raise AssertionError("unreachable")


async def _load_gallery(db: AsyncSession, tenant_id: int, gallery_id: int) -> Gallery:
    result = await db.execute(select(Gallery).where(Gallery.id == gallery_id, Gallery.tenant_id == tenant_id))
    gallery = result.scalars().first()
    if gallery is None:
        raise GalleryNotFound(gallery_id)
    if not gallery.is_private:
        raise GalleryNotPrivate(gallery_id)
    return gallery


async def _require_photo(db: AsyncSession, tenant_id: int, gallery_id: int, photo_id: int) -> None:
    result = await db.execute(
        select(Photo.id).where(Photo.id == photo_id, Photo.tenant_id == tenant_id, Photo.gallery_id == gallery_id)
    )
    if result.scalar_one_or_none() is None:
        raise PhotoNotFound(photo_id)


async def _find_selection(
    db: AsyncSession,
    tenant_id: int,
    gallery_id: int,
    client_username: str,
    for_update: bool = False,
) -> ProofSelection | None:
    query = (
        select(ProofSelection)
        .options(selectinload(ProofSelection.items))
        .where(
            ProofSelection.tenant_id == tenant_id,
            ProofSelection.gallery_id == gallery_id,
            ProofSelection.client_username == client_username,
        )
        .execution_options(populate_existing=True)
    )
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    return result.scalars().first()


async def _get_or_create_draft(
    db: AsyncSession, tenant_id: int, gallery_id: int, client_username: str
) -> ProofSelection:
    selection = await _find_selection(db, tenant_id, gallery_id, client_username, for_update=True)
    if selection is not None:
        if selection.is_submitted:
            raise SelectionSubmitted(selection.id)
        return selection

    selection = ProofSelection(
        tenant_id=tenant_id,
        gallery_id=gallery_id,
        client_username=client_username,
        status=SelectionStatus.DRAFT.value,
        items=[],
    )
    db.add(selection)
    await db.flush()
    logger.info("Draft selection created: id=%d tenant_id=%d gallery_id=%d", selection.id, tenant_id, gallery_id)
    return selection


async def create_or_get_draft(gallery_id: int, client_username: str, gateway: TenantGateway) -> ProofSelection:
    """
    Return the client's DRAFT selection, creating it on first touch.

    Raises:
        GalleryNotFound, GalleryNotPrivate, SelectionSubmitted
    """

    async def operation(db: AsyncSession, tenant_id: int) -> ProofSelection:
        await _load_gallery(db, tenant_id, gallery_id)
        return await _get_or_create_draft(db, tenant_id, gallery_id, client_username)

    return await _run_transaction(gateway, operation)


async def add_item(gallery_id: int, client_username: str, photo_id: int, gateway: TenantGateway) -> ProofSelection:
    """
    Add a photo to the client's draft. Adding a photo that is already
    selected is a no-op.

    Raises:
        GalleryNotFound, GalleryNotPrivate, PhotoNotFound, SelectionSubmitted
    """

    async def operation(db: AsyncSession, tenant_id: int) -> ProofSelection:
        await _load_gallery(db, tenant_id, gallery_id)
        await _require_photo(db, tenant_id, gallery_id, photo_id)
        selection = await _get_or_create_draft(db, tenant_id, gallery_id, client_username)

        existing = await db.execute(
            select(ProofSelectionItem.id).where(
                ProofSelectionItem.tenant_id == tenant_id,
                ProofSelectionItem.selection_id == selection.id,
                ProofSelectionItem.photo_id == photo_id,
            )
        )
        if existing.scalar_one_or_none() is None:
            db.add(ProofSelectionItem(tenant_id=tenant_id, selection_id=selection.id, photo_id=photo_id))
            await db.flush()

        return await _find_selection(db, tenant_id, gallery_id, client_username)

    return await _run_transaction(gateway, operation)


async def remove_item(gallery_id: int, client_username: str, photo_id: int, gateway: TenantGateway) -> ProofSelection:
    """
    Remove a photo from the client's draft. Removing a photo that is not
    selected is a no-op.

    Raises:
        GalleryNotFound, GalleryNotPrivate, PhotoNotFound, SelectionSubmitted
    """

    async def operation(db: AsyncSession, tenant_id: int) -> ProofSelection:
        await _load_gallery(db, tenant_id, gallery_id)
        await _require_photo(db, tenant_id, gallery_id, photo_id)
        selection = await _get_or_create_draft(db, tenant_id, gallery_id, client_username)

        await db.execute(
            delete(ProofSelectionItem).where(
                ProofSelectionItem.tenant_id == tenant_id,
                ProofSelectionItem.selection_id == selection.id,
                ProofSelectionItem.photo_id == photo_id,
            )
        )
        return await _find_selection(db, tenant_id, gallery_id, client_username)

    return await _run_transaction(gateway, operation)


async def submit(gallery_id: int, client_username: str, gateway: TenantGateway) -> ProofSelection:
    """
    Submit the client's draft.

    A selection holding exactly ``max_selections`` items may be submitted;
    one more is rejected. The status change is a conditional UPDATE whose
    row count is checked, so a concurrent submit that got there first
    surfaces as SelectionNotFound instead of a silent double write.

    Raises:
        GalleryNotFound, GalleryNotPrivate, SelectionNotFound,
        SelectionSubmitted, MaxSelectionsExceeded
    """

    async def operation(db: AsyncSession, tenant_id: int) -> ProofSelection:
        gallery = await _load_gallery(db, tenant_id, gallery_id)
        selection = await _find_selection(db, tenant_id, gallery_id, client_username, for_update=True)
        if selection is None:
            raise SelectionNotFound(gallery_id)
        if selection.is_submitted:
            raise SelectionSubmitted(selection.id)

        item_count = len(selection.items)
        if gallery.max_selections is not None and item_count > gallery.max_selections:
            raise MaxSelectionsExceeded(item_count, gallery.max_selections)

        now = datetime.now(timezone.utc)
        result = await db.execute(
            update(ProofSelection)
            .where(
                ProofSelection.id == selection.id,
                ProofSelection.tenant_id == tenant_id,
                ProofSelection.status == SelectionStatus.DRAFT.value,
            )
            .values(status=SelectionStatus.SUBMITTED.value, submitted_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise SelectionNotFound(gallery_id)

        logger.info("Selection submitted: id=%d tenant_id=%d items=%d", selection.id, tenant_id, item_count)
        return await _find_selection(db, tenant_id, gallery_id, client_username)

    return await _run_transaction(gateway, operation)


async def get_with_items(gallery_id: int, client_username: str, gateway: TenantGateway) -> ProofSelection | None:
    """Read-only lookup; None when the client has not touched the gallery yet."""
    async with gateway.session() as (db, tenant_id):
        await _load_gallery(db, tenant_id, gallery_id)
        return await _find_selection(db, tenant_id, gallery_id, client_username)


def serialize_selection(selection: ProofSelection) -> dict[str, Any]:
    return {
        "id": selection.id,
        "status": selection.status,
        "submittedAt": selection.submitted_at.isoformat() if selection.submitted_at else None,
        "items": [{"id": item.id, "photoId": item.photo_id, "note": item.note} for item in selection.items],
    }
