"""
Tenant Service

Platform-level tenant operations: signup, admin status changes, billing
onboarding events and storage accounting. These address tenants directly by
primary key and take an injected AsyncSession; they run outside any tenant
scope (signup, admin console, payment events).
"""

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from proofdesk.auth import hash_password, verify_password
from proofdesk.config import settings
from proofdesk.exceptions import (
    EmailTaken,
    InvalidBytes,
    InvalidCredentialsError,
    PaymentAccountTaken,
    SlugTaken,
    StorageQuotaExceeded,
    TenantRecordNotFound,
)
from proofdesk.models.tenant import BillingStatus, Tenant, TenantStatus
from proofdesk.models.user import User, UserRole, UserStatus
from proofdesk.services.tenant_resolver import validate_tenant_slug

logger = logging.getLogger(__name__)


async def get_tenant_by_id(tenant_id: int, db: AsyncSession) -> Tenant | None:
    """Return a Tenant by primary key, or None if not found."""
    result = await db.execute(select(Tenant).where(Tenant.id == tenant_id))
    return result.scalars().first()


async def get_tenant_by_slug(slug: str, db: AsyncSession) -> Tenant | None:
    """Return a Tenant by slug, or None if not found."""
    result = await db.execute(select(Tenant).where(Tenant.slug == slug))
    return result.scalars().first()


async def create_tenant_signup(
    tenant_name: str,
    tenant_slug: str,
    email: str,
    password: str,
    db: AsyncSession,
) -> tuple[Tenant, User]:
    """
    Create a tenant (ACTIVE, billing PENDING) and its first user.

    Raises:
        InvalidTenantSlug: slug is not a valid subdomain label
        SlugTaken / EmailTaken: uniqueness violated
    """
    slug = validate_tenant_slug(tenant_slug.strip().lower())
    email = email.strip().lower()

    if await get_tenant_by_slug(slug, db) is not None:
        raise SlugTaken(slug)
    result = await db.execute(select(User).where(User.email == email))
    if result.scalars().first() is not None:
        raise EmailTaken(email)

    tenant = Tenant(
        name=tenant_name.strip(),
        slug=slug,
        status=TenantStatus.ACTIVE.value,
        billing_status=BillingStatus.PENDING.value,
        storage_used_bytes=0,
        storage_limit_bytes=settings.default_storage_limit_bytes,
        storage_enforced=True,
    )
    db.add(tenant)
    try:
        await db.flush()
        user = User(
            email=email,
            hashed_password=hash_password(password),
            role=UserRole.TENANT.value,
            status=UserStatus.ACTIVE.value,
            tenant_id=tenant.id,
        )
        db.add(user)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        # Lost a race on slug or email with a concurrent signup
        raise SlugTaken(slug)

    logger.info("Tenant signup: tenant_id=%d slug=%s", tenant.id, tenant.slug)
    return tenant, user


async def authenticate_tenant_user(email: str, password: str, db: AsyncSession) -> User:
    result = await db.execute(select(User).where(User.email == email.strip().lower()))
    user = result.scalars().first()
    if user is None or user.status != UserStatus.ACTIVE.value or not verify_password(password, user.hashed_password):
        raise InvalidCredentialsError("Invalid email or password")
    return user


async def _require_tenant(tenant_id: int, db: AsyncSession) -> Tenant:
    tenant = await get_tenant_by_id(tenant_id, db)
    if tenant is None:
        raise TenantRecordNotFound(tenant_id)
    return tenant


async def set_tenant_status(tenant_id: int, status: TenantStatus, db: AsyncSession) -> Tenant:
    """Admin action. DELETED is a status; rows are never removed."""
    tenant = await _require_tenant(tenant_id, db)
    tenant.status = TenantStatus(status).value
    await db.commit()
    logger.info("Tenant status changed: id=%d status=%s", tenant.id, tenant.status)
    return tenant


async def set_tenant_billing_status(tenant_id: int, billing_status: BillingStatus, db: AsyncSession) -> Tenant:
    tenant = await _require_tenant(tenant_id, db)
    tenant.billing_status = BillingStatus(billing_status).value
    await db.commit()
    logger.info("Tenant billing status changed: id=%d billing_status=%s", tenant.id, tenant.billing_status)
    return tenant


async def set_tenant_slug(tenant_id: int, slug: str, db: AsyncSession) -> Tenant:
    slug = validate_tenant_slug(slug)
    tenant = await _require_tenant(tenant_id, db)
    existing = await get_tenant_by_slug(slug, db)
    if existing is not None and existing.id != tenant.id:
        raise SlugTaken(slug)
    tenant.slug = slug
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise SlugTaken(slug)
    return tenant


async def attach_payment_account(tenant_id: int, stripe_account_id: str, db: AsyncSession) -> Tenant:
    tenant = await _require_tenant(tenant_id, db)
    result = await db.execute(select(Tenant.id).where(Tenant.stripe_account_id == stripe_account_id))
    owner_id = result.scalar_one_or_none()
    if owner_id is not None and owner_id != tenant.id:
        raise PaymentAccountTaken(stripe_account_id)
    tenant.stripe_account_id = stripe_account_id
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise PaymentAccountTaken(stripe_account_id)
    return tenant


async def apply_onboarding_event(stripe_account_id: str, details_submitted: bool, db: AsyncSession) -> Tenant | None:
    """
    Handle an ``account.updated`` payment event.

    When onboarding details were submitted the owning tenant is marked
    onboarded with ACTIVE billing. Unknown accounts are ignored.
    """
    if not details_submitted:
        return None
    result = await db.execute(select(Tenant).where(Tenant.stripe_account_id == stripe_account_id))
    tenant = result.scalars().first()
    if tenant is None:
        logger.info("Onboarding event for unknown account %s ignored", stripe_account_id)
        return None
    tenant.stripe_onboarding_complete = True
    tenant.billing_status = BillingStatus.ACTIVE.value
    await db.commit()
    logger.info("Tenant onboarding complete: id=%d", tenant.id)
    return tenant


# ── Storage accounting ─────────────────────────────────────────────────────────


def check_storage_quota(tenant: Tenant, requested_bytes: int) -> None:
    """Raise StorageQuotaExceeded when an enforced quota cannot fit ``requested_bytes`` more."""
    if not tenant.storage_enforced or tenant.storage_limit_bytes is None:
        return
    used = tenant.storage_used_bytes or 0
    if used + requested_bytes > tenant.storage_limit_bytes:
        raise StorageQuotaExceeded(used, requested_bytes, tenant.storage_limit_bytes)


async def lock_tenant_for_storage(tenant_id: int, db: AsyncSession) -> Tenant:
    """Load the tenant row FOR UPDATE; call inside the photo mutation's transaction."""
    result = await db.execute(select(Tenant).where(Tenant.id == tenant_id).with_for_update())
    tenant = result.scalars().first()
    if tenant is None:
        raise TenantRecordNotFound(tenant_id)
    return tenant


async def adjust_storage_usage(tenant_id: int, delta_bytes: int, db: AsyncSession, enforce: bool = True) -> Tenant:
    """
    Read-modify-write the tenant's byte counter inside the caller's transaction.

    Growth is checked against the quota when ``enforce`` is set; the counter
    never goes below zero.
    """
    if not isinstance(delta_bytes, int) or isinstance(delta_bytes, bool):
        raise InvalidBytes(delta_bytes)
    tenant = await lock_tenant_for_storage(tenant_id, db)
    if delta_bytes > 0 and enforce:
        check_storage_quota(tenant, delta_bytes)
    tenant.storage_used_bytes = max(0, (tenant.storage_used_bytes or 0) + delta_bytes)
    return tenant
