"""
Platform Administration Routes

All routes require a master admin session.

PATCH /api/admin/tenants/{tenant_id}/status          → ACTIVE / SUSPENDED / DELETED
PATCH /api/admin/tenants/{tenant_id}/billing-status  → PENDING / ACTIVE / PAST_DUE / CANCELED
PATCH /api/admin/tenants/{tenant_id}/slug            → rename subdomain slug
POST  /api/admin/tenants/{tenant_id}/domain/verified → record a passed DNS verification
POST  /api/admin/tenants/{tenant_id}/domain/activate → put a verified domain into service
PATCH /api/admin/tenants/{tenant_id}/payment-account → link payment provider account
"""

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict
from sqlalchemy.ext.asyncio import AsyncSession

from proofdesk.auth import require_master_admin_session
from proofdesk.database import get_db
from proofdesk.exceptions import NoDomainConnected
from proofdesk.models.tenant import BillingStatus, TenantStatus
from proofdesk.routes.tenant_domain import DomainStatusResponse
from proofdesk.services import tenant_domain_service, tenant_service

router = APIRouter(prefix="/api/admin/tenants", tags=["Admin"])
logger = logging.getLogger(__name__)


class TenantStatusUpdate(BaseModel):
    status: TenantStatus


class BillingStatusUpdate(BaseModel):
    billing_status: BillingStatus


class SlugUpdate(BaseModel):
    slug: str


class DomainVerifiedRequest(BaseModel):
    hostname: str


class PaymentAccountUpdate(BaseModel):
    account_id: str


class AdminTenantResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    slug: str
    status: str
    billing_status: str
    storage_used_bytes: int
    storage_limit_bytes: int | None
    storage_enforced: bool


@router.patch("/{tenant_id}/status", response_model=AdminTenantResponse)
async def set_tenant_status_route(
    tenant_id: int,
    payload: TenantStatusUpdate,
    db: AsyncSession = Depends(get_db),
    admin: str = Depends(require_master_admin_session),
):
    tenant = await tenant_service.set_tenant_status(tenant_id, payload.status, db)
    logger.info("Admin %s set tenant %d status=%s", admin, tenant_id, payload.status.value)
    return tenant


@router.patch("/{tenant_id}/billing-status", response_model=AdminTenantResponse)
async def set_billing_status_route(
    tenant_id: int,
    payload: BillingStatusUpdate,
    db: AsyncSession = Depends(get_db),
    admin: str = Depends(require_master_admin_session),
):
    tenant = await tenant_service.set_tenant_billing_status(tenant_id, payload.billing_status, db)
    logger.info("Admin %s set tenant %d billing_status=%s", admin, tenant_id, payload.billing_status.value)
    return tenant


@router.patch("/{tenant_id}/slug", response_model=AdminTenantResponse)
async def set_tenant_slug_route(
    tenant_id: int,
    payload: SlugUpdate,
    db: AsyncSession = Depends(get_db),
    admin: str = Depends(require_master_admin_session),
):
    tenant = await tenant_service.set_tenant_slug(tenant_id, payload.slug, db)
    logger.info("Admin %s renamed tenant %d to %s", admin, tenant_id, tenant.slug)
    return tenant


@router.post("/{tenant_id}/domain/verified", response_model=DomainStatusResponse)
async def mark_domain_verified_route(
    tenant_id: int,
    payload: DomainVerifiedRequest,
    db: AsyncSession = Depends(get_db),
    _admin: str = Depends(require_master_admin_session),
) -> DomainStatusResponse:
    hostname = tenant_domain_service.normalize_hostname(payload.hostname)
    updated = await tenant_domain_service.mark_tenant_domain_verified(tenant_id, hostname, db)
    if not updated:
        raise NoDomainConnected()
    domain = await tenant_domain_service.get_tenant_domain_by_tenant_id(tenant_id, db)
    return DomainStatusResponse.from_domain(domain)


@router.post("/{tenant_id}/domain/activate", response_model=DomainStatusResponse)
async def activate_domain_route(
    tenant_id: int,
    db: AsyncSession = Depends(get_db),
    _admin: str = Depends(require_master_admin_session),
) -> DomainStatusResponse:
    domain = await tenant_domain_service.set_tenant_domain_active(tenant_id, db)
    return DomainStatusResponse.from_domain(domain)


@router.patch("/{tenant_id}/payment-account", response_model=AdminTenantResponse)
async def attach_payment_account_route(
    tenant_id: int,
    payload: PaymentAccountUpdate,
    db: AsyncSession = Depends(get_db),
    _admin: str = Depends(require_master_admin_session),
):
    """Link the tenant to its account at the payment provider; onboarding events are matched on it."""
    return await tenant_service.attach_payment_account(tenant_id, payload.account_id, db)
