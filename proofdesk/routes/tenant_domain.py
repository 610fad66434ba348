"""
Custom Domain Routes

POST /api/tenant-domain/start   → claim a hostname and get the TXT record to publish
GET  /api/tenant-domain/status  → current connection state
POST /api/tenant-domain/remove  → disconnect the custom domain
"""

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from proofdesk.auth import TenantSession, require_tenant_session
from proofdesk.database import TenantGateway, get_db, get_gateway
from proofdesk.models.tenant_domain import TenantDomain
from proofdesk.services import tenant_domain_service
from proofdesk.utils.request_scope import tenant_scope

router = APIRouter(prefix="/api/tenant-domain", tags=["Custom Domains"])
logger = logging.getLogger(__name__)


class DomainStartRequest(BaseModel):
    hostname: str


class DomainStatusResponse(BaseModel):
    connected: bool
    hostname: str | None = None
    status: str | None = None
    txt_record_name: str | None = None
    txt_record_value: str | None = None
    verified_at: str | None = None
    activated_at: str | None = None

    @classmethod
    def from_domain(cls, domain: TenantDomain | None) -> "DomainStatusResponse":
        if domain is None:
            return cls(connected=False)
        return cls(
            connected=True,
            hostname=domain.hostname,
            status=domain.status,
            txt_record_name=domain.txt_record_name,
            txt_record_value=domain.txt_record_value,
            verified_at=domain.verified_at.isoformat() if domain.verified_at else None,
            activated_at=domain.activated_at.isoformat() if domain.activated_at else None,
        )


@router.post("/start", response_model=DomainStatusResponse)
async def start_domain_route(
    payload: DomainStartRequest,
    session: TenantSession = Depends(require_tenant_session),
    gateway: TenantGateway = Depends(get_gateway),
) -> DomainStatusResponse:
    """(Re)start verification of a custom hostname for the session tenant."""
    with tenant_scope(session.tenant_id):
        domain = await tenant_domain_service.start_domain_connection(payload.hostname, gateway)
    return DomainStatusResponse.from_domain(domain)


@router.get("/status", response_model=DomainStatusResponse)
async def domain_status_route(
    session: TenantSession = Depends(require_tenant_session),
    gateway: TenantGateway = Depends(get_gateway),
) -> DomainStatusResponse:
    with tenant_scope(session.tenant_id):
        domain = await tenant_domain_service.get_tenant_domain(gateway)
    return DomainStatusResponse.from_domain(domain)


@router.post("/remove", response_model=DomainStatusResponse)
async def remove_domain_route(
    session: TenantSession = Depends(require_tenant_session),
    db: AsyncSession = Depends(get_db),
) -> DomainStatusResponse:
    domain = await tenant_domain_service.disable_tenant_domain(session.tenant_id, db)
    return DomainStatusResponse.from_domain(domain)
