"""
Billing Routes

GET  /api/billing/status → billing state of the session tenant (reachable before onboarding)
POST /api/billing/events → payment provider events, authenticated by a shared secret header
"""

import hmac
import logging

from fastapi import APIRouter, Depends, Header, Request
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from proofdesk.auth import get_verified_tenant_session
from proofdesk.config import settings
from proofdesk.database import get_db
from proofdesk.exceptions import AuthenticationError
from proofdesk.services.tenant_service import apply_onboarding_event, get_tenant_by_id

router = APIRouter(prefix="/api/billing", tags=["Billing"])
logger = logging.getLogger(__name__)

ACCOUNT_UPDATED = "account.updated"


class BillingAccount(BaseModel):
    id: str
    details_submitted: bool = False


class BillingEvent(BaseModel):
    type: str
    account: BillingAccount | None = None


class BillingStatusResponse(BaseModel):
    tenant_id: int
    billing_status: str
    onboarding_complete: bool


@router.get("/status", response_model=BillingStatusResponse)
async def billing_status_route(request: Request, db: AsyncSession = Depends(get_db)) -> BillingStatusResponse:
    session = await get_verified_tenant_session(request, db)
    if session is None or not session.active:
        raise AuthenticationError()
    tenant = await get_tenant_by_id(session.tenant_id, db)
    return BillingStatusResponse(
        tenant_id=tenant.id,
        billing_status=tenant.billing_status,
        onboarding_complete=bool(tenant.stripe_onboarding_complete),
    )


@router.post("/events")
async def billing_events_route(
    event: BillingEvent,
    db: AsyncSession = Depends(get_db),
    webhook_secret: str | None = Header(default=None, alias="X-Billing-Webhook-Secret"),
) -> dict:
    """Apply onboarding progress from the payment provider. Unknown event types are acknowledged and ignored."""
    expected = settings.billing_webhook_secret
    if not expected or not webhook_secret or not hmac.compare_digest(expected, webhook_secret):
        raise AuthenticationError("Invalid webhook secret")

    if event.type != ACCOUNT_UPDATED or event.account is None:
        logger.debug("Billing event %s ignored", event.type)
        return {"received": True}

    tenant = await apply_onboarding_event(event.account.id, event.account.details_submitted, db)
    return {"received": True, "tenantId": tenant.id if tenant else None}
