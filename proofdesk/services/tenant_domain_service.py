"""
Tenant Domain Service

Custom hostname lifecycle for a tenant:

    PENDING_VERIFICATION ──> VERIFIED ──> ACTIVE
            └──────────────┴────────────┴──> DISABLED

A tenant has at most one domain row. Starting a new connection always resets
that row to PENDING_VERIFICATION and clears its progress timestamps.
``mark_tenant_domain_verified`` / ``set_tenant_domain_active`` are driven by
the DNS verification job and ``disable_tenant_domain`` by the tenant's own
disconnect action; those take an explicit tenant id and a plain session.
"""

import logging
import re
import secrets
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from proofdesk.config import settings
from proofdesk.database import TenantGateway
from proofdesk.exceptions import InvalidHostname, NoDomainConnected
from proofdesk.models.tenant_domain import TenantDomain, TenantDomainStatus
from proofdesk.services.tenant_resolver import is_ipv4, normalize_host

logger = logging.getLogger(__name__)

TXT_RECORD_PREFIX = "_pd_verify"

_HOSTNAME_RE = re.compile(r"^(?=.{1,253}$)([a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?)(\.[a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?)+$")


def normalize_hostname(raw: str) -> str:
    """
    Reduce user input to a bare hostname.

    Examples:
        "https://Photos.Example.com/gallery" → "photos.example.com"
        "photos.example.com:8443"            → "photos.example.com"
    """
    value = (raw or "").strip().lower()
    value = re.sub(r"^https?://", "", value)
    value = value.split("/", 1)[0]
    return normalize_host(value)


def validate_custom_hostname(raw: str) -> str:
    """
    Return the normalized hostname or raise InvalidHostname.

    Rejects localhost, IPv4 literals, whitespace, malformed labels, the
    platform's main domain and any subdomain of it (those already route by
    slug).
    """
    hostname = normalize_hostname(raw)
    if not hostname or re.search(r"\s", hostname):
        raise InvalidHostname(raw)
    if hostname == "localhost" or is_ipv4(hostname) or not _HOSTNAME_RE.match(hostname):
        raise InvalidHostname(hostname)

    main_domain = normalize_host(settings.main_domain)
    if main_domain and (hostname == main_domain or hostname.endswith("." + main_domain)):
        raise InvalidHostname(hostname)
    return hostname


def generate_verification_token() -> str:
    return secrets.token_hex(16)


async def get_tenant_domain(gateway: TenantGateway) -> TenantDomain | None:
    async with gateway.session() as (db, tenant_id):
        result = await db.execute(select(TenantDomain).where(TenantDomain.tenant_id == tenant_id))
        return result.scalars().first()


async def create_or_reset_tenant_domain(
    hostname: str,
    verification_token: str,
    txt_record_name: str,
    txt_record_value: str,
    gateway: TenantGateway,
) -> TenantDomain:
    """
    Upsert the scoped tenant's domain row in PENDING_VERIFICATION.

    Raises:
        InvalidHostname: the hostname is already claimed by another tenant
    """
    try:
        async with gateway.transaction() as (db, tenant_id):
            result = await db.execute(select(TenantDomain).where(TenantDomain.tenant_id == tenant_id))
            domain = result.scalars().first()
            if domain is None:
                domain = TenantDomain(tenant_id=tenant_id)
                db.add(domain)
            domain.hostname = hostname
            domain.status = TenantDomainStatus.PENDING_VERIFICATION.value
            domain.verification_token = verification_token
            domain.txt_record_name = txt_record_name
            domain.txt_record_value = txt_record_value
            domain.verified_at = None
            domain.activated_at = None
            domain.disabled_at = None
            await db.flush()
    except IntegrityError:
        logger.info("Hostname %s already claimed by another tenant", hostname)
        raise InvalidHostname(hostname)

    logger.info("Tenant domain reset: tenant_id=%d hostname=%s", domain.tenant_id, hostname)
    return domain


async def start_domain_connection(raw_hostname: str, gateway: TenantGateway) -> TenantDomain:
    """Validate the requested hostname and (re)start its verification."""
    hostname = validate_custom_hostname(raw_hostname)
    token = generate_verification_token()
    return await create_or_reset_tenant_domain(
        hostname=hostname,
        verification_token=token,
        txt_record_name=f"{TXT_RECORD_PREFIX}.{hostname}",
        txt_record_value=token,
        gateway=gateway,
    )


async def mark_tenant_domain_verified(tenant_id: int, hostname: str, db: AsyncSession) -> int:
    """Returns the number of rows updated (0 when the hostname changed meanwhile)."""
    result = await db.execute(
        update(TenantDomain)
        .where(TenantDomain.tenant_id == tenant_id, TenantDomain.hostname == hostname)
        .values(
            status=TenantDomainStatus.VERIFIED.value,
            verified_at=datetime.now(timezone.utc),
            disabled_at=None,
        )
    )
    await db.commit()
    return result.rowcount


async def set_tenant_domain_active(tenant_id: int, db: AsyncSession) -> TenantDomain:
    domain = await _require_domain(tenant_id, db)
    domain.status = TenantDomainStatus.ACTIVE.value
    domain.activated_at = datetime.now(timezone.utc)
    await db.commit()
    logger.info("Tenant domain active: tenant_id=%d hostname=%s", tenant_id, domain.hostname)
    return domain


async def disable_tenant_domain(tenant_id: int, db: AsyncSession) -> TenantDomain:
    domain = await _require_domain(tenant_id, db)
    domain.status = TenantDomainStatus.DISABLED.value
    domain.disabled_at = datetime.now(timezone.utc)
    await db.commit()
    logger.info("Tenant domain disabled: tenant_id=%d hostname=%s", tenant_id, domain.hostname)
    return domain


async def get_tenant_domain_by_tenant_id(tenant_id: int, db: AsyncSession) -> TenantDomain | None:
    result = await db.execute(select(TenantDomain).where(TenantDomain.tenant_id == tenant_id))
    return result.scalars().first()


async def _require_domain(tenant_id: int, db: AsyncSession) -> TenantDomain:
    domain = await get_tenant_domain_by_tenant_id(tenant_id, db)
    if domain is None:
        raise NoDomainConnected()
    return domain
