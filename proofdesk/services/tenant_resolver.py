"""
Tenant Resolver

Derives the tenant for an inbound request from its host:

  1. An exact match on a non-disabled custom domain (``tenant_domains``)
     wins outright; slug parsing is skipped.
  2. Otherwise the first subdomain label is used as the tenant slug.

Host parsing is pure; the lookups take an injected AsyncSession and run
before any tenant scope exists.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from proofdesk.exceptions import InvalidTenantSlug, TenantNotFound, TenantRequired
from proofdesk.models.tenant import Tenant
from proofdesk.models.tenant_domain import TenantDomain, TenantDomainStatus

logger = logging.getLogger(__name__)

_IPV4_RE = re.compile(r"^\d{1,3}(\.\d{1,3}){3}$")
_LABEL_RE = re.compile(r"^[a-z0-9-]+$")


@dataclass(frozen=True)
class TenantContext:
    """Resolved tenant for a request."""

    tenant_id: int
    tenant_slug: str
    source: str  # "domain" | "subdomain"


def normalize_host(host: str | None) -> str:
    """
    Strip port and IPv6 brackets, trim and lower-case.

    Examples:
        "Acme.Example.com:3000" → "acme.example.com"
        "[::1]:3000"            → "::1"
    """
    if not host:
        return ""
    value = host.strip().lower()
    if value.startswith("["):
        end = value.find("]")
        if end != -1:
            value = value[1:end]
    elif value.count(":") == 1:
        value = value.split(":")[0]
    return value.strip()


def is_ipv4(host: str) -> bool:
    return bool(_IPV4_RE.match(host))


def resolve_tenant_from_host(host: str | None) -> str | None:
    """
    Return the tenant slug candidate for ``host`` or None.

    Examples:
        "acme.example.com"   → "acme"
        "acme.example.com:80" → "acme"
        "localhost"          → None
        "127.0.0.1"          → None
        "example"            → None
    """
    hostname = normalize_host(host)
    if not hostname or hostname == "localhost":
        return None
    if is_ipv4(hostname) or ":" in hostname:
        return None

    first_dot = hostname.find(".")
    if first_dot <= 0:
        return None

    label = hostname[:first_dot]
    if not _LABEL_RE.match(label):
        return None
    return label


def get_request_host(headers: Mapping[str, str]) -> str | None:
    """First ``X-Forwarded-Host`` entry when present, else ``Host``."""
    forwarded = (headers.get("x-forwarded-host") or "").strip()
    if forwarded:
        first = forwarded.split(",")[0].strip()
        return first or None
    host = (headers.get("host") or "").strip()
    return host or None


def validate_tenant_slug(slug: str) -> str:
    """Raise InvalidTenantSlug unless ``slug`` is usable as a subdomain label."""
    if not slug:
        raise InvalidTenantSlug("Slug is required", slug)
    if len(slug) < 3:
        raise InvalidTenantSlug("Slug must be at least 3 characters", slug)
    if len(slug) > 63:
        raise InvalidTenantSlug("Slug must be at most 63 characters", slug)
    if slug.startswith("-"):
        raise InvalidTenantSlug("Slug cannot start with a hyphen", slug)
    if slug.endswith("-"):
        raise InvalidTenantSlug("Slug cannot end with a hyphen", slug)
    if not _LABEL_RE.match(slug):
        raise InvalidTenantSlug("Slug can only contain lowercase letters, digits, and hyphens", slug)
    return slug


async def require_tenant_context(host: str | None, db: AsyncSession) -> TenantContext:
    """
    Resolve the tenant for ``host``.

    Raises:
        TenantRequired: no host, or no slug could be parsed from it
        TenantNotFound: the domain's tenant row or the slug's tenant is missing
    """
    hostname = normalize_host(host)
    if not hostname:
        raise TenantRequired(host)

    result = await db.execute(select(TenantDomain).where(TenantDomain.hostname == hostname))
    domain = result.scalars().first()
    if domain is not None and domain.status != TenantDomainStatus.DISABLED.value:
        if domain.tenant is None:
            raise TenantNotFound(hostname)
        logger.debug("Tenant resolved via custom domain: host=%s tenant_id=%d", hostname, domain.tenant.id)
        return TenantContext(tenant_id=domain.tenant.id, tenant_slug=domain.tenant.slug, source="domain")

    slug = resolve_tenant_from_host(hostname)
    if not slug:
        raise TenantRequired(host)

    result = await db.execute(select(Tenant).where(Tenant.slug == slug))
    tenant = result.scalars().first()
    if tenant is None:
        raise TenantNotFound(slug)

    logger.debug("Tenant resolved via subdomain: host=%s tenant_id=%d", hostname, tenant.id)
    return TenantContext(tenant_id=tenant.id, tenant_slug=tenant.slug, source="subdomain")
