"""
Tenant Request Scope

``with_tenant_request_scope`` is the entry helper every tenant-facing route
handler runs its body through. The tenant id is resolved most-trusted first:

  1. an already-open tenant scope (set by an enclosing call that already
     validated tenant and billing state) is reused as-is and never replaced
  2. a verified tenant session whose tenant is active with active billing
  3. host-based resolution (custom domain, then subdomain slug)

``TenantMiddleware`` runs for every request and only records the request
host and its slug candidate on ``request.state`` for downstream handlers and
logs; it never opens a scope itself, so a session can still win over a bare
host guess.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

from starlette.middleware.base import BaseHTTPMiddleware

from proofdesk.auth import TenantSession, get_verified_tenant_session
from proofdesk.services.tenant_resolver import get_request_host, require_tenant_context, resolve_tenant_from_host
from proofdesk.utils.request_scope import get_scoped_tenant_id, run_with_tenant_scope

if TYPE_CHECKING:
    from fastapi import Request
    from sqlalchemy.ext.asyncio import AsyncSession
    from starlette.responses import Response

logger = logging.getLogger(__name__)

T = TypeVar("T")

SessionLoader = Callable[["Request", "AsyncSession"], Awaitable[TenantSession | None]]


@dataclass(frozen=True)
class TenantResolution:
    tenant_id: int
    source: str  # "scope" | "session" | "domain" | "subdomain"


async def resolve_request_tenant(
    request: Request,
    db: AsyncSession,
    session_loader: SessionLoader = get_verified_tenant_session,
) -> TenantResolution:
    """Apply the scope > session > host fallback chain without opening a scope."""
    scoped = get_scoped_tenant_id()
    if scoped is not None:
        return TenantResolution(tenant_id=scoped, source="scope")

    session = await session_loader(request, db)
    if session is not None and session.active and session.billing_active:
        return TenantResolution(tenant_id=session.tenant_id, source="session")

    context = await require_tenant_context(get_request_host(request.headers), db)
    return TenantResolution(tenant_id=context.tenant_id, source=context.source)


async def with_tenant_request_scope(
    request: Request,
    db: AsyncSession,
    fn: Callable[[int], Awaitable[T]],
    session_loader: SessionLoader = get_verified_tenant_session,
) -> T:
    """
    Resolve the request's tenant and await ``fn(tenant_id)`` inside its scope.

    Raises:
        TenantRequired / TenantNotFound: host resolution was needed and failed.
    """
    resolution = await resolve_request_tenant(request, db, session_loader)
    logger.debug("Request scope opened: tenant_id=%d source=%s", resolution.tenant_id, resolution.source)
    return await run_with_tenant_scope(resolution.tenant_id, fn, resolution.tenant_id)


class TenantMiddleware(BaseHTTPMiddleware):
    """
    Attach host information to request.state.

    Attributes set on request.state:
        request_host  (str | None) : X-Forwarded-Host or Host header
        host_slug     (str | None) : subdomain label candidate, not yet verified
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        host = get_request_host(request.headers)
        request.state.request_host = host
        request.state.host_slug = resolve_tenant_from_host(host)
        if request.state.host_slug:
            logger.debug("TenantMiddleware: host=%s slug candidate=%s", host, request.state.host_slug)
        return await call_next(request)
