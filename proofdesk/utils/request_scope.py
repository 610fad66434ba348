"""
Ambient tenant scope for one request-handling call tree.

The scope lives in a ``ContextVar``. asyncio gives every task its own copy of
the context, so a scope opened while handling one request is visible to every
coroutine awaited (or task spawned) underneath it, and never to an unrelated
request running concurrently on the same event loop.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, TypeVar

from proofdesk.exceptions import TenantScopeMissing

logger = logging.getLogger(__name__)

T = TypeVar("T")

_tenant_scope_var: ContextVar[int | None] = ContextVar("tenant_scope", default=None)


@contextmanager
def tenant_scope(tenant_id: int) -> Iterator[int]:
    """Open a tenant scope for the enclosed block; the outer scope is restored on exit."""
    if tenant_id is None:
        raise TenantScopeMissing("Cannot open a tenant scope without a tenant id")
    token = _tenant_scope_var.set(tenant_id)
    try:
        yield tenant_id
    finally:
        _tenant_scope_var.reset(token)


async def run_with_tenant_scope(tenant_id: int, fn: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
    """Await ``fn(*args, **kwargs)`` with ``tenant_id`` as the ambient tenant."""
    with tenant_scope(tenant_id):
        return await fn(*args, **kwargs)


def get_scoped_tenant_id() -> int | None:
    return _tenant_scope_var.get()


def require_scoped_tenant_id() -> int:
    """Return the ambient tenant id or raise ``TenantScopeMissing``."""
    tenant_id = _tenant_scope_var.get()
    if tenant_id is None:
        logger.warning("Data access attempted without a tenant scope")
        raise TenantScopeMissing()
    return tenant_id
