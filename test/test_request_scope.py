"""
Tests for the ambient tenant scope (proofdesk.utils.request_scope)
"""

import asyncio

import pytest

from proofdesk.exceptions import TenantScopeMissing
from proofdesk.utils.request_scope import (
    get_scoped_tenant_id,
    require_scoped_tenant_id,
    run_with_tenant_scope,
    tenant_scope,
)


class TestTenantScope:
    def test_no_scope_by_default(self):
        assert get_scoped_tenant_id() is None

    def test_require_without_scope_raises(self):
        with pytest.raises(TenantScopeMissing):
            require_scoped_tenant_id()

    def test_scope_visible_inside_block(self):
        with tenant_scope(7):
            assert get_scoped_tenant_id() == 7
            assert require_scoped_tenant_id() == 7
        assert get_scoped_tenant_id() is None

    def test_nested_scope_restores_outer(self):
        with tenant_scope(1):
            with tenant_scope(2):
                assert get_scoped_tenant_id() == 2
            assert get_scoped_tenant_id() == 1
        assert get_scoped_tenant_id() is None

    def test_scope_restored_after_exception(self):
        with pytest.raises(RuntimeError):
            with tenant_scope(3):
                raise RuntimeError("boom")
        assert get_scoped_tenant_id() is None

    def test_none_tenant_id_rejected(self):
        with pytest.raises(TenantScopeMissing):
            with tenant_scope(None):
                pass


class TestRunWithTenantScope:
    async def test_returns_result_and_passes_arguments(self):
        async def fn(a, b=0):
            return (get_scoped_tenant_id(), a + b)

        assert await run_with_tenant_scope(5, fn, 1, b=2) == (5, 3)
        assert get_scoped_tenant_id() is None

    async def test_scope_flows_into_awaited_calls_and_tasks(self):
        async def inner():
            await asyncio.sleep(0)
            return require_scoped_tenant_id()

        async def outer():
            direct = await inner()
            spawned = await asyncio.create_task(inner())
            return direct, spawned

        assert await run_with_tenant_scope(11, outer) == (11, 11)

    async def test_concurrent_scopes_are_isolated(self):
        seen: dict[int, list[int]] = {}

        async def handler(tenant_id):
            observed = []
            for _ in range(5):
                await asyncio.sleep(0)
                observed.append(require_scoped_tenant_id())
            seen[tenant_id] = observed

        await asyncio.gather(*(run_with_tenant_scope(t, handler, t) for t in (1, 2, 3)))

        assert seen == {1: [1] * 5, 2: [2] * 5, 3: [3] * 5}

    async def test_unscoped_task_does_not_see_concurrent_scope(self):
        started = asyncio.Event()
        release = asyncio.Event()

        async def scoped_handler():
            started.set()
            await release.wait()

        async def unscoped_handler():
            await started.wait()
            value = get_scoped_tenant_id()
            release.set()
            return value

        _, unscoped_value = await asyncio.gather(run_with_tenant_scope(9, scoped_handler), unscoped_handler())
        assert unscoped_value is None
