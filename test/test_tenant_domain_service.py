"""
Tests for the custom domain lifecycle (proofdesk.services.tenant_domain_service)
"""

import pytest

from proofdesk.exceptions import InvalidHostname, NoDomainConnected, TenantNotFound
from proofdesk.models.tenant_domain import TenantDomainStatus
from proofdesk.services import tenant_domain_service
from proofdesk.services.tenant_resolver import require_tenant_context
from proofdesk.utils.request_scope import tenant_scope


class TestHostnameValidation:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("photos.example.com", "photos.example.com"),
            ("https://Photos.Example.com/gallery/1", "photos.example.com"),
            ("photos.example.com:8443", "photos.example.com"),
            ("  proofs.studio.co.uk ", "proofs.studio.co.uk"),
        ],
    )
    def test_valid(self, raw, expected):
        assert tenant_domain_service.validate_custom_hostname(raw) == expected

    @pytest.mark.parametrize(
        "raw",
        [
            "",
            "localhost",
            "192.168.0.1",
            "example",
            "bad_label.example.com",
            "-bad.example.com",
            "proofdesk.test",
            "acme.proofdesk.test",
        ],
    )
    def test_invalid(self, raw):
        with pytest.raises(InvalidHostname):
            tenant_domain_service.validate_custom_hostname(raw)


class TestDomainLifecycle:
    async def test_start_creates_pending_domain(self, gateway, tenant_a):
        with tenant_scope(tenant_a.id):
            domain = await tenant_domain_service.start_domain_connection("Photos.Example.com", gateway)

        assert domain.tenant_id == tenant_a.id
        assert domain.hostname == "photos.example.com"
        assert domain.status == TenantDomainStatus.PENDING_VERIFICATION.value
        assert domain.txt_record_name == f"{tenant_domain_service.TXT_RECORD_PREFIX}.photos.example.com"
        assert domain.txt_record_value == domain.verification_token

    async def test_restart_resets_progress(self, test_db, session_factory, gateway, tenant_a):
        with tenant_scope(tenant_a.id):
            first = await tenant_domain_service.start_domain_connection("photos.example.com", gateway)

        async with session_factory() as db:
            assert await tenant_domain_service.mark_tenant_domain_verified(tenant_a.id, "photos.example.com", db) == 1
            await tenant_domain_service.set_tenant_domain_active(tenant_a.id, db)

        with tenant_scope(tenant_a.id):
            second = await tenant_domain_service.start_domain_connection("proofs.example.com", gateway)
            current = await tenant_domain_service.get_tenant_domain(gateway)

        assert second.id == first.id
        assert current.hostname == "proofs.example.com"
        assert current.status == TenantDomainStatus.PENDING_VERIFICATION.value
        assert current.verified_at is None
        assert current.activated_at is None
        assert current.disabled_at is None
        assert current.verification_token != first.verification_token

    async def test_verify_activate_disable(self, session_factory, gateway, tenant_a):
        with tenant_scope(tenant_a.id):
            await tenant_domain_service.start_domain_connection("photos.example.com", gateway)

        async with session_factory() as db:
            await tenant_domain_service.mark_tenant_domain_verified(tenant_a.id, "photos.example.com", db)
            verified = await tenant_domain_service.get_tenant_domain_by_tenant_id(tenant_a.id, db)
            assert verified.status == TenantDomainStatus.VERIFIED.value
            assert verified.verified_at is not None

            active = await tenant_domain_service.set_tenant_domain_active(tenant_a.id, db)
            assert active.status == TenantDomainStatus.ACTIVE.value
            assert active.activated_at is not None

            disabled = await tenant_domain_service.disable_tenant_domain(tenant_a.id, db)
            assert disabled.status == TenantDomainStatus.DISABLED.value
            assert disabled.disabled_at is not None

    async def test_mark_verified_ignores_stale_hostname(self, session_factory, gateway, tenant_a):
        with tenant_scope(tenant_a.id):
            await tenant_domain_service.start_domain_connection("photos.example.com", gateway)

        async with session_factory() as db:
            assert await tenant_domain_service.mark_tenant_domain_verified(tenant_a.id, "old.example.com", db) == 0

    async def test_disable_without_domain(self, test_db, tenant_a):
        with pytest.raises(NoDomainConnected):
            await tenant_domain_service.disable_tenant_domain(tenant_a.id, test_db)

    async def test_hostname_claimed_by_other_tenant(self, gateway, tenant_a, tenant_b):
        with tenant_scope(tenant_a.id):
            await tenant_domain_service.start_domain_connection("photos.example.com", gateway)
        with tenant_scope(tenant_b.id), pytest.raises(InvalidHostname):
            await tenant_domain_service.start_domain_connection("photos.example.com", gateway)

    async def test_domain_resolution_follows_lifecycle(self, session_factory, gateway, tenant_a):
        with tenant_scope(tenant_a.id):
            await tenant_domain_service.start_domain_connection("photos.example.com", gateway)

        async with session_factory() as db:
            context = await require_tenant_context("photos.example.com", db)
            assert context.tenant_id == tenant_a.id
            assert context.source == "domain"

            await tenant_domain_service.disable_tenant_domain(tenant_a.id, db)

        async with session_factory() as db:
            # "photos" is no tenant's slug
            with pytest.raises(TenantNotFound):
                await require_tenant_context("photos.example.com", db)
