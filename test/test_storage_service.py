"""
Storage Service Tests

Upload preparation, finalization and tenant byte accounting.
"""

import asyncio
import time
from urllib.parse import parse_qs, urlparse

import pytest

from conftest import make_gallery, make_photo, make_tenant
from proofdesk.exceptions import GalleryNotFound, InvalidBytes, StorageQuotaExceeded
from proofdesk.models.tenant import Tenant
from proofdesk.services import gallery_service, photo_service, storage_service
from proofdesk.services.tenant_service import adjust_storage_usage
from proofdesk.utils.request_scope import tenant_scope


async def _used_bytes(session_factory, tenant_id):
    async with session_factory() as db:
        tenant = await db.get(Tenant, tenant_id)
        return tenant.storage_used_bytes


@pytest.fixture
async def quota_tenant(test_db):
    return await make_tenant(test_db, "quota", storage_limit_bytes=1000, storage_enforced=True)


class TestKeysAndSignatures:
    def test_safe_filename(self):
        assert storage_service.safe_filename("../../etc/My Photo (1).JPG") == "My-Photo-1-.JPG"
        assert storage_service.safe_filename("C:\\Users\\me\\img.png") == "img.png"
        assert storage_service.safe_filename(None).startswith("upload-")

    def test_tenant_photo_key_layout(self):
        assert storage_service.tenant_photo_key(1, 2, 3, "a.jpg") == "tenant/1/gallery/2/photo/3/a.jpg"

    def test_upload_url_signature_round_trip(self):
        key = "tenant/1/gallery/2/photo/3/a.jpg"
        url = urlparse(storage_service.generate_upload_url(key))
        query = parse_qs(url.query)
        expires = int(query["expires"][0])
        sig = query["sig"][0]

        assert url.path.endswith(key)
        assert storage_service.verify_upload_signature(key, expires, sig)
        assert not storage_service.verify_upload_signature("tenant/9/other.jpg", expires, sig)
        assert not storage_service.verify_upload_signature(key, expires, "0" * 64)

    def test_expired_signature_rejected(self):
        key = "tenant/1/gallery/2/photo/3/a.jpg"
        expires = int(time.time()) - 10
        sig = storage_service._create_signature(key, expires)
        assert not storage_service.verify_upload_signature(key, expires, sig)


class TestPrepareUpload:
    async def test_allocates_photo_with_key(self, test_db, gateway, tenant_a):
        gallery = await make_gallery(test_db, tenant_a)
        await make_photo(test_db, gallery, sort_order=4)

        with tenant_scope(tenant_a.id):
            prepared = await storage_service.prepare_upload(gallery.id, 500, "image/jpeg", "beach.jpg", gateway)
            photo = await photo_service.get_photo(prepared.photo_id, gateway)

        assert prepared.storage_key == f"tenant/{tenant_a.id}/gallery/{gallery.id}/photo/{prepared.photo_id}/beach.jpg"
        assert "sig=" in prepared.upload_url
        assert photo.storage_key == prepared.storage_key
        assert photo.sort_order == 5
        assert photo.bytes is None

    @pytest.mark.parametrize("value", [0, -1, 1.5, "100", True, None])
    async def test_invalid_bytes(self, test_db, gateway, tenant_a, value):
        gallery = await make_gallery(test_db, tenant_a)
        with tenant_scope(tenant_a.id), pytest.raises(InvalidBytes):
            await storage_service.prepare_upload(gallery.id, value, "image/jpeg", "a.jpg", gateway)

    async def test_unknown_gallery(self, gateway, tenant_a):
        with tenant_scope(tenant_a.id), pytest.raises(GalleryNotFound):
            await storage_service.prepare_upload(9999, 10, "image/jpeg", "a.jpg", gateway)

    async def test_quota_pre_check(self, test_db, gateway, quota_tenant):
        gallery = await make_gallery(test_db, quota_tenant)
        with tenant_scope(quota_tenant.id):
            await storage_service.prepare_upload(gallery.id, 1000, "image/jpeg", "fits.jpg", gateway)
            with pytest.raises(StorageQuotaExceeded) as exc_info:
                await storage_service.prepare_upload(gallery.id, 1001, "image/jpeg", "too-big.jpg", gateway)
        assert exc_info.value.details["limit_bytes"] == 1000

    async def test_unenforced_quota_allows_anything(self, test_db, gateway):
        tenant = await make_tenant(test_db, "loose", storage_limit_bytes=10, storage_enforced=False)
        gallery = await make_gallery(test_db, tenant)
        with tenant_scope(tenant.id):
            prepared = await storage_service.prepare_upload(gallery.id, 10_000, "image/jpeg", "a.jpg", gateway)
        assert prepared.photo_id


class TestByteAccounting:
    async def test_finalize_charges_and_recharges_delta(self, test_db, session_factory, gateway, quota_tenant):
        gallery = await make_gallery(test_db, quota_tenant)
        with tenant_scope(quota_tenant.id):
            prepared = await storage_service.prepare_upload(gallery.id, 400, "image/jpeg", "a.jpg", gateway)
            await storage_service.finalize_upload(prepared.photo_id, 400, gateway, width=800, height=600)
            assert await _used_bytes(session_factory, quota_tenant.id) == 400

            photo = await storage_service.finalize_upload(prepared.photo_id, 300, gateway)
            assert await _used_bytes(session_factory, quota_tenant.id) == 300

        assert photo.bytes == 300
        assert (photo.width, photo.height) == (800, 600)

    async def test_concurrent_finalize_of_one_photo_charges_once(
        self, test_db, session_factory, gateway, quota_tenant
    ):
        gallery = await make_gallery(test_db, quota_tenant)
        with tenant_scope(quota_tenant.id):
            prepared = await storage_service.prepare_upload(gallery.id, 400, "image/jpeg", "a.jpg", gateway)
            photos = await asyncio.gather(
                storage_service.finalize_upload(prepared.photo_id, 400, gateway),
                storage_service.finalize_upload(prepared.photo_id, 400, gateway),
            )

        assert [photo.bytes for photo in photos] == [400, 400]
        assert await _used_bytes(session_factory, quota_tenant.id) == 400

    async def test_finalize_over_quota_rolls_back(self, test_db, session_factory, gateway, quota_tenant):
        gallery = await make_gallery(test_db, quota_tenant)
        with tenant_scope(quota_tenant.id):
            prepared = await storage_service.prepare_upload(gallery.id, 100, "image/jpeg", "a.jpg", gateway)
            with pytest.raises(StorageQuotaExceeded):
                await storage_service.finalize_upload(prepared.photo_id, 5000, gateway)
            photo = await photo_service.get_photo(prepared.photo_id, gateway)

        assert photo.bytes is None
        assert await _used_bytes(session_factory, quota_tenant.id) == 0

    async def test_delete_photo_frees_bytes(self, test_db, session_factory, gateway, quota_tenant):
        gallery = await make_gallery(test_db, quota_tenant)
        with tenant_scope(quota_tenant.id):
            prepared = await storage_service.prepare_upload(gallery.id, 250, "image/jpeg", "a.jpg", gateway)
            await storage_service.finalize_upload(prepared.photo_id, 250, gateway)

            assert await photo_service.delete_photo(prepared.photo_id, gateway) is True
            assert await photo_service.delete_photo(prepared.photo_id, gateway) is False

        assert await _used_bytes(session_factory, quota_tenant.id) == 0

    async def test_delete_gallery_frees_all_bytes(self, test_db, session_factory, gateway, quota_tenant):
        gallery = await make_gallery(test_db, quota_tenant)
        with tenant_scope(quota_tenant.id):
            for size in (100, 200):
                prepared = await storage_service.prepare_upload(gallery.id, size, "image/jpeg", "a.jpg", gateway)
                await storage_service.finalize_upload(prepared.photo_id, size, gateway)
            assert await _used_bytes(session_factory, quota_tenant.id) == 300

            assert await gallery_service.delete_gallery(gallery.id, gateway) is True
            assert await gallery_service.delete_gallery(gallery.id, gateway) is False

        assert await _used_bytes(session_factory, quota_tenant.id) == 0

    async def test_decrement_clamps_at_zero(self, session_factory, quota_tenant):
        async with session_factory() as db:
            async with db.begin():
                tenant = await adjust_storage_usage(quota_tenant.id, -500, db)
        assert tenant.storage_used_bytes == 0

    async def test_non_integer_delta_rejected(self, test_db, quota_tenant):
        with pytest.raises(InvalidBytes):
            await adjust_storage_usage(quota_tenant.id, 1.5, test_db)
