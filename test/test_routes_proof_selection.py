"""
Client Proofing Route Tests

Requests reach the tenant through the X-Forwarded-Host header the edge proxy
sets, e.g. ``acme.proofdesk.test``.
"""

import pytest

from conftest import CLIENT_PASSWORD, CLIENT_USERNAME, login_client, login_tenant, make_gallery
from proofdesk.config import settings
from proofdesk.models.gallery import GalleryAccessMode
from proofdesk.models.tenant import BillingStatus

ACME_HOST = {"x-forwarded-host": "acme.proofdesk.test"}
GLOBEX_HOST = {"x-forwarded-host": "globex.proofdesk.test"}


def _url(gallery_id, suffix=""):
    return f"/api/p/galleries/{gallery_id}{suffix}"


# ══════════════════════════════════════════════════════════════════════════════
# 1. Client login
# ══════════════════════════════════════════════════════════════════════════════


class TestClientLogin:
    async def test_login_sets_client_cookie(self, client, private_gallery):
        response = await client.post(
            _url(private_gallery.id, "/login"),
            json={"username": CLIENT_USERNAME, "password": CLIENT_PASSWORD},
            headers=ACME_HOST,
        )
        assert response.status_code == 200
        assert response.json()["ok"] is True
        assert settings.client_gallery_cookie_name in response.cookies

    async def test_wrong_password(self, client, private_gallery):
        response = await client.post(
            _url(private_gallery.id, "/login"),
            json={"username": CLIENT_USERNAME, "password": "nope"},
            headers=ACME_HOST,
        )
        assert response.status_code == 401
        assert response.json()["error"] == "INVALID_CREDENTIALS"

    async def test_public_gallery(self, client, test_db, tenant_a):
        gallery = await make_gallery(test_db, tenant_a, access_mode=GalleryAccessMode.PUBLIC.value)
        response = await client.post(
            _url(gallery.id, "/login"), json={"username": "x", "password": "y"}, headers=ACME_HOST
        )
        assert response.status_code == 400
        assert response.json()["error"] == "GALLERY_NOT_PRIVATE"

    async def test_gallery_of_other_tenant_host(self, client, private_gallery, tenant_b):
        response = await client.post(
            _url(private_gallery.id, "/login"),
            json={"username": CLIENT_USERNAME, "password": CLIENT_PASSWORD},
            headers=GLOBEX_HOST,
        )
        assert response.status_code == 404
        assert response.json()["error"] == "GALLERY_NOT_FOUND"


# ══════════════════════════════════════════════════════════════════════════════
# 2. Tenant resolution at the route boundary
# ══════════════════════════════════════════════════════════════════════════════


class TestTenantResolution:
    async def test_unknown_slug(self, client, private_gallery):
        response = await client.get(
            _url(private_gallery.id, "/selection"), headers={"x-forwarded-host": "nope.proofdesk.test"}
        )
        assert response.status_code == 404
        assert response.json()["error"] == "TENANT_NOT_FOUND"

    @pytest.mark.parametrize("host", ["localhost:8000", "127.0.0.1"])
    async def test_host_without_tenant(self, client, private_gallery, host):
        response = await client.get(_url(private_gallery.id, "/selection"), headers={"x-forwarded-host": host})
        assert response.status_code == 400
        assert response.json()["error"] == "TENANT_REQUIRED"

    async def test_tenant_session_beats_host(self, client, test_db, tenant_a, tenant_b):
        gallery_b = await make_gallery(test_db, tenant_b)
        login_tenant(client, tenant_b)
        login_client(client, tenant_b.id, gallery_b.id)

        # Host names tenant_a; the verified session for tenant_b wins
        response = await client.get(_url(gallery_b.id, "/selection"), headers=ACME_HOST)
        assert response.status_code == 200

    async def test_inactive_billing_session_falls_back_to_host(self, client, test_db, tenant_a):
        tenant_a.billing_status = BillingStatus.PENDING.value
        await test_db.commit()
        gallery = await make_gallery(test_db, tenant_a)
        login_tenant(client, tenant_a)
        login_client(client, tenant_a.id, gallery.id)

        response = await client.get(_url(gallery.id, "/selection"), headers=ACME_HOST)
        assert response.status_code == 200


# ══════════════════════════════════════════════════════════════════════════════
# 3. Selection endpoints
# ══════════════════════════════════════════════════════════════════════════════


class TestSelectionRoutes:
    async def test_requires_client_session(self, client, private_gallery):
        response = await client.get(_url(private_gallery.id, "/selection"), headers=ACME_HOST)
        assert response.status_code == 401
        assert response.json()["error"] == "UNAUTHORIZED"

    async def test_client_session_for_other_gallery(self, client, test_db, tenant_a, private_gallery):
        other = await make_gallery(test_db, tenant_a, title="Other")
        login_client(client, tenant_a.id, other.id)
        response = await client.get(_url(private_gallery.id, "/selection"), headers=ACME_HOST)
        assert response.status_code == 401

    async def test_get_creates_draft_lazily(self, client, tenant_a, private_gallery):
        login_client(client, tenant_a.id, private_gallery.id)
        response = await client.get(_url(private_gallery.id, "/selection"), headers=ACME_HOST)

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "DRAFT"
        assert body["submittedAt"] is None
        assert body["items"] == []

    async def test_full_proofing_flow(self, client, tenant_a, private_gallery, photos):
        p1, p2, p3 = photos
        await client.post(
            _url(private_gallery.id, "/login"),
            json={"username": CLIENT_USERNAME, "password": CLIENT_PASSWORD},
            headers=ACME_HOST,
        )
        items_url = _url(private_gallery.id, "/selection/items")
        submit_url = _url(private_gallery.id, "/selection/submit")

        for photo in (p1, p2, p3):
            response = await client.post(items_url, json={"photoId": photo.id}, headers=ACME_HOST)
            assert response.status_code == 200
        assert len(response.json()["items"]) == 3

        response = await client.post(submit_url, headers=ACME_HOST)
        assert response.status_code == 409
        assert response.json()["error"] == "MAX_SELECTIONS_EXCEEDED"

        response = await client.request("DELETE", items_url, json={"photoId": p3.id}, headers=ACME_HOST)
        assert response.status_code == 200
        assert sorted(i["photoId"] for i in response.json()["items"]) == sorted([p1.id, p2.id])

        response = await client.post(submit_url, headers=ACME_HOST)
        assert response.status_code == 200
        assert response.json()["status"] == "SUBMITTED"
        assert response.json()["submittedAt"] is not None

        response = await client.post(items_url, json={"photoId": p1.id}, headers=ACME_HOST)
        assert response.status_code == 409
        assert response.json()["error"] == "SELECTION_SUBMITTED"

    async def test_unknown_photo(self, client, tenant_a, private_gallery):
        login_client(client, tenant_a.id, private_gallery.id)
        response = await client.post(
            _url(private_gallery.id, "/selection/items"), json={"photoId": 98765}, headers=ACME_HOST
        )
        assert response.status_code == 404
        assert response.json()["error"] == "PHOTO_NOT_FOUND"

    async def test_submit_without_selection(self, client, tenant_a, private_gallery):
        login_client(client, tenant_a.id, private_gallery.id)
        response = await client.post(_url(private_gallery.id, "/selection/submit"), headers=ACME_HOST)
        assert response.status_code == 404
        assert response.json()["error"] == "SELECTION_NOT_FOUND"

    async def test_missing_photo_id(self, client, tenant_a, private_gallery):
        login_client(client, tenant_a.id, private_gallery.id)
        response = await client.post(_url(private_gallery.id, "/selection/items"), json={}, headers=ACME_HOST)
        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_BODY"

    async def test_response_carries_request_id(self, client, tenant_a, private_gallery):
        login_client(client, tenant_a.id, private_gallery.id)
        response = await client.get(
            _url(private_gallery.id, "/selection"), headers={**ACME_HOST, "X-Request-ID": "req-123"}
        )
        assert response.headers["X-Request-ID"] == "req-123"
