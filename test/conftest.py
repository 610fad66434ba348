"""
Pytest configuration and fixtures for ProofDesk tests

Every test that needs a database gets its own SQLite file under tmp_path.
NullPool hands each session a fresh connection, so concurrent transactions
in one test really run on separate connections.
"""

import os
import sys
from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))  # noqa: PTH100, PTH118, PTH120

# Configure settings BEFORE importing the app
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SECRET_KEY", "test-secret-key-with-at-least-32-characters")
os.environ.setdefault("MAIN_DOMAIN", "proofdesk.test")

from proofdesk.auth import (  # noqa: E402
    create_client_gallery_session_token,
    create_master_admin_session_token,
    create_tenant_session_token,
    hash_password,
)
from proofdesk.config import settings  # noqa: E402
from proofdesk.database import Base, TenantGateway, get_db, get_gateway  # noqa: E402
from proofdesk.models import Gallery, GalleryAccessMode, Photo, Tenant, User  # noqa: E402
from proofdesk.models.tenant import BillingStatus, TenantStatus  # noqa: E402
from proofdesk.utils.request_scope import tenant_scope  # noqa: E402

CLIENT_USERNAME = "client-ann"
CLIENT_PASSWORD = "proof-pass-1"


@pytest.fixture
async def test_engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, autoflush=False, expire_on_commit=False)


@pytest.fixture
async def test_db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def gateway(session_factory) -> TenantGateway:
    return TenantGateway(session_factory)


async def make_tenant(
    db: AsyncSession,
    slug: str,
    billing_status: str = BillingStatus.ACTIVE.value,
    status: str = TenantStatus.ACTIVE.value,
    storage_limit_bytes: int | None = None,
    storage_enforced: bool = False,
) -> Tenant:
    tenant = Tenant(
        name=slug.title(),
        slug=slug,
        status=status,
        billing_status=billing_status,
        storage_used_bytes=0,
        storage_limit_bytes=storage_limit_bytes,
        storage_enforced=storage_enforced,
    )
    db.add(tenant)
    await db.commit()
    return tenant


async def make_gallery(
    db: AsyncSession,
    tenant: Tenant,
    access_mode: str = GalleryAccessMode.PRIVATE.value,
    max_selections: int | None = None,
    title: str = "Wedding",
) -> Gallery:
    private = access_mode == GalleryAccessMode.PRIVATE.value
    gallery = Gallery(
        tenant_id=tenant.id,
        title=title,
        access_mode=access_mode,
        client_username=CLIENT_USERNAME if private else None,
        client_password_hash=hash_password(CLIENT_PASSWORD) if private else None,
        max_selections=max_selections,
    )
    db.add(gallery)
    await db.commit()
    return gallery


async def make_photo(db: AsyncSession, gallery: Gallery, size_bytes: int | None = None, sort_order: int = 0) -> Photo:
    photo = Photo(
        tenant_id=gallery.tenant_id,
        gallery_id=gallery.id,
        original_filename=f"img-{sort_order}.jpg",
        mime_type="image/jpeg",
        bytes=size_bytes,
        sort_order=sort_order,
    )
    db.add(photo)
    await db.commit()
    return photo


@pytest.fixture
async def tenant_a(test_db) -> Tenant:
    return await make_tenant(test_db, "acme")


@pytest.fixture
async def tenant_b(test_db) -> Tenant:
    return await make_tenant(test_db, "globex")


@pytest.fixture
async def private_gallery(test_db, tenant_a) -> Gallery:
    return await make_gallery(test_db, tenant_a, max_selections=2)


@pytest.fixture
async def photos(test_db, private_gallery) -> list[Photo]:
    return [await make_photo(test_db, private_gallery, sort_order=i) for i in range(3)]


@pytest.fixture
def scoped():
    """Open a tenant scope: ``with scoped(tenant.id): ...``"""
    return tenant_scope


# ── HTTP client ────────────────────────────────────────────────────────────────


@pytest.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Async client for the app with the database dependencies pointed at the test database."""
    from main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_gateway] = lambda: TenantGateway(session_factory)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac

    app.dependency_overrides.clear()


def login_tenant(client: AsyncClient, tenant: Tenant, email: str = "owner@example.com") -> None:
    client.cookies.set(settings.session_cookie_name, create_tenant_session_token(email, tenant.id))


def login_client(client: AsyncClient, tenant_id: int, gallery_id: int) -> None:
    client.cookies.set(settings.client_gallery_cookie_name, create_client_gallery_session_token(tenant_id, gallery_id))


def login_master_admin(client: AsyncClient) -> None:
    client.cookies.set(settings.session_cookie_name, create_master_admin_session_token(settings.master_admin_username))


@pytest.fixture
async def tenant_user(test_db, tenant_a) -> User:
    user = User(email="owner@example.com", hashed_password=hash_password("owner-password"), tenant_id=tenant_a.id)
    test_db.add(user)
    await test_db.commit()
    return user
