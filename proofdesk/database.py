from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from proofdesk.config import settings
from proofdesk.utils.request_scope import require_scoped_tenant_id
import logging

logger = logging.getLogger(__name__)

# Environment-based configurations
if settings.environment == "production":
    engine = create_async_engine(
        settings.database_url,
        pool_size=20,
        max_overflow=50,
        pool_timeout=60,
        pool_recycle=1800,
    )
else:
    engine = create_async_engine(
        settings.database_url,
        echo=settings.debug,
        pool_pre_ping=True,
    )

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    autoflush=False,
    expire_on_commit=False,
)

Base = declarative_base()


class TenantGateway:
    """
    The single funnel for tenant-owned data access.

    Both context managers read the ambient tenant id *before* a connection is
    checked out, so a call outside a tenant scope fails with
    ``TenantScopeMissing`` and performs no I/O. Callers receive the scoped
    tenant id together with the session and must put it in every predicate.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @asynccontextmanager
    async def session(self) -> AsyncIterator[tuple[AsyncSession, int]]:
        tenant_id = require_scoped_tenant_id()
        async with self._session_factory() as db:
            yield db, tenant_id

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[tuple[AsyncSession, int]]:
        """Like ``session()`` but commits on success and rolls back on error."""
        tenant_id = require_scoped_tenant_id()
        async with self._session_factory() as db:
            async with db.begin():
                yield db, tenant_id


async def get_db():
    async with AsyncSessionLocal() as db:
        try:
            yield db
        except Exception as e:
            logger.error("Database session error: %s", e)
            raise


def get_gateway() -> TenantGateway:
    return TenantGateway(AsyncSessionLocal)


async def dispose_engine() -> None:
    await engine.dispose()
    logger.info("Database engine disposed.")
