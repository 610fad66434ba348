import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from proofdesk.config import settings
from proofdesk.database import Base, dispose_engine, engine
from proofdesk.exception_handlers import register_exception_handlers
from proofdesk.middleware.logging import StructuredLoggingMiddleware, setup_structured_logging
from proofdesk.middleware.tenant import TenantMiddleware
from proofdesk.routes import admin, auth, billing, galleries, proof_selection, storage, tenant_domain

setup_structured_logging(
    log_level="DEBUG" if settings.debug else settings.log_level,
    json_format=settings.log_json or settings.environment == "production",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Tasks to run at application startup and shutdown."""
    logger.info("Starting up %s (%s)", settings.app_name, settings.environment)
    if settings.debug:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created (if not existing).")
    yield
    logger.info("Shutting down the application...")
    await dispose_engine()


def create_app() -> FastAPI:
    """Create the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        description="Multi-tenant photo proofing backend",
        debug=settings.debug,
        version=settings.app_version,
        lifespan=lifespan,
    )

    # Middleware: last added runs first
    app.add_middleware(TenantMiddleware)
    app.add_middleware(StructuredLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(auth.router)
    app.include_router(galleries.router)
    app.include_router(proof_selection.router)
    app.include_router(tenant_domain.router)
    app.include_router(admin.router)
    app.include_router(billing.router)
    if settings.environment != "production":
        app.include_router(storage.router)

    @app.get("/health", tags=["Root"])
    async def health():
        return {"status": "ok"}

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=settings.debug)
