"""
FastAPI application factory.

Assembles the app, registers all routers and the error handler, and
wires up lifecycle events.  Database schema is managed by Alembic,
NOT create_all.
"""

import logging

from fastapi import FastAPI

from portal.controllers.admin_controller import router as admin_router
from portal.controllers.auth_controller import router as auth_router
from portal.controllers.portal_controller import router as portal_router
from portal.core.config import settings
from portal.core.database import engine
from portal.core.errors import PortalError, portal_error_handler
from portal.models import Base  # noqa: F401

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_exception_handler(PortalError, portal_error_handler)

    # ── Register routers ─────────────────────────────────────────────
    app.include_router(auth_router)
    app.include_router(portal_router)
    app.include_router(admin_router)

    # ── Shutdown ─────────────────────────────────────────────────────
    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        await engine.dispose()
        logger.info("Database engine disposed.")

    # ── Health check ─────────────────────────────────────────────────
    @app.get("/health", tags=["Health"])
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
