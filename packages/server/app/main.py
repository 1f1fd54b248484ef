"""
TeamHub API Server

Entry point for the FastAPI application.
"""

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import get_settings
from app.core.database import engine
from app.core.errors import error_response, register_exception_handlers
from app.core.middleware import CSRFMiddleware, SecurityHeadersMiddleware
from app.core.session import CSRF_HEADER
from app.api.v1 import router as api_v1_router
from app.api.v1.auth import router as auth_router

settings = get_settings()
log = structlog.get_logger()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="TeamHub",
        description="Organizations, teams, roles and invitations.",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # Middleware, outermost first
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(CSRFMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["Content-Type", CSRF_HEADER],
    )

    register_exception_handlers(app)

    app.include_router(auth_router, prefix="/auth", tags=["Authentication"])
    app.include_router(api_v1_router, prefix="/api/v1")

    @app.get("/health", tags=["System"])
    async def health_check():
        """Health check endpoint for liveness probes."""
        return {"status": "ok"}

    @app.get("/ready", tags=["System"])
    async def readiness_check():
        """Readiness check: the database must answer."""
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as exc:
            log.warning("readiness.database_unavailable", error=type(exc).__name__)
            return error_response(503, "Database unavailable")
        return {"status": "ready"}

    @app.on_event("startup")
    async def on_startup():
        log.info("TeamHub starting", debug=settings.debug)

    @app.on_event("shutdown")
    async def on_shutdown():
        log.info("TeamHub shutting down")
        await engine.dispose()

    return app


app = create_app()
