"""Tempo — FastAPI Application Entry Point."""

import logging
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from tempo.config import Settings, settings as default_settings
from tempo.database import Database
from tempo.middleware.error_handling import setup_error_handling
from tempo.middleware.rate_limit import limiter
from tempo.routers import analysis, auth, pieces, practice, students, teachers
from tempo.services.ai_client import ai_health_check, ai_provider_name

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    """Build the API with its own database handle.

    Tests pass an in-memory ``Database``; production builds one from
    ``DATABASE_URL``.

    ``settings`` only drives what is wired here: logging, the database URL,
    DEBUG error details and CORS. Routers, audio storage, the AI client and
    the rate limiter read the module-level ``tempo.config.settings``.
    """
    settings = settings or default_settings
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="Tempo",
        description="Practice tracking for music teachers and their students.",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.state.database = database or Database(settings.DATABASE_URL, echo=settings.DEBUG)
    app.state.database.create_all()

    # Rate limiting
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    setup_error_handling(app, debug=settings.DEBUG)

    # CORS origins from env (supports dev localhost + production domain)
    cors_origins = [o.strip() for o in settings.ALLOWED_ORIGINS.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(auth.router)
    app.include_router(students.router)
    app.include_router(teachers.router)
    app.include_router(pieces.router)
    app.include_router(practice.router)
    app.include_router(analysis.router)

    @app.on_event("startup")
    async def on_startup():
        """Create the upload directory and log the AI provider."""
        if not settings.BLOB_READ_WRITE_TOKEN:
            Path(settings.UPLOAD_DIR).mkdir(parents=True, exist_ok=True)
            logger.info("Blob storage not configured, audio stored under %s", settings.UPLOAD_DIR)

        provider = ai_provider_name()
        if provider == "none":
            logger.warning(
                "AI NOT CONFIGURED: set ANTHROPIC_API_KEY in backend/.env and restart. "
                "Analyses use the built-in fallback until then."
            )
        else:
            logger.info("AI provider: %s", provider)

    @app.on_event("shutdown")
    def on_shutdown():
        app.state.database.dispose()

    @app.get("/")
    def root():
        return {
            "name": "Tempo Practice Tracker API",
            "version": "1.0.0",
            "docs": "/docs",
            "ai_provider": ai_provider_name(),
        }

    @app.get("/health")
    def health():
        return {"status": "ok", "ai_provider": ai_provider_name()}

    @app.get("/api/health/ai")
    async def health_ai():
        """Live connectivity test for the configured AI provider.

        Returns:
            provider: which AI is active
            status:   "ok" | "error" | "unconfigured"
            test_reply / error: result of a tiny test call
        """
        return await ai_health_check()

    return app


app = create_app()
