"""FastAPI application entry point for contentflow-service.

Configures middleware, exception handlers, lifecycle hooks, and routes.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from contentflow.core.config import settings
from contentflow.db.session import create_all_tables
from contentflow.middleware.user_context import UserContextMiddleware
from contentflow.routes import health
from contentflow.routes.content import router as content_router
from contentflow.services.extractor import ContentExtractor
from contentflow.services.fetcher import PageFetcher
from contentflow.services.llm import GenerationOrchestrator, build_providers

# ---------------------------------------------------------------------------
# Logging Configuration
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=settings.get_log_level_int(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application startup / shutdown lifecycle."""
    # --- Startup ---
    logger.info(
        "Starting contentflow-service (env=%s, port=%d)",
        settings.service_env,
        settings.port,
    )

    # Ensure tables exist (dev convenience - production uses alembic)
    if settings.service_env == "development":
        try:
            import contentflow.models  # noqa: F401

            create_all_tables()
            logger.info("Database tables ensured (dev mode)")
        except Exception:
            logger.warning(
                "Could not auto-create tables (database may not be available). "
                "Use 'alembic upgrade head' to create tables."
            )

    app.state.fetcher = PageFetcher(
        timeout_seconds=settings.fetch_timeout_seconds,
        user_agent=settings.fetch_user_agent,
    )
    app.state.extractor = ContentExtractor(
        max_chars=settings.max_content_chars,
        min_candidate_chars=settings.min_candidate_chars,
    )
    app.state.orchestrator = GenerationOrchestrator(
        build_providers(settings),
        fallback_models=settings.get_fallback_models(),
        retry_attempts=settings.generation_retry_attempts,
        backoff_base_seconds=settings.generation_backoff_base_seconds,
    )

    yield

    # --- Shutdown ---
    logger.info("Shutting down contentflow-service")


# ---------------------------------------------------------------------------
# App instance
# ---------------------------------------------------------------------------

app = FastAPI(
    title="contentflow API",
    version="0.1.0",
    docs_url="/docs",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(UserContextMiddleware)


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    """Log every request with method, path, status, and duration."""
    start = time.monotonic()
    response = await call_next(request)
    duration_ms = (time.monotonic() - start) * 1000
    logger.info(
        "%s %s -> %d (%.1fms)",
        request.method,
        request.url.path,
        response.status_code,
        duration_ms,
    )
    return response


# ---------------------------------------------------------------------------
# Global exception handler
# ---------------------------------------------------------------------------


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler that returns a structured JSON error."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "An unexpected error occurred.",
            "code": "INTERNAL_ERROR",
        },
    )


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

# Health check at /health (no prefix) and model health at /api/v1/models/health
app.include_router(health.router)

# Content routes (prefixed with /api/v1/content)
app.include_router(content_router)


# Additional health endpoint under API prefix for consistency
@app.get("/api/v1/health", tags=["health"])
async def api_health_check():
    """Health check under the /api/v1 prefix."""
    return {
        "status": "ok",
        "name": health.SERVICE_NAME,
        "version": health.SERVICE_VERSION,
        "environment": settings.service_env,
    }
