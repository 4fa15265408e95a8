"""EchoCity FastAPI application entry point.

Creates the FastAPI app, configures middleware, includes routers, and
manages the lifecycle of all backend services (store, cache, directory,
session resolver, lifecycle controller, advisory, complaints).
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx
import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from config.settings import settings
from src.api.router import api_router
from src.api.v1 import analyze
from src.services.errors import EchoCityError, IllegalTransitionError

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Structured logging configuration
# ---------------------------------------------------------------------------


def _configure_logging() -> None:
    """Set up structlog with JSON or console rendering based on settings."""
    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.log_format == "json":
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelNamesMapping().get(settings.log_level.upper(), logging.INFO),
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Application lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage startup and shutdown of all EchoCity services.

    On startup:
      1. Connect the record store (Supabase, or seeded in-memory store)
      2. Initialise cache manager and category directory
      3. Create the session resolver and lifecycle controller
      4. Initialise the LLM and advisory services
      5. Create the complaint service
      6. Store everything on ``app.state``

    On shutdown:
      - Close all HTTP clients and caches gracefully.
    """
    _configure_logging()
    logger.info(
        "app.startup",
        env=settings.env,
        store="supabase" if settings.supabase_url else "memory",
        gcp_project=settings.gcp_project_id,
    )

    app.state.start_time = time.time()

    # -- 1. Record store / auth / file storage ------------------------------
    from src.services.store import InMemoryStore
    from src.services.supabase import SupabaseClient

    supabase: SupabaseClient | None = None
    if settings.supabase_url:
        supabase = SupabaseClient(
            settings.supabase_url,
            settings.supabase_anon_key,
            bucket=settings.storage_bucket,
            timeout=settings.remote_timeout,
        )
        store = supabase
        logger.info("app.supabase_initialised", bucket=settings.storage_bucket)
    else:
        from src.data.seed import seed_directory

        store = seed_directory(InMemoryStore())
        logger.warning("app.in_memory_store", note="SUPABASE_URL not set; data is not persisted")
    app.state.store = store

    # -- 2. Cache and category directory ------------------------------------
    from src.services.cache import CacheManager
    from src.services.directory import CategoryDirectory

    cache = CacheManager(
        redis_url=settings.redis_url if settings.redis_url else None,
        namespace="echocity:",
    )
    app.state.cache = cache
    directory = CategoryDirectory(store, cache, ttl_seconds=settings.directory_cache_ttl)
    app.state.directory = directory
    logger.info("app.directory_initialised")

    # -- 3. Sessions and lifecycle ------------------------------------------
    from src.services.lifecycle import ComplaintLifecycleController
    from src.services.session import SessionResolver

    app.state.session_resolver = SessionResolver(
        store,
        store,
        role_check_timeout=settings.role_check_timeout,
    )
    lifecycle = ComplaintLifecycleController(store)
    app.state.lifecycle = lifecycle

    # -- 4. LLM and advisory ------------------------------------------------
    from src.services.advisory import AdvisoryService

    llm = None
    if settings.gcp_project_id:
        try:
            from src.services.llm import LLMService

            llm = LLMService(
                project_id=settings.gcp_project_id,
                region=settings.vertex_ai_location,
                model_name=settings.vertex_ai_model,
            )
            logger.info("app.llm_initialised", model=settings.vertex_ai_model)
        except (KeyboardInterrupt, SystemExit):
            raise
        except BaseException:  # noqa: BLE001  pyo3 PanicException is a BaseException
            logger.warning("app.llm_init_failed", exc_info=True)
    else:
        logger.info("app.llm_disabled", note="GCP_PROJECT_ID not set; advisory returns no suggestions")

    webhook_http = httpx.AsyncClient(timeout=settings.ai_timeout)
    advisory = AdvisoryService(
        llm,
        http=webhook_http,
        analyze_url=settings.analyze_url,
        timeout=settings.ai_timeout,
        threshold=settings.auto_apply_confidence,
    )
    app.state.advisory = advisory

    # -- 5. Complaints ------------------------------------------------------
    from src.services.complaints import ComplaintService

    app.state.complaints = ComplaintService(
        store,
        directory,
        storage=store,
        advisory=advisory,
    )

    logger.info("app.startup_complete")

    yield

    # -- Shutdown -----------------------------------------------------------
    logger.info("app.shutdown_start")

    await webhook_http.aclose()
    if supabase is not None:
        await supabase.close()
    await cache.close()

    logger.info("app.shutdown_complete")


# ---------------------------------------------------------------------------
# FastAPI application
# ---------------------------------------------------------------------------

app = FastAPI(
    title="EchoCity API",
    description=(
        "EchoCity -- civic complaint reporting.  Citizens file and track "
        "complaints about local issues; administrators review them and "
        "move them through their lifecycle, with optional AI assistance."
    ),
    version="0.1.0",
    lifespan=lifespan,
    default_response_class=ORJSONResponse,
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
)

# -- CORS middleware --------------------------------------------------------
# allow_credentials=True must not be combined with allow_origins=["*"].
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=settings.is_production,
    allow_methods=["GET", "POST", "PUT", "PATCH", "OPTIONS"],
    allow_headers=["Content-Type", "Accept", "Authorization"],
)


# -- Error rendering --------------------------------------------------------


@app.exception_handler(EchoCityError)
async def echocity_error_handler(request: Request, exc: EchoCityError) -> ORJSONResponse:
    error: dict = {
        "code": exc.code,
        "message": exc.message,
        "retryable": exc.retryable,
    }
    if isinstance(exc, IllegalTransitionError):
        error["current"] = exc.current
        error["allowed"] = exc.allowed

    log = logger.error if exc.status_code >= 500 else logger.info
    log("api.error", code=exc.code, status=exc.status_code, path=request.url.path)
    return ORJSONResponse(status_code=exc.status_code, content={"error": error})


# -- Include routers -------------------------------------------------------
app.include_router(api_router)
app.include_router(analyze.router)


@app.get("/api", response_class=ORJSONResponse)
async def api_info() -> dict:
    """API information endpoint."""
    return {
        "name": "EchoCity API",
        "description": "Civic complaint reporting and tracking",
        "version": app.version,
        "docs": "/docs",
        "health": "/api/v1/health",
        "endpoints": {
            "session": "/api/v1/session",
            "profile": "/api/v1/profile",
            "categories": "/api/v1/categories",
            "departments": "/api/v1/departments",
            "complaints": "/api/v1/complaints",
            "community": "/api/v1/community",
            "offices": "/api/v1/offices",
            "admin": "/api/v1/admin",
            "advisory": "/api/v1/advisory",
            "analyze": "/analyze",
        },
    }
