"""SCM Workflow API — FastAPI application factory."""


import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from scm_api.core.config import settings
from scm_api.core.exceptions import register_exception_handlers
from scm_api.middleware.request_log import RequestLogMiddleware
from scm_api.schemas.common import HealthResponse
from scm_api.services.notifier import NotificationDispatcher, build_transport

# v1 routers
from scm_api.routers.v1.audit import router as audit_v1_router
from scm_api.routers.v1.claims import router as claims_v1_router
from scm_api.routers.v1.ratings import router as ratings_v1_router
from scm_api.routers.v1.transitions import router as transitions_v1_router

logger = logging.getLogger(__name__)


def _configure_logging() -> None:
    """Set up structured logging for the application."""
    level = logging.DEBUG if settings.app_env == "development" else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
        force=True,
    )
    # Quiet noisy libraries
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # The dispatcher's worker must run on the server's event loop
    dispatcher = NotificationDispatcher(
        build_transport(settings), maxsize=settings.notification_queue_size
    )
    app.state.notifier = dispatcher
    dispatcher.start()
    logger.info(
        "Notification dispatcher started (%s)",
        "smtp" if settings.mail_enabled else "log only",
    )
    try:
        yield
    finally:
        await dispatcher.stop()


def create_app() -> FastAPI:
    _configure_logging()

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.app_env == "development" else None,
        redoc_url="/redoc" if settings.app_env == "development" else None,
    )

    # --- CORS ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    # --- Request logging ---
    app.add_middleware(RequestLogMiddleware)

    # --- Global exception handlers ---
    register_exception_handlers(app)

    # --- v1 API routes (/api/v1/*) ---
    app.include_router(claims_v1_router, prefix="/api/v1")
    app.include_router(ratings_v1_router, prefix="/api/v1")
    app.include_router(transitions_v1_router, prefix="/api/v1")
    app.include_router(audit_v1_router, prefix="/api/v1")

    # --- Health check ---
    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health():
        return HealthResponse(
            app=settings.app_name,
            env=settings.app_env,
            version=app.version,
            mail_delivery="smtp" if settings.mail_enabled else "log",
        )

    return app


app = create_app()
