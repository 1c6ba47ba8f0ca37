from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from lms.api.admin import router as admin_router
from lms.api.announcements import router as announcements_router
from lms.api.auth import router as auth_router
from lms.api.blog import router as blog_router
from lms.api.certificates import router as certificates_router
from lms.api.consent import router as consent_router
from lms.api.courses import router as courses_router
from lms.api.health import router as health_router
from lms.api.leaderboard import router as leaderboard_router
from lms.api.metrics_endpoint import router as metrics_router
from lms.api.progress import router as progress_router
from lms.api.questions import router as questions_router
from lms.core.config import SETTINGS
from lms.core.errors import LmsError
from lms.core.logging import setup_logging
from lms.db.redis import lifespan_redis
from lms.middleware.metrics import MetricsMiddleware
from lms.middleware.request_context import (
    RequestContextMiddleware,
    install_request_filter,
)
from lms.services.container import Services, build_services

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
install_request_filter()

logger = logging.getLogger(__name__)


async def _handle_lms_error(request: Request, exc: LmsError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "%s on %s %s: %s",
            type(exc).__name__,
            request.method,
            request.url.path,
            exc.message,
            exc_info=exc.__cause__ is not None,
        )
    else:
        logger.warning(
            "%s on %s %s: %s",
            type(exc).__name__,
            request.method,
            request.url.path,
            exc.message,
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": {"message": exc.message}},
    )


def create_app(services: Services | None = None) -> FastAPI:
    """Build the app around a service container.

    Tests pass a container of in-memory services.  Without one, the
    container is built from SETTINGS.
    """
    services = services or build_services(SETTINGS)
    settings = services.settings

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
        try:
            async with lifespan_redis(services.redis):
                yield
        finally:
            await services.aclose()

    app = FastAPI(
        title="learning-service",
        lifespan=lifespan,
        docs_url="/docs" if settings.is_dev else None,
        redoc_url="/redoc" if settings.is_dev else None,
    )
    app.state.services = services

    app.add_exception_handler(LmsError, _handle_lms_error)  # type: ignore[arg-type]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Last-added runs first: RequestContext -> Metrics -> CORS -> route.
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestContextMiddleware)

    app.include_router(metrics_router)
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(courses_router)
    app.include_router(progress_router)
    app.include_router(certificates_router)
    app.include_router(questions_router)
    app.include_router(blog_router)
    app.include_router(announcements_router)
    app.include_router(leaderboard_router)
    app.include_router(admin_router)
    app.include_router(consent_router)

    logger.info(
        "learning-service configured  env=%s store=%s identity=%s docs=%s",
        settings.app_env,
        settings.document_store,
        settings.identity_provider,
        "on" if settings.is_dev else "off",
    )
    return app


app = create_app()
