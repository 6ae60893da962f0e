"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from workforce_payroll.api.routes import (
    approvals_router,
    attendance_router,
    config_router,
    health_router,
    payroll_router,
)
from workforce_payroll.config import configure_logging, get_settings
from workforce_payroll.container import ServiceContainer
from workforce_payroll.database import dispose_db, init_db
from workforce_payroll.repositories.sql import create_sql_repositories

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Wire services to the configured database unless a container was injected."""
    configure_logging()
    owns_database = app.state.container is None
    if owns_database:
        engine, session_factory = init_db()
        repositories = create_sql_repositories(
            session_factory, month_lock_ttl=get_settings().month_lock_ttl
        )
        app.state.container = ServiceContainer.build(repositories)
        logger.info("Service container bound to %s", engine.url.render_as_string())
    yield
    if owns_database:
        app.state.container = None
        await dispose_db()


def create_app(container: ServiceContainer | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Tests pass a ready container; without one the app connects to the
    configured database on startup.
    """
    app = FastAPI(
        title="Workforce Payroll API",
        description="Attendance, payroll months and approval workflows",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(get_settings().cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Error-Code"],
    )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "An unexpected error occurred", "code": "internal_error"},
        )

    app.include_router(health_router)
    for router in (payroll_router, approvals_router, attendance_router, config_router):
        app.include_router(router, prefix=API_PREFIX)

    return app


app = create_app()
