"""Application configuration and router setup."""

import logging
from contextlib import asynccontextmanager

import fastapi
from fastapi.middleware import cors
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from chitfund.core import init_db
from chitfund.core.config import get_settings
from chitfund.core.logging_config import configure_logging
from restapi.endpoints import (
    auctions,
    audit_log,
    auth,
    branches,
    chit_groups,
    customers,
    eligibility,
    health_check,
    loans,
    notifications,
    qrcodes,
    reports,
    risk,
    users,
)

logger = logging.getLogger(__name__)

TITLE = "Chit Fund Admin API"
DESCRIPTION = "Branch, customer, chit group, auction and loan administration"
VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: fastapi.FastAPI):
    await init_db.db_manager.create_tables()
    logger.info("Database tables ready")
    yield


async def database_error_handler(request: fastapi.Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Database error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Database error"})


def create_app() -> fastapi.FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)

    app = fastapi.FastAPI(
        title=TITLE,
        description=DESCRIPTION,
        version=VERSION,
        debug=settings.DEBUG,
        lifespan=lifespan,
    )

    # Initialize database
    init_db.init_db(app)

    # Add CORS middleware
    app.add_middleware(
        cors.CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(SQLAlchemyError, database_error_handler)

    # Include routers
    app.include_router(health_check.router)
    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(branches.router)
    app.include_router(customers.router)
    app.include_router(eligibility.router)
    app.include_router(chit_groups.router)
    app.include_router(auctions.router)
    app.include_router(loans.router)
    app.include_router(qrcodes.router)
    app.include_router(notifications.router)
    app.include_router(risk.router)
    app.include_router(audit_log.router)
    app.include_router(reports.router)

    def custom_openapi():
        if app.openapi_schema:
            return app.openapi_schema
        openapi_schema = get_openapi(
            title=TITLE,
            version=VERSION,
            description=DESCRIPTION,
            routes=app.routes,
        )
        app.openapi_schema = openapi_schema
        return app.openapi_schema

    app.openapi = custom_openapi

    return app
