from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger

from agowash_api.core.errors import (
    DataIntegrityError,
    InsufficientPoints,
    InvalidPackage,
    LedgerUnavailable,
    LoyaltyError,
    NFTNotFound,
    UserAlreadyExists,
    UserNotFound,
)
from agowash_api.core.settings import settings
from agowash_api.db.session import async_session, dispose_engine
from agowash_api.services.blob import BlobStoreError
from .api.routes import api_router
from .core.logging import configure_logging
from .observability.tracing import configure_tracing
from .services.container import ServiceContainer


APP_VERSION = "0.1.0"

ERROR_STATUS: dict[type[LoyaltyError], int] = {
    UserNotFound: 404,
    NFTNotFound: 404,
    UserAlreadyExists: 400,
    InvalidPackage: 400,
    InsufficientPoints: 400,
    LedgerUnavailable: 502,
    BlobStoreError: 502,
    DataIntegrityError: 500,
}


def _status_for(exc: LoyaltyError) -> int:
    for error_type, status_code in ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return status_code
    return 500


async def loyalty_error_handler(request: Request, exc: LoyaltyError) -> JSONResponse:
    status_code = _status_for(exc)
    log = logger.error if status_code >= 500 else logger.info
    log(
        "Request failed",
        path=request.url.path,
        error_type=type(exc).__name__,
        status_code=status_code,
        error=str(exc),
    )
    return JSONResponse(status_code=status_code, content={"error": exc.title, "message": str(exc)})


@asynccontextmanager
async def lifespan(app: FastAPI):
    services: ServiceContainer | None = getattr(app.state, "services", None)
    owns_services = services is None
    if services is None:
        services = ServiceContainer.build(async_session)
        app.state.services = services

    await services.start()
    logger.info(
        "Loyalty services started",
        environment=settings.environment,
        chain=type(services.chain).__name__,
        blob_store=type(services.blob_store).__name__,
        free_wash_watcher=services.settings.free_wash_watcher_enabled,
    )

    try:
        yield
    finally:
        await services.stop()
        if owns_services:
            await dispose_engine()
        logger.info("Loyalty services stopped")


def create_app(services: ServiceContainer | None = None) -> FastAPI:
    """Application factory for the AGO WASH loyalty API.

    Passing ``services`` skips building them from settings; tests use this to
    inject in-memory collaborators.
    """
    configure_logging(
        service_name="agowash-api",
        environment=settings.environment,
        version=APP_VERSION,
        level=settings.log_level,
    )

    app = FastAPI(
        title="AGO WASH Loyalty API",
        version=APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    if services is not None:
        app.state.services = services

    configure_tracing(app, settings, service_name="agowash-api", service_version=APP_VERSION)

    app.add_exception_handler(LoyaltyError, loyalty_error_handler)
    app.include_router(api_router)

    @app.get("/healthz", tags=["Health"])
    async def health_check() -> dict[str, str]:
        return {
            "status": "ok",
            "environment": settings.environment,
            "version": APP_VERSION,
        }

    return app
