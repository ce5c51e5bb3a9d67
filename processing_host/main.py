"""FastAPI application entry point."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.responses import JSONResponse

from processing_host.config import configure_logging, get_settings
from processing_host.database import dispose_engine, initialize_database
from processing_host.domain.common import DomainError
from processing_host.exceptions import CommandFailedError, ProcessingHostError, status_for_kind
from processing_host.infrastructure.common.rate_limit import limiter
from processing_host.infrastructure.processing.routers import dashboard, demo, rest

settings = get_settings()
configure_logging(settings.ENVIRONMENT)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    initialize_database(settings)
    logger.info(f"{settings.PROJECT_NAME} {settings.VERSION} started ({settings.ENVIRONMENT})")
    yield
    dispose_engine()


async def processing_host_error_handler(
    _request: Request, exc: ProcessingHostError
) -> JSONResponse:
    content: dict[str, object] = {"detail": exc.message}
    if isinstance(exc, CommandFailedError):
        content["kind"] = str(exc.kind)
        content["command_index"] = exc.command_index
    return JSONResponse(status_code=exc.status_code, content=content)


async def domain_error_handler(_request: Request, exc: DomainError) -> JSONResponse:
    return JSONResponse(
        status_code=status_for_kind(exc.kind),
        content={"detail": exc.message, "kind": str(exc.kind)},
    )


def create_app() -> FastAPI:
    # API documentation is only published in development
    is_development = settings.ENVIRONMENT == "development"
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        lifespan=lifespan,
        docs_url="/swagger" if is_development else None,
        redoc_url=None,
        openapi_url=f"/swagger/{settings.API_GROUP_NAME}/swagger.json" if is_development else None,
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)  # type: ignore[arg-type]
    app.add_exception_handler(ProcessingHostError, processing_host_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(DomainError, domain_error_handler)  # type: ignore[arg-type]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(demo.router)
    app.include_router(rest.router)
    app.include_router(dashboard.router)

    @app.get("/")
    async def root() -> dict[str, str]:
        return {"message": f"Welcome to {settings.PROJECT_NAME}"}

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "healthy"}

    return app


app = create_app()
