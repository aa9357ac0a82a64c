"""FastAPI application factory and main entry point."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from approvalflow import __version__
from approvalflow.api.v1 import api_router
from approvalflow.core.config import get_settings
from approvalflow.core.exceptions import (
    ApprovalError,
    ConcurrentModificationError,
    InvalidStateError,
    NotAuthorizedApproverError,
    NotFoundError,
    ValidationError,
)
from approvalflow.core.logging import configure_logging
from approvalflow.services.approval import get_approval_workflow_engine

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: dict[type[ApprovalError], int] = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    InvalidStateError: status.HTTP_409_CONFLICT,
    NotAuthorizedApproverError: status.HTTP_403_FORBIDDEN,
    # Starlette renamed its 422 constant between releases
    ValidationError: 422,
    ConcurrentModificationError: status.HTTP_409_CONFLICT,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager for startup/shutdown events."""
    # Startup
    settings = get_settings()
    app.state.settings = settings
    configure_logging(settings)

    engine = get_approval_workflow_engine()
    await engine.store.initialize()
    logger.info(
        "Approval service started (store=%s, environment=%s)",
        settings.store_backend,
        settings.environment,
    )

    yield

    # Shutdown
    logger.info("Approval service stopping")


async def approval_error_handler(request: Request, exc: ApprovalError) -> JSONResponse:
    """Render engine errors with their code and retryable flag."""
    status_code = _STATUS_BY_ERROR.get(type(exc), status.HTTP_400_BAD_REQUEST)
    log = logger.warning if exc.retryable else logger.info
    log("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=status_code, content=exc.to_dict())


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        description="Multi-level approval workflow API",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ApprovalError, approval_error_handler)

    # Register routes
    register_routes(app)

    return app


def register_routes(app: FastAPI) -> None:
    """Register all application routes."""
    settings = get_settings()

    # Include API router
    app.include_router(api_router, prefix=settings.api_v1_prefix)

    @app.get("/health", tags=["System"])
    async def health_check():
        """Health check endpoint for load balancers and monitoring."""
        return {
            "status": "healthy",
            "version": __version__,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }


# Create application instance
app = create_app()
