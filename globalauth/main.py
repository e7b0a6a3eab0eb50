#!/usr/bin/env python3
"""
GlobalAuth - Main Entry Point

This is the thin orchestration layer that:
1. Loads configuration
2. Initializes modules
3. Runs the API server

All business logic is in the modules, following black box principles.
"""

import logging
import logging.config as log_config
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from globalauth import __version__
from globalauth.config.provider import ConfigProvider, EnvConfigProvider
from globalauth.logging_config import get_logging_config
from globalauth.modules.admission import AdmissionGate
from globalauth.modules.api.models import HealthResponse
from globalauth.modules.api.routes import create_users_router
from globalauth.modules.config import get_config
from globalauth.modules.middleware import (
    DefaultHeadersMiddleware,
    create_admission_middleware,
    failed_envelope,
)

# Import modules through their black box interfaces
from globalauth.modules.session import SessionFactory, SessionOrchestrator
from globalauth.modules.storage import StorageFactory, create_redis_client

logger = logging.getLogger(__name__)

HTTP_MESSAGES = {
    404: "We couldn't find that.",
    405: "Incorrect HTTP method header for this endpoint.",
}


def create_app(
    config_provider: Optional[ConfigProvider] = None,
    orchestrator: Optional[SessionOrchestrator] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config_provider: Configuration provider (environment by default)
        orchestrator: Prebuilt orchestrator; when omitted the lifespan builds
            one from configuration and owns its store

    Returns:
        Configured FastAPI application
    """
    config_provider = config_provider or EnvConfigProvider()
    api_config = config_provider.get_api_config()
    admission_config = config_provider.get_admission_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Manage application lifecycle - initialize and cleanup resources.
        """
        logger.info("Starting GlobalAuth API...")
        owned_store = None

        if app.state.orchestrator is None:
            storage_config = config_provider.get_storage_config()
            redis_client = None
            if storage_config.backend == "redis":
                redis_client = create_redis_client(storage_config)

            owned_store = StorageFactory.build(storage_config, redis_client)
            app.state.orchestrator = SessionFactory.build(config_provider, owned_store, redis_client)

        logger.info("GlobalAuth API started successfully")

        yield

        logger.info("Shutting down GlobalAuth API...")
        if owned_store is not None:
            await owned_store.close()
            app.state.orchestrator = None
        logger.info("GlobalAuth API shutdown complete")

    app = FastAPI(
        title="GlobalAuth API",
        description="GlobalAuth - Credential issuance and session service",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.orchestrator = orchestrator
    app.state.admission_gate = AdmissionGate(
        limit=admission_config.limit,
        window_seconds=admission_config.window_seconds,
    )

    admission = create_admission_middleware(app.state.admission_gate)
    default_headers = DefaultHeadersMiddleware(server_name=api_config.server_name)

    @app.middleware("http")
    async def admit(request: Request, call_next):
        return await admission(request, call_next)

    @app.middleware("http")
    async def add_default_headers(request: Request, call_next):
        return await default_headers(request, call_next)

    # Registered last so it runs first and answers preflights
    app.add_middleware(
        CORSMiddleware,
        allow_origins=api_config.cors_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    app.include_router(create_users_router())

    # Health/Monitoring Endpoints

    @app.get("/healthz")
    async def healthz():
        """
        Minimal liveness endpoint.

        Returns:
            200: Service is running
        """
        return {"status": "ok"}

    @app.get("/health", response_model=HealthResponse)
    async def health_check(request: Request):
        """
        Readiness endpoint checking the account store.

        Returns:
            200: Service healthy
            503: Service unhealthy
        """
        current = request.app.state.orchestrator
        if current is None or not await current.health():
            return JSONResponse(
                status_code=503,
                content=HealthResponse(
                    status="unhealthy",
                    storage="unavailable" if current else "not initialized",
                    version=__version__,
                ).model_dump(),
            )

        return HealthResponse(status="healthy", storage="connected", version=__version__)

    # Error handlers

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Return HTTP errors in the standard envelope."""
        logger.warning(f"HTTP {exc.status_code}: {exc.detail} - {request.method} {request.url.path}")
        message = HTTP_MESSAGES.get(exc.status_code, str(exc.detail))
        return JSONResponse(
            status_code=exc.status_code,
            content=failed_envelope(message, "http_error"),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Malformed bodies or headers are client input errors."""
        logger.warning(f"Validation error: {exc.errors()} - {request.url.path}")
        return JSONResponse(
            status_code=400,
            content=failed_envelope("Missing required body fields.", "invalid_input"),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions."""
        logger.error(f"Unexpected error: {exc} - {request.url.path}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content=failed_envelope("Internal server error", "internal_error"),
        )

    return app


app = create_app()


def main() -> None:
    """Run the API server."""
    config = get_config()
    logging_config = get_logging_config(config.get("log_level"))
    log_config.dictConfig(logging_config)

    uvicorn.run(
        "globalauth.main:app",
        host=config.get("host"),
        port=config.get("port"),
        log_level=config.get("log_level").lower(),
        reload=config.get("debug"),
        log_config=logging_config,
    )


if __name__ == "__main__":
    main()
