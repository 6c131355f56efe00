"""
FastAPI application factory for Shapeshifter.

This module creates the FastAPI app with:
- CORS configuration for frontends
- Database lifecycle management (store + decider)
- Error mapping from ShapeshifterError codes to HTTP statuses
- Document and decision API routes
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .._version import __version__
from ..config import ServerConfig
from ..database import Database
from ..errors import ShapeshifterError
from .config import Settings
from .routes import decisions_router, router

logger = logging.getLogger(__name__)

STATUS_BY_CODE = {
    "NOT_FOUND": 404,
    "ALREADY_EXISTS": 409,
    "OPERATION_NOT_ALLOWED": 403,
    "VALIDATION_ERROR": 400,
    "TRANSFORM_ERROR": 422,
    "ORACLE_ERROR": 502,
    "REJECTED": 409,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage Database lifecycle unless one was injected."""
    owned: Optional[Database] = None
    if getattr(app.state, "database", None) is None:
        config = ServerConfig.from_env()
        config.log_config()
        owned = await Database.from_config(config)
        app.state.database = owned

    yield

    if owned is not None:
        await owned.close()
        app.state.database = None


async def shapeshifter_error_handler(request: Request, exc: ShapeshifterError) -> JSONResponse:
    status = STATUS_BY_CODE.get(exc.code, 500)
    if status >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=status, content=exc.to_dict())


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"{request.method} {request.url.path} failed", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "error_code": "INTERNAL", "details": {}},
    )


def create_app(database: Optional[Database] = None, settings: Optional[Settings] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        database: Preconfigured Database (tests); built from env when omitted
        settings: HTTP settings; loaded from env when omitted
    """
    settings = settings or Settings()

    app = FastAPI(
        title="Shapeshifter",
        description=(
            "Schema-flexible document store. Writes and shaped queries are "
            "reconciled against each collection's inferred schema."
        ),
        version=__version__,
        lifespan=lifespan,
    )
    app.state.database = database
    app.state.settings = settings

    # CORS for frontends
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ShapeshifterError, shapeshifter_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # API routes
    app.include_router(router, prefix="/api/v1")
    app.include_router(decisions_router, prefix="/api/v1")

    # Health endpoint at root
    @app.get("/health")
    async def health():
        return {"status": "healthy", "service": "shapeshifter", "version": __version__}

    return app
