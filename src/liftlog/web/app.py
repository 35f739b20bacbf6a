"""FastAPI application for the liftlog API."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .. import __version__
from ..db.engine import get_db_path, init_db
from ..errors import InvalidState, LiftLogError, MutationFailed, NotFound, Unauthorized
from ..services.base import Clock
from .routers import exercises, routines, sessions, sets

logger = logging.getLogger(__name__)

# Error class -> HTTP status
STATUS_BY_ERROR = {
    Unauthorized: 401,
    NotFound: 404,
    InvalidState: 409,
    MutationFailed: 503,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler - runs on startup and shutdown."""
    # Startup: schema creation is idempotent
    await init_db(app.state.db_path)
    yield


async def liftlog_error_handler(request: Request, exc: LiftLogError) -> JSONResponse:
    status_code = STATUS_BY_ERROR.get(type(exc), 400)
    if status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "kind": exc.kind},
    )


async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"detail": str(exc)})


def create_app(db_path: Path | None = None, clock: Clock | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="liftlog",
        description="Workout routines, live sessions and set logging",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.db_path = db_path or get_db_path()
    app.state.clock = clock or datetime.now

    app.add_exception_handler(LiftLogError, liftlog_error_handler)
    app.add_exception_handler(ValueError, value_error_handler)

    # Include routers
    app.include_router(routines.router)
    app.include_router(sessions.router)
    app.include_router(sets.router)
    app.include_router(exercises.router)

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy", "version": __version__}

    return app
