"""
Main Application Entry Point.

This module builds the FastAPI application serving the capability surface
(``/types``, ``/descriptions``) and the sandboxed executor (``/execute``).
Run it with ``uvicorn codemode_runtime.server.main:app``.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from codemode_runtime import __version__
from codemode_runtime.core.config import settings
from codemode_runtime.core.logging_config import get_logger, setup_logging
from codemode_runtime.core.monitoring import initialize_logfire

from .api.v1 import execute, health, surface
from .exception_handlers import setup_exception_handlers
from .state import CodemodeState

setup_logging(log_level=settings.log_level)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifespan events.

    Builds the runtime state from settings unless one was injected, and
    releases the components it created on shutdown.
    """
    created: Optional[CodemodeState] = None
    if getattr(app.state, "codemode", None) is None:
        logger.info("Starting up codemode runtime server...")
        created = CodemodeState.from_settings(settings)
        app.state.codemode = created
        logger.info(f"Loaded {len(created.catalog)} capabilities (fingerprint {created.catalog.fingerprint[:12]})")

    yield

    logger.info("Shutting down codemode runtime server...")
    if created is not None:
        await created.aclose()
        app.state.codemode = None


def create_app(state: Optional[CodemodeState] = None) -> FastAPI:
    app = FastAPI(
        title="Codemode Runtime",
        description="""
    Codemode Runtime API

    Serves the typed capability surface for code-generating models and executes
    generated programs in an isolated sandbox that proxies capability calls to
    the backend tool service.
    """,
        version=__version__,
        lifespan=lifespan,
    )
    app.state.codemode = state

    setup_exception_handlers(app)
    initialize_logfire(app)

    app.include_router(health.router, tags=["health"])
    app.include_router(surface.router, tags=["surface"])
    app.include_router(execute.router, tags=["execute"])
    return app


app = create_app()
