"""FastAPI application for the Web Service."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from compose_stack.api.middleware import CorrelationMiddleware
from compose_stack.api.routers import health
from compose_stack.api.state import DatabaseConnection
from compose_stack.lib.telemetry import setup_tracing

logger = logging.getLogger(__name__)

GREETING = "Hello from Web Service!"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the database connection in the background, close it on shutdown."""
    connection = DatabaseConnection()
    app.state.db = connection
    connection.start()
    logger.info("Web Service starting; MongoDB connection pending")
    yield
    await connection.stop()


def create_app() -> FastAPI:
    """Build the Web Service app."""
    app = FastAPI(
        title="Compose Stack Web Service",
        description="Static greeting plus liveness and readiness probes",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(CorrelationMiddleware)
    app.include_router(health.router)

    @app.get("/", response_class=PlainTextResponse)
    async def root():
        """Static greeting; never touches the database."""
        return GREETING

    setup_tracing("web", app=app)
    return app


app = create_app()
