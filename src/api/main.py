"""FastAPI application entry point."""
from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.errors import register_error_handlers
from src.api.routes import health, items, queue
from src.config import settings
from src.logging_setup import configure_logging

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    configure_logging(settings.log_level, json=True)
    logger.info("handoff_api_starting", store_backend=settings.store_backend)
    yield
    logger.info("handoff_api_stopping")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Listing Hand-off Orchestrator",
        description="Claim and finalize ready articles and lots for Vinted publication.",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    app.include_router(health.router)
    app.include_router(queue.router)
    app.include_router(items.router)

    return app


app = create_app()


def run() -> None:
    """Serve the API with uvicorn."""
    import uvicorn

    uvicorn.run("src.api.main:app", host=settings.api_host, port=settings.api_port)
