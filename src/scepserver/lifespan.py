"""
Application lifecycle management.

Handles startup and shutdown events for the FastAPI application.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan context manager.

    In-flight requests are not drained on shutdown: every signing request is
    safe for the client to retry.

    Args:
        app: FastAPI application instance
    """
    logger.info(f"Starting SCEP server v{app.version}")

    yield

    logger.info("Shutting down SCEP server")
