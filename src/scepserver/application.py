"""
FastAPI application factory.

Creates the FastAPI application around an assembled SCEP service, with
middleware, routers and exception handlers.
"""

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError

from scepserver import __version__
from scepserver.core.logging import logger
from scepserver.domain.errors import ScepError
from scepserver.exception_handlers import (
    general_exception_handler,
    http_exception_handler,
    scep_error_handler,
    validation_exception_handler,
)
from scepserver.lifespan import lifespan
from scepserver.middleware import TraceIDMiddleware
from scepserver.routes import register_routes
from scepserver.services.scep_service import ScepService


def create_app(service: ScepService) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        service: SCEP service to expose

    Returns:
        Configured FastAPI application instance
    """
    app = FastAPI(
        title="SCEP Server",
        description="SCEP certificate enrollment server",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.scep_service = service

    # Register exception handlers (RFC 7807 Problem Details)
    app.add_exception_handler(ScepError, scep_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    app.add_middleware(TraceIDMiddleware)

    register_routes(app)

    logger.debug(f"FastAPI application created (v{__version__})")

    return app
