"""
Routes registration for the FastAPI application.

Centralizes all router registrations for clean application setup.
"""

from fastapi import FastAPI

from scepserver.api.v1.health.router import router as health_router
from scepserver.api.v1.scep.router import router as scep_router


def register_routes(app: FastAPI) -> None:
    """
    Register all application routers.

    Args:
        app: FastAPI application instance
    """
    app.include_router(health_router)
    app.include_router(scep_router)
