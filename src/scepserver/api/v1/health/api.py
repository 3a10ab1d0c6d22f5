"""
Health check endpoint.

Reports the server version and whether a CA is loaded.
"""

from fastapi import APIRouter

from scepserver import __version__
from scepserver.api.v1.health.models import HealthResponse
from scepserver.di import ScepServiceDep

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check(service: ScepServiceDep) -> HealthResponse:
    """
    Health check endpoint.

    Returns:
        Service status, version and CA subject
    """
    return HealthResponse(
        status="ok",
        version=__version__,
        message=f"Serving CA {service.ca_certs[0].subject.rfc4514_string()}",
    )
