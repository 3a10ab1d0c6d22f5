"""
Dependency injection container for the SCEP server.

The SCEP service is assembled once at startup and stored on the application
state; endpoints receive it through FastAPI's Depends with typing.Annotated.
"""

from typing import Annotated

from fastapi import Depends, Request

from scepserver.services.scep_service import ScepService


def get_scep_service(request: Request) -> ScepService:
    """
    Get the SCEP service bound to the running application.

    Args:
        request: Current request (injected)

    Returns:
        The SCEP service created at startup
    """
    return request.app.state.scep_service


ScepServiceDep = Annotated[ScepService, Depends(get_scep_service)]
"""Injected ScepService."""
