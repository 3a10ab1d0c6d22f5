"""
API v1 endpoints.

Route prefix constants for consistent API versioning.
"""

# SCEP clients expect the service at /scep
SCEP_PATH: str = "/scep"

__all__ = ["SCEP_PATH"]
