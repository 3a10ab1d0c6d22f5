"""
Models package.

Contains shared Pydantic models used across the HTTP layer.
"""

from scepserver.models.errors import ProblemDetail, ValidationErrorDetail

__all__ = [
    "ProblemDetail",
    "ValidationErrorDetail",
]
