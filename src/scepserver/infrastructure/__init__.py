"""
Infrastructure abstraction layer.

This module provides the depot interface and its implementations:
- local: File-based depot directory

Use ``InfrastructureFactory`` to obtain the configured depot.
"""

from scepserver.infrastructure.factory import InfrastructureFactory

__all__ = ["InfrastructureFactory"]
