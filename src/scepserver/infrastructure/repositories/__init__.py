"""Abstract repository interfaces for infrastructure operations."""

from scepserver.infrastructure.repositories.depot_repository import Depot

__all__ = ["Depot"]
