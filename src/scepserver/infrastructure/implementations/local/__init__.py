"""Local file-based infrastructure implementations."""

from scepserver.infrastructure.implementations.local.depot_repository import (
    LocalDepot,
)

__all__ = ["LocalDepot"]
