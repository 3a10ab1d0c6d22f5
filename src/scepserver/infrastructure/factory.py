"""
Infrastructure factory for depot selection.

Selects the depot implementation based on configuration:
- local: File-based depot directory

Usage:
    from scepserver.infrastructure import InfrastructureFactory
    from scepserver.config import get_settings

    # Option 1: From settings
    factory = InfrastructureFactory.from_settings(get_settings())

    # Option 2: Manual configuration
    factory = InfrastructureFactory(provider="local", base_dir="/var/lib/scep")

    depot = factory.get_depot()
"""

from typing import TYPE_CHECKING, Literal

from loguru import logger

from scepserver.infrastructure.repositories import Depot

if TYPE_CHECKING:
    from scepserver.config import Settings

InfrastructureProvider = Literal["local"]


class InfrastructureFactory:
    """
    Factory for creating depot instances.

    Provides dependency injection for the storage backend.
    """

    def __init__(self, provider: InfrastructureProvider | None = None, **config):
        """
        Initialize infrastructure factory.

        Args:
            provider: Infrastructure provider. If None, uses "local".
            **config: Provider-specific configuration options (base_dir)
        """
        if provider is None:
            provider = "local"

        self.provider = provider
        self.config = config

        logger.debug(f"Initialized InfrastructureFactory with provider: {provider}")

    @classmethod
    def from_settings(cls, settings: "Settings") -> "InfrastructureFactory":
        """
        Create factory from Settings object.

        Args:
            settings: Server settings from config.py

        Returns:
            InfrastructureFactory configured from settings
        """
        return cls(provider="local", base_dir=settings.file_depot)

    def get_depot(self) -> Depot:
        """
        Get depot for configured provider.

        Returns:
            Depot implementation

        Raises:
            ValueError: If provider is not supported
        """
        if self.provider == "local":
            from scepserver.infrastructure.implementations.local import LocalDepot

            return LocalDepot(base_dir=self.config.get("base_dir", "depot"))

        raise ValueError(f"Unsupported provider: {self.provider}")
