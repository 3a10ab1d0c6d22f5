"""
Abstract interface for the certificate depot.

The depot is the storage and issuance backend of the server:
- CA certificate chain and (encrypted) CA private key retrieval
- Serial number allocation
- Storage and lookup of issued certificates
"""

from abc import ABC, abstractmethod

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.types import PrivateKeyTypes


class Depot(ABC):
    """
    Abstract interface for depot operations.

    Implementations must allocate serials atomically: concurrent signing
    requests never receive the same serial number.
    """

    @abstractmethod
    async def ca(
        self, passphrase: bytes
    ) -> tuple[list[x509.Certificate], PrivateKeyTypes]:
        """
        Load the CA certificate chain and private key.

        Args:
            passphrase: Password the CA key is encrypted with

        Returns:
            Tuple of (CA certificate chain, CA private key)

        Raises:
            CAUnavailable: If the CA material is missing or can not be unlocked
        """
        pass

    @abstractmethod
    async def serial(self) -> int:
        """
        Allocate the next certificate serial number.

        Returns:
            A serial number never handed out before
        """
        pass

    @abstractmethod
    async def put(self, name: str, certificate: x509.Certificate) -> None:
        """
        Store an issued certificate.

        Args:
            name: Name to file the certificate under (usually the subject CN)
            certificate: The issued certificate
        """
        pass

    @abstractmethod
    async def find_certificate(self, common_name: str) -> x509.Certificate | None:
        """
        Find the most recently expiring certificate issued for a common name.

        Args:
            common_name: Subject common name

        Returns:
            The certificate if one was issued, None otherwise
        """
        pass
