"""
Abstract signing contracts.

This module defines the capabilities the signing pipeline is built from:
- Signer: turns a CSR request into a certificate
- SignerMiddleware: a Signer that wraps another Signer
- CSRVerifier: external verdict on a raw CSR
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from cryptography import x509


@dataclass(frozen=True)
class CSRRequest:
    """
    A decoded certificate signing request.

    Attributes:
        csr: Parsed certificate signing request
        raw: DER encoding of the CSR, as passed to external verifiers
        challenge_password: Challenge presented by the client ("" if none)
    """

    csr: x509.CertificateSigningRequest
    raw: bytes
    challenge_password: str = ""


class Signer(ABC):
    """
    Capability that signs CSRs into certificates.

    Implementations raise a ``SigningError`` subclass to refuse a request.
    """

    @abstractmethod
    async def sign(self, request: CSRRequest) -> x509.Certificate:
        """
        Sign a certificate request.

        Args:
            request: The decoded CSR request

        Returns:
            The issued certificate

        Raises:
            SigningError: If the request is refused
        """
        pass

    @abstractmethod
    def supports_renewal(self, existing: x509.Certificate) -> bool:
        """
        Whether an existing certificate may be renewed now.

        Args:
            existing: A previously issued certificate

        Returns:
            True if a new certificate may replace it
        """
        pass


class SignerMiddleware(Signer):
    """
    Signer decorating another signer.

    Subclasses override ``sign`` and delegate to ``self.next``.
    """

    def __init__(self, next_signer: Signer):
        self.next = next_signer

    async def sign(self, request: CSRRequest) -> x509.Certificate:
        return await self.next.sign(request)

    def supports_renewal(self, existing: x509.Certificate) -> bool:
        return self.next.supports_renewal(existing)


class CSRVerifier(ABC):
    """External verification of raw CSRs."""

    @abstractmethod
    async def verify(self, csr_der: bytes) -> bool:
        """
        Verify a DER encoded CSR.

        Args:
            csr_der: Raw CSR bytes

        Returns:
            True if the CSR may be signed, False if it is rejected

        Raises:
            VerifierExecutionFailed: If no verdict could be obtained
        """
        pass


def signer_chain(signer: Signer) -> list[Signer]:
    """
    List the layers of a signer, outermost first.

    Args:
        signer: Outermost signer of a pipeline

    Returns:
        Every signer in the chain, ending with the base signer
    """
    chain = [signer]
    while isinstance(chain[-1], SignerMiddleware):
        chain.append(chain[-1].next)
    return chain
