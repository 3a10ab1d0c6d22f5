"""
SCEP service.

Exposes the operations the HTTP layer serves:
- GetCACert: the CA certificate (or a certs-only PKCS#7 for a chain)
- GetCACaps: the server capabilities
- PKIOperation: sign a CSR through the signer pipeline

The PKCS#7 enveloping of PKIOperation messages is left to the caller: this
service accepts the bare CSR (DER or PEM).
"""

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.types import PrivateKeyTypes
from cryptography.hazmat.primitives.serialization import pkcs7
from cryptography.x509.oid import AttributeOID
from loguru import logger

from scepserver.domain.errors import CAUnavailable, InvalidRequest
from scepserver.domain.signer import CSRRequest, Signer

CA_CAPABILITIES = (
    "Renewal",
    "SHA-1",
    "SHA-256",
    "AES",
    "DES3",
    "SCEPStandard",
    "POSTPKIOperation",
)


def parse_csr_request(data: bytes) -> CSRRequest:
    """
    Decode a CSR and extract its challenge password attribute.

    Args:
        data: DER or PEM encoded CSR

    Returns:
        The decoded request

    Raises:
        InvalidRequest: If data is not a CSR
    """
    try:
        if data.lstrip().startswith(b"-----BEGIN"):
            csr = x509.load_pem_x509_csr(data)
        else:
            csr = x509.load_der_x509_csr(data)
    except ValueError as e:
        raise InvalidRequest(f"invalid CSR: {e}") from e

    try:
        attribute = csr.attributes.get_attribute_for_oid(
            AttributeOID.CHALLENGE_PASSWORD
        )
        challenge_password = attribute.value.decode("utf-8", errors="replace")
    except x509.AttributeNotFound:
        challenge_password = ""

    return CSRRequest(
        csr=csr,
        raw=csr.public_bytes(serialization.Encoding.DER),
        challenge_password=challenge_password,
    )


class ScepService:
    """
    SCEP service bound to a CA and a signer pipeline.

    Attributes:
        ca_certs: CA certificate chain, issuing certificate first
        ca_key: CA private key
        signer: Outermost signer of the pipeline
    """

    def __init__(
        self,
        ca_certs: list[x509.Certificate],
        ca_key: PrivateKeyTypes,
        signer: Signer,
    ):
        if not ca_certs:
            raise CAUnavailable("missing CA certificate")
        self.ca_certs = ca_certs
        self.ca_key = ca_key
        self.signer = signer

    def get_ca_caps(self) -> bytes:
        """Return newline separated server capabilities."""
        return "\n".join(CA_CAPABILITIES).encode()

    def get_ca_cert(self) -> tuple[bytes, int]:
        """
        Return the CA certificate and the number of certificates it holds.

        A single certificate is returned as DER; a chain as a degenerate
        certs-only PKCS#7 structure.
        """
        if len(self.ca_certs) == 1:
            return self.ca_certs[0].public_bytes(serialization.Encoding.DER), 1
        return (
            pkcs7.serialize_certificates(self.ca_certs, serialization.Encoding.DER),
            len(self.ca_certs),
        )

    async def pki_operation(self, message: bytes) -> bytes:
        """
        Sign the CSR carried by message.

        Args:
            message: DER or PEM encoded CSR

        Returns:
            DER encoded certificate

        Raises:
            SigningError: If the request is invalid or refused
        """
        request = parse_csr_request(message)
        certificate = await self.signer.sign(request)
        logger.debug(f"PKIOperation issued serial {certificate.serial_number:X}")
        return certificate.public_bytes(serialization.Encoding.DER)
