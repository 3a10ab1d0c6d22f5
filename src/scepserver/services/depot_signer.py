"""
Depot-backed CSR signer.

The base of every signing pipeline: unlocks the CA key from the depot for each
request, enforces the renewal window, issues a client certificate and files it
in the depot.
"""

import asyncio
from collections import defaultdict
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID
from loguru import logger

from scepserver.domain.errors import InvalidRequest, RenewalNotAllowed
from scepserver.domain.signer import CSRRequest, Signer
from scepserver.infrastructure.repositories import Depot

DEFAULT_ALLOW_RENEWAL_DAYS = 14
DEFAULT_VALIDITY_DAYS = 365

# Tolerance for clients whose clock runs slightly behind
NOT_BEFORE_BACKDATE = timedelta(minutes=10)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def csr_common_name(csr: x509.CertificateSigningRequest) -> str:
    """Subject common name of a CSR ("" if absent)."""
    attributes = csr.subject.get_attributes_for_oid(NameOID.COMMON_NAME)
    return str(attributes[0].value) if attributes else ""


class DepotSigner(Signer):
    """
    Signs CSRs with the CA held by a depot.

    Attributes:
        depot: Depot holding CA material and issued certificates
        allow_renewal_days: Days before expiry from which an existing
            certificate may be renewed (0: always)
        validity_days: Validity of issued certificates
        ca_passphrase: Password of the CA key
    """

    def __init__(
        self,
        depot: Depot,
        allow_renewal_days: int = DEFAULT_ALLOW_RENEWAL_DAYS,
        validity_days: int = DEFAULT_VALIDITY_DAYS,
        ca_passphrase: bytes = b"",
        clock: Callable[[], datetime] = _utcnow,
    ):
        if allow_renewal_days < 0:
            raise ValueError("allow_renewal_days must not be negative")
        if validity_days < 1:
            raise ValueError("validity_days must be at least 1")

        self.depot = depot
        self.allow_renewal_days = allow_renewal_days
        self.validity_days = validity_days
        self.ca_passphrase = ca_passphrase
        self._clock = clock
        # Renewal check and issuance of one common name run one at a time
        self._subject_locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    def supports_renewal(self, existing: x509.Certificate) -> bool:
        """
        Whether existing is within the renewal window.

        A certificate expiring in exactly ``allow_renewal_days`` days is
        renewable; one expiring later is not.
        """
        if self.allow_renewal_days == 0:
            return True
        remaining = existing.not_valid_after_utc - self._clock()
        return remaining <= timedelta(days=self.allow_renewal_days)

    async def sign(self, request: CSRRequest) -> x509.Certificate:
        """
        Issue a client certificate for the request's CSR.

        Concurrent requests for the same common name are serialized, so at
        most one of them can pass the renewal check.
        """
        csr = request.csr
        if not csr.is_signature_valid:
            raise InvalidRequest("CSR signature is invalid")

        common_name = csr_common_name(csr)
        if not common_name:
            return await self._issue(csr, common_name)

        async with self._subject_locks[common_name]:
            existing = await self.depot.find_certificate(common_name)
            if existing is not None and not self.supports_renewal(existing):
                raise RenewalNotAllowed(common_name, self.allow_renewal_days)
            return await self._issue(csr, common_name)

    async def _issue(
        self, csr: x509.CertificateSigningRequest, common_name: str
    ) -> x509.Certificate:
        ca_certs, ca_key = await self.depot.ca(self.ca_passphrase)
        ca_cert = ca_certs[0]

        serial = await self.depot.serial()
        not_before = self._clock() - NOT_BEFORE_BACKDATE
        not_after = not_before + timedelta(days=self.validity_days)
        public_key = csr.public_key()

        builder = (
            x509.CertificateBuilder()
            .subject_name(csr.subject)
            .issuer_name(ca_cert.subject)
            .public_key(public_key)
            .serial_number(serial)
            .not_valid_before(not_before)
            .not_valid_after(not_after)
            .add_extension(
                x509.BasicConstraints(ca=False, path_length=None), critical=True
            )
            .add_extension(
                x509.KeyUsage(
                    digital_signature=True,
                    content_commitment=False,
                    key_encipherment=True,
                    data_encipherment=False,
                    key_agreement=False,
                    key_cert_sign=False,
                    crl_sign=False,
                    encipher_only=False,
                    decipher_only=False,
                ),
                critical=True,
            )
            .add_extension(
                x509.ExtendedKeyUsage([ExtendedKeyUsageOID.CLIENT_AUTH]),
                critical=False,
            )
            .add_extension(
                x509.SubjectKeyIdentifier.from_public_key(public_key), critical=False
            )
            .add_extension(
                x509.AuthorityKeyIdentifier.from_issuer_public_key(
                    ca_cert.public_key()
                ),
                critical=False,
            )
        )

        # Carry requested alternative names over to the certificate
        try:
            san = csr.extensions.get_extension_for_class(x509.SubjectAlternativeName)
        except x509.ExtensionNotFound:
            pass
        else:
            builder = builder.add_extension(san.value, critical=san.critical)

        certificate = builder.sign(private_key=ca_key, algorithm=hashes.SHA256())

        await self.depot.put(common_name or f"serial-{serial}", certificate)

        logger.debug(
            f"Issued certificate: cn={common_name!r}, serial={serial:X}, "
            f"expires={not_after.isoformat()}"
        )
        return certificate
