"""
Certificate Authority bootstrap.

Creates the CA private key and self-signed CA certificate inside a depot
directory:

    {depot}/
        ca.key    PEM "RSA PRIVATE KEY", encrypted with the key password, 0400
        ca.pem    PEM "CERTIFICATE", 0400

Both files are created with O_EXCL, so an existing CA is never overwritten and
two concurrent bootstraps can not both succeed. A file that could not be
completely written is removed before the error propagates.
"""

import os
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID
from loguru import logger

from scepserver.domain.errors import CertAlreadyExists, KeyAlreadyExists
from scepserver.utils.pem import (
    RSA_PRIVATE_KEY_PEM_TYPE,
    encode_pem,
    encrypt_pem_block,
    pem_certificate,
)

CA_KEY_FILENAME = "ca.key"
CA_CERT_FILENAME = "ca.pem"

DEFAULT_KEY_SIZE = 4096
DEFAULT_YEARS = 10
DEFAULT_ORGANIZATION = "scep-ca"
DEFAULT_ORGANIZATIONAL_UNIT = "SCEP CA"
DEFAULT_COUNTRY = "US"

_EXCLUSIVE_FLAGS = os.O_WRONLY | os.O_CREAT | os.O_EXCL
_CA_FILE_MODE = 0o400


def add_years(moment: datetime, years: int) -> datetime:
    """
    Add calendar years to a datetime.

    February 29th rolls over to March 1st in non-leap target years.
    """
    try:
        return moment.replace(year=moment.year + years)
    except ValueError:
        return moment.replace(year=moment.year + years, month=3, day=1)


@dataclass
class CACertificateTemplate:
    """
    Descriptor of a self-signed CA certificate.

    Attributes:
        years: Validity in years from creation time
        organization: Subject organization (O)
        organizational_unit: Subject organizational unit (OU)
        country: Subject country (C), two letters or empty
        common_name: Subject common name (defaults to the organizational unit)
        serial_number: Serial of the CA certificate
    """

    years: int = DEFAULT_YEARS
    organization: str = DEFAULT_ORGANIZATION
    organizational_unit: str = DEFAULT_ORGANIZATIONAL_UNIT
    country: str = DEFAULT_COUNTRY
    common_name: str | None = None
    serial_number: int = 1

    def subject(self) -> x509.Name:
        """Build the subject name, skipping empty fields."""
        attributes = [
            (NameOID.COUNTRY_NAME, self.country),
            (NameOID.ORGANIZATION_NAME, self.organization),
            (NameOID.ORGANIZATIONAL_UNIT_NAME, self.organizational_unit),
            (NameOID.COMMON_NAME, self.common_name or self.organizational_unit),
        ]
        return x509.Name(
            [x509.NameAttribute(oid, value) for oid, value in attributes if value]
        )

    def self_sign(
        self, key: rsa.RSAPrivateKey, now: datetime | None = None
    ) -> x509.Certificate:
        """
        Sign the descriptor with the CA's own key.

        Args:
            key: CA private key; its public half is certified
            now: Start of the validity window (defaults to current UTC time)

        Returns:
            The self-signed CA certificate
        """
        if now is None:
            now = datetime.now(UTC)

        subject = self.subject()
        public_key = key.public_key()

        builder = (
            x509.CertificateBuilder()
            .subject_name(subject)
            .issuer_name(subject)
            .public_key(public_key)
            .serial_number(self.serial_number)
            .not_valid_before(now)
            .not_valid_after(add_years(now, self.years))
            .add_extension(
                x509.BasicConstraints(ca=True, path_length=None), critical=True
            )
            .add_extension(
                x509.KeyUsage(
                    digital_signature=True,
                    content_commitment=False,
                    key_encipherment=False,
                    data_encipherment=False,
                    key_agreement=False,
                    key_cert_sign=True,
                    crl_sign=True,
                    encipher_only=False,
                    decipher_only=False,
                ),
                critical=True,
            )
            .add_extension(
                x509.SubjectKeyIdentifier.from_public_key(public_key), critical=False
            )
        )

        return builder.sign(private_key=key, algorithm=hashes.SHA256())


def _open_exclusive(path: Path, collision: type[Exception]) -> int:
    """Create path for writing, failing if it already exists."""
    try:
        return os.open(path, _EXCLUSIVE_FLAGS, _CA_FILE_MODE)
    except FileExistsError as e:
        raise collision(str(path)) from e


def create_key(bits: int, passphrase: bytes, depot_path: str | Path) -> rsa.RSAPrivateKey:
    """
    Create the CA key, save it to the depot and return it.

    Args:
        bits: RSA modulus size
        passphrase: Password the key is encrypted with (may be empty)
        depot_path: Depot directory, created if missing

    Returns:
        The generated private key

    Raises:
        KeyAlreadyExists: If ca.key is already present
    """
    depot = Path(depot_path)
    depot.mkdir(mode=0o755, parents=True, exist_ok=True)
    key_path = depot / CA_KEY_FILENAME

    fd = _open_exclusive(key_path, KeyAlreadyExists)
    try:
        with os.fdopen(fd, "wb") as key_file:
            key = rsa.generate_private_key(public_exponent=65537, key_size=bits)
            der = key.private_bytes(
                encoding=serialization.Encoding.DER,
                format=serialization.PrivateFormat.TraditionalOpenSSL,
                encryption_algorithm=serialization.NoEncryption(),
            )
            block = encrypt_pem_block(RSA_PRIVATE_KEY_PEM_TYPE, der, passphrase)
            key_file.write(encode_pem(block))
    except BaseException:
        key_path.unlink(missing_ok=True)
        raise

    logger.info(f"Created {bits}-bit CA key at {key_path}")
    return key


def create_certificate_authority(
    key: rsa.RSAPrivateKey,
    years: int,
    organization: str,
    organizational_unit: str,
    country: str,
    depot_path: str | Path,
) -> x509.Certificate:
    """
    Self-sign a CA certificate for key and save it to the depot.

    Args:
        key: CA private key returned by ``create_key``
        years: Validity in years
        organization: Subject organization
        organizational_unit: Subject organizational unit
        country: Subject country
        depot_path: Depot directory

    Returns:
        The CA certificate

    Raises:
        CertAlreadyExists: If ca.pem is already present
    """
    template = CACertificateTemplate(
        years=years,
        organization=organization,
        organizational_unit=organizational_unit,
        country=country,
    )
    certificate = template.self_sign(key)

    cert_path = Path(depot_path) / CA_CERT_FILENAME
    fd = _open_exclusive(cert_path, CertAlreadyExists)
    try:
        with os.fdopen(fd, "wb") as cert_file:
            cert_file.write(
                pem_certificate(certificate.public_bytes(serialization.Encoding.DER))
            )
    except BaseException:
        cert_path.unlink(missing_ok=True)
        raise

    logger.info(
        f"Created CA certificate at {cert_path}: subject={certificate.subject.rfc4514_string()}, "
        f"expires={certificate.not_valid_after_utc.isoformat()}"
    )
    return certificate


def initialize_ca(
    depot_path: str | Path,
    key_size: int = DEFAULT_KEY_SIZE,
    passphrase: bytes = b"",
    years: int = DEFAULT_YEARS,
    organization: str = DEFAULT_ORGANIZATION,
    organizational_unit: str = DEFAULT_ORGANIZATIONAL_UNIT,
    country: str = DEFAULT_COUNTRY,
) -> tuple[rsa.RSAPrivateKey, x509.Certificate]:
    """
    Bootstrap a new CA: key first, then the certificate.

    The certificate is only attempted once the key was created.

    Returns:
        Tuple of (CA private key, CA certificate)
    """
    logger.info(f"Initializing new CA in {depot_path}")
    key = create_key(key_size, passphrase, depot_path)
    certificate = create_certificate_authority(
        key, years, organization, organizational_unit, country, depot_path
    )
    return key, certificate
