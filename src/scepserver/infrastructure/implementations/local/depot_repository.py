"""
Local file-based depot implementation.

Stores CA material and issued certificates in a single directory:
    {depot}/
        ca.pem                  CA certificate chain
        ca.key                  CA private key (legacy encrypted PEM)
        serial                  next serial number (hex)
        index.txt               OpenSSL-style database of issued certificates
        {name}.{serial}.pem     issued certificates
"""

import asyncio
import os
import re
from pathlib import Path

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.types import PrivateKeyTypes
from cryptography.x509.oid import NameOID
from loguru import logger

from scepserver.domain.errors import CAUnavailable, IncorrectPassphrase
from scepserver.infrastructure.repositories.depot_repository import Depot
from scepserver.services.ca_bootstrap import CA_CERT_FILENAME, CA_KEY_FILENAME
from scepserver.utils.pem import (
    decode_pem,
    decrypt_pem_block,
    is_encrypted_pem_block,
    pem_certificate,
)

SERIAL_FILENAME = "serial"
INDEX_FILENAME = "index.txt"

# Serial 1 belongs to the CA certificate
FIRST_SERIAL = 2

_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def _common_name(certificate: x509.Certificate) -> str | None:
    attributes = certificate.subject.get_attributes_for_oid(NameOID.COMMON_NAME)
    return str(attributes[0].value) if attributes else None


class LocalDepot(Depot):
    """
    File-based depot.

    Serial allocation and index updates are serialized with an asyncio lock,
    so a single server process may sign concurrently.
    """

    def __init__(self, base_dir: str | Path = "depot"):
        """
        Initialize local depot.

        Args:
            base_dir: Depot directory, created if missing
        """
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(mode=0o755, parents=True, exist_ok=True)
        self._lock = asyncio.Lock()

        logger.info(f"Initialized LocalDepot at {self.base_dir}")

    @property
    def ca_cert_path(self) -> Path:
        return self.base_dir / CA_CERT_FILENAME

    @property
    def ca_key_path(self) -> Path:
        return self.base_dir / CA_KEY_FILENAME

    def _safe_name(self, name: str) -> str:
        """File name fragment for a certificate name."""
        return _UNSAFE_NAME_CHARS.sub("_", name) or "unnamed"

    async def ca(
        self, passphrase: bytes
    ) -> tuple[list[x509.Certificate], PrivateKeyTypes]:
        """Load CA chain and key, decrypting the key with passphrase."""
        try:
            certificates = x509.load_pem_x509_certificates(
                self.ca_cert_path.read_bytes()
            )
        except FileNotFoundError as e:
            raise CAUnavailable(
                f"CA certificate not found at {self.ca_cert_path}. "
                "Run 'scepserver ca init' to create one."
            ) from e
        except ValueError as e:
            raise CAUnavailable(f"Invalid CA certificate: {e}") from e

        try:
            block = decode_pem(self.ca_key_path.read_bytes())
        except FileNotFoundError as e:
            raise CAUnavailable(f"CA key not found at {self.ca_key_path}") from e
        except ValueError as e:
            raise CAUnavailable(f"Invalid CA key: {e}") from e

        try:
            der = block.data
            if is_encrypted_pem_block(block):
                der = decrypt_pem_block(block, passphrase)
            key = serialization.load_der_private_key(der, password=None)
        except IncorrectPassphrase as e:
            raise CAUnavailable(f"Could not unlock CA key: {e}") from e
        except ValueError as e:
            raise CAUnavailable(
                f"Could not load CA key (wrong passphrase?): {e}"
            ) from e

        return certificates, key

    def _read_serial(self) -> int:
        serial_path = self.base_dir / SERIAL_FILENAME
        if not serial_path.exists():
            return FIRST_SERIAL
        return int(serial_path.read_text().strip(), 16)

    def _write_serial(self, serial: int) -> None:
        serial_path = self.base_dir / SERIAL_FILENAME
        tmp_path = serial_path.with_suffix(".tmp")
        tmp_path.write_text(f"{serial:X}\n")
        os.replace(tmp_path, serial_path)

    async def serial(self) -> int:
        """Allocate the next serial number."""
        async with self._lock:
            serial = self._read_serial()
            self._write_serial(serial + 1)
        return serial

    async def put(self, name: str, certificate: x509.Certificate) -> None:
        """Store certificate and record it in the index."""
        serial = certificate.serial_number
        cert_path = self.base_dir / f"{self._safe_name(name)}.{serial}.pem"

        async with self._lock:
            cert_path.write_bytes(
                pem_certificate(certificate.public_bytes(serialization.Encoding.DER))
            )
            expiry = certificate.not_valid_after_utc.strftime("%y%m%d%H%M%SZ")
            with open(self.base_dir / INDEX_FILENAME, "a") as index:
                index.write(
                    f"V\t{expiry}\t\t{serial:X}\tunknown\t"
                    f"{certificate.subject.rfc4514_string()}\n"
                )

        logger.info(f"Saved certificate for {name}, serial {serial:X}")

    async def find_certificate(self, common_name: str) -> x509.Certificate | None:
        """Return the latest-expiring certificate issued for common_name."""
        latest = None
        for cert_path in self.base_dir.glob(f"{self._safe_name(common_name)}.*.pem"):
            certificate = x509.load_pem_x509_certificate(cert_path.read_bytes())
            if _common_name(certificate) != common_name:
                continue
            if latest is None or (
                certificate.not_valid_after_utc > latest.not_valid_after_utc
            ):
                latest = certificate
        return latest
