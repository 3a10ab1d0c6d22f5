"""Global pytest configuration and fixtures for all tests."""

import os
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import AttributeOID, NameOID

from scepserver.config import get_settings
from scepserver.infrastructure.implementations.local import LocalDepot
from scepserver.services.ca_bootstrap import initialize_ca

CA_PASSPHRASE = b"test-ca-passphrase"


@pytest.fixture(autouse=True)
def clean_scep_environment(monkeypatch):
    """
    Remove SCEP_* variables from the environment for every test.

    Also clears the cached settings so each test sees its own environment.
    """
    for key in list(os.environ):
        if key.startswith("SCEP_"):
            monkeypatch.delenv(key)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(scope="session")
def client_key() -> rsa.RSAPrivateKey:
    """RSA key shared by test CSRs (2048 bits for faster tests)."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def depot_dir(tmp_path: Path) -> Path:
    """Depot directory holding a freshly initialized test CA."""
    depot = tmp_path / "depot"
    initialize_ca(
        depot,
        key_size=2048,
        passphrase=CA_PASSPHRASE,
        years=1,
        organization="Test",
        organizational_unit="Test SCEP CA",
        country="US",
    )
    return depot


@pytest.fixture
def depot(depot_dir: Path) -> LocalDepot:
    """Local depot over the test CA."""
    return LocalDepot(base_dir=depot_dir)


def _make_csr(
    key: rsa.RSAPrivateKey,
    common_name: str = "test-device-123",
    challenge_password: str | None = None,
) -> x509.CertificateSigningRequest:
    """
    Generate a test Certificate Signing Request.

    Args:
        key: Key to sign the CSR with
        common_name: Subject common name
        challenge_password: Value of the challengePassword attribute, if any

    Returns:
        The CSR
    """
    builder = x509.CertificateSigningRequestBuilder().subject_name(
        x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    )
    if challenge_password is not None:
        builder = builder.add_attribute(
            AttributeOID.CHALLENGE_PASSWORD, challenge_password.encode()
        )
    return builder.sign(key, hashes.SHA256())


def _make_certificate(
    key: rsa.RSAPrivateKey,
    not_after: datetime,
    common_name: str = "test-device-123",
) -> x509.Certificate:
    """Self-signed certificate expiring at not_after."""
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    return (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_after - timedelta(days=400))
        .not_valid_after(not_after)
        .sign(key, hashes.SHA256())
    )


def _fixed_now() -> datetime:
    """A whole-second UTC timestamp, as stored in certificates."""
    return datetime.now(UTC).replace(microsecond=0)


@pytest.fixture
def make_csr():
    """Factory fixture building test CSRs."""
    return _make_csr


@pytest.fixture
def make_certificate():
    """Factory fixture building self-signed certificates with a given expiry."""
    return _make_certificate


@pytest.fixture
def now() -> datetime:
    """Current UTC time truncated to whole seconds."""
    return _fixed_now()


@pytest.fixture
def ca_passphrase() -> bytes:
    """Passphrase the test CA key is encrypted with."""
    return CA_PASSPHRASE
