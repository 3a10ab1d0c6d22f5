"""
Unit tests for CA bootstrap.

Tests key and certificate creation, exclusive creation and cleanup of
partially written files.
"""

import stat
from datetime import UTC, datetime

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.x509.oid import NameOID

from scepserver.domain.errors import CertAlreadyExists, KeyAlreadyExists
from scepserver.services import ca_bootstrap
from scepserver.services.ca_bootstrap import (
    CA_CERT_FILENAME,
    CA_KEY_FILENAME,
    CACertificateTemplate,
    add_years,
    create_certificate_authority,
    create_key,
    initialize_ca,
)
from scepserver.utils.pem import decode_pem, decrypt_pem_block, is_encrypted_pem_block

KEY_SIZE = 2048


# ===========================
# Helpers
# ===========================


def test_add_years():
    """Test calendar year arithmetic."""
    moment = datetime(2024, 5, 17, 12, 0, tzinfo=UTC)
    assert add_years(moment, 10) == datetime(2034, 5, 17, 12, 0, tzinfo=UTC)


def test_add_years_leap_day():
    """Test that February 29th rolls over to March 1st."""
    moment = datetime(2024, 2, 29, tzinfo=UTC)
    assert add_years(moment, 1) == datetime(2025, 3, 1, tzinfo=UTC)


def test_template_subject_defaults_common_name_to_ou():
    """Test subject construction."""
    subject = CACertificateTemplate(
        organization="Acme", organizational_unit="Acme CA", country="DE"
    ).subject()

    assert subject.get_attributes_for_oid(NameOID.COMMON_NAME)[0].value == "Acme CA"
    assert subject.get_attributes_for_oid(NameOID.ORGANIZATION_NAME)[0].value == "Acme"
    assert subject.get_attributes_for_oid(NameOID.COUNTRY_NAME)[0].value == "DE"


def test_template_subject_skips_empty_fields():
    """Test that empty subject fields are omitted."""
    subject = CACertificateTemplate(country="", organization="").subject()

    assert not subject.get_attributes_for_oid(NameOID.COUNTRY_NAME)
    assert not subject.get_attributes_for_oid(NameOID.ORGANIZATION_NAME)


# ===========================
# create_key
# ===========================


def test_create_key_writes_encrypted_pem(tmp_path):
    """Test that the key is saved encrypted with mode 0400."""
    # Arrange
    depot = tmp_path / "depot"

    # Act
    key = create_key(KEY_SIZE, b"secret", depot)

    # Assert
    key_path = depot / CA_KEY_FILENAME
    assert stat.S_IMODE(key_path.stat().st_mode) == 0o400
    block = decode_pem(key_path.read_bytes())
    assert block.type == "RSA PRIVATE KEY"
    assert is_encrypted_pem_block(block)

    loaded = serialization.load_der_private_key(
        decrypt_pem_block(block, b"secret"), password=None
    )
    assert loaded.private_numbers() == key.private_numbers()
    assert key.key_size == KEY_SIZE


def test_create_key_empty_passphrase_still_encrypted(tmp_path):
    """Test that an empty passphrase produces the encrypted container."""
    create_key(KEY_SIZE, b"", tmp_path)

    block = decode_pem((tmp_path / CA_KEY_FILENAME).read_bytes())
    assert block.headers["Proc-Type"] == "4,ENCRYPTED"
    assert block.headers["DEK-Info"].startswith("AES-256-CBC,")


def test_create_key_refuses_existing_file(tmp_path):
    """Test that an existing key is never overwritten."""
    # Arrange
    create_key(KEY_SIZE, b"", tmp_path)
    original = (tmp_path / CA_KEY_FILENAME).read_bytes()

    # Act & Assert
    with pytest.raises(KeyAlreadyExists) as exc_info:
        create_key(KEY_SIZE, b"", tmp_path)

    assert exc_info.value.path == str(tmp_path / CA_KEY_FILENAME)
    assert (tmp_path / CA_KEY_FILENAME).read_bytes() == original


def test_create_key_removes_partial_file(tmp_path, monkeypatch):
    """Test that a failed write leaves no key file behind."""

    # Arrange
    def failing_encode(block):
        raise OSError("disk full")

    monkeypatch.setattr(ca_bootstrap, "encode_pem", failing_encode)

    # Act & Assert
    with pytest.raises(OSError, match="disk full"):
        create_key(KEY_SIZE, b"", tmp_path)

    assert not (tmp_path / CA_KEY_FILENAME).exists()


# ===========================
# create_certificate_authority
# ===========================


def test_create_certificate_authority(tmp_path):
    """Test the self-signed CA certificate and its file."""
    # Arrange
    key = create_key(KEY_SIZE, b"", tmp_path)

    # Act
    certificate = create_certificate_authority(
        key, 10, "Test", "Test CA", "US", tmp_path
    )

    # Assert
    cert_path = tmp_path / CA_CERT_FILENAME
    assert stat.S_IMODE(cert_path.stat().st_mode) == 0o400
    on_disk = x509.load_pem_x509_certificate(cert_path.read_bytes())
    assert on_disk == certificate

    assert certificate.subject == certificate.issuer
    assert certificate.serial_number == 1
    assert certificate.public_key().public_numbers() == key.public_key().public_numbers()
    constraints = certificate.extensions.get_extension_for_class(x509.BasicConstraints)
    assert constraints.critical
    assert constraints.value.ca is True
    usage = certificate.extensions.get_extension_for_class(x509.KeyUsage).value
    assert usage.key_cert_sign and usage.crl_sign


def test_create_certificate_authority_refuses_existing_file(tmp_path):
    """Test that an existing certificate is never overwritten."""
    # Arrange
    key = create_key(KEY_SIZE, b"", tmp_path)
    create_certificate_authority(key, 1, "Test", "Test CA", "US", tmp_path)
    original = (tmp_path / CA_CERT_FILENAME).read_bytes()

    # Act & Assert
    with pytest.raises(CertAlreadyExists):
        create_certificate_authority(key, 1, "Other", "Other CA", "US", tmp_path)

    assert (tmp_path / CA_CERT_FILENAME).read_bytes() == original


def test_create_certificate_authority_removes_partial_file(tmp_path, monkeypatch):
    """Test that a failed write leaves no certificate file behind."""
    # Arrange
    key = create_key(KEY_SIZE, b"", tmp_path)

    def failing_pem(der):
        raise OSError("disk full")

    monkeypatch.setattr(ca_bootstrap, "pem_certificate", failing_pem)

    # Act & Assert
    with pytest.raises(OSError):
        create_certificate_authority(key, 1, "Test", "Test CA", "US", tmp_path)

    assert not (tmp_path / CA_CERT_FILENAME).exists()
    assert (tmp_path / CA_KEY_FILENAME).exists()


# ===========================
# initialize_ca
# ===========================


def test_initialize_ca_end_to_end(tmp_path):
    """Test a complete bootstrap with a ten year validity."""
    # Arrange
    depot = tmp_path / "depot"
    before = datetime.now(UTC).replace(microsecond=0)

    # Act
    key, certificate = initialize_ca(
        depot,
        key_size=KEY_SIZE,
        passphrase=b"pw",
        years=10,
        organization="Test",
        organizational_unit="Test Unit",
        country="US",
    )

    # Assert
    assert (depot / CA_KEY_FILENAME).exists()
    assert (depot / CA_CERT_FILENAME).exists()
    organization = certificate.subject.get_attributes_for_oid(
        NameOID.ORGANIZATION_NAME
    )
    assert organization[0].value == "Test"
    assert certificate.not_valid_before_utc >= before
    assert certificate.not_valid_after_utc.year == certificate.not_valid_before_utc.year + 10


def test_initialize_ca_collision_keeps_existing_files(tmp_path):
    """Test that a second bootstrap fails on the key and changes nothing."""
    # Arrange
    initialize_ca(tmp_path, key_size=KEY_SIZE)
    key_bytes = (tmp_path / CA_KEY_FILENAME).read_bytes()
    cert_bytes = (tmp_path / CA_CERT_FILENAME).read_bytes()

    # Act & Assert
    with pytest.raises(KeyAlreadyExists):
        initialize_ca(tmp_path, key_size=KEY_SIZE)

    assert (tmp_path / CA_KEY_FILENAME).read_bytes() == key_bytes
    assert (tmp_path / CA_CERT_FILENAME).read_bytes() == cert_bytes


def test_create_key_interrupted_leaves_no_file(tmp_path, monkeypatch):
    """Test that Ctrl-C during key generation leaves no key file behind."""

    # Arrange
    def interrupted(*args, **kwargs):
        raise KeyboardInterrupt

    monkeypatch.setattr(ca_bootstrap.rsa, "generate_private_key", interrupted)

    # Act & Assert
    with pytest.raises(KeyboardInterrupt):
        create_key(KEY_SIZE, b"", tmp_path)

    assert not (tmp_path / CA_KEY_FILENAME).exists()

    monkeypatch.undo()
    create_key(KEY_SIZE, b"", tmp_path)
    assert (tmp_path / CA_KEY_FILENAME).exists()


def test_create_certificate_authority_interrupted_leaves_no_file(
    tmp_path, monkeypatch
):
    """Test that an interrupt while writing the certificate removes it."""
    # Arrange
    key = create_key(KEY_SIZE, b"", tmp_path)

    def interrupted(der):
        raise KeyboardInterrupt

    monkeypatch.setattr(ca_bootstrap, "pem_certificate", interrupted)

    # Act & Assert
    with pytest.raises(KeyboardInterrupt):
        create_certificate_authority(key, 1, "Test", "Test CA", "US", tmp_path)

    assert not (tmp_path / CA_CERT_FILENAME).exists()
