"""Pytest configuration and fixtures."""

import base64
import gc
import json
import shutil
import tempfile
import time
from collections.abc import Generator
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from passforge.config import Settings
from passforge.pkpass.identity import SigningIdentity

# Minimal PNG signature plus padding; content only has to be stable bytes.
FAKE_PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 24


@dataclass(frozen=True)
class SigningMaterial:
    """Throwaway WWDR authority and pass-signing leaf."""

    wwdr_certificate: x509.Certificate
    certificate: x509.Certificate
    private_key: rsa.RSAPrivateKey

    @property
    def wwdr_pem(self) -> bytes:
        return self.wwdr_certificate.public_bytes(serialization.Encoding.PEM)

    @property
    def certificate_pem(self) -> bytes:
        return self.certificate.public_bytes(serialization.Encoding.PEM)

    @property
    def private_key_pem(self) -> bytes:
        return self.private_key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        )


def _name(common_name: str, organization: str) -> x509.Name:
    return x509.Name(
        [
            x509.NameAttribute(NameOID.COMMON_NAME, common_name),
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, organization),
        ]
    )


def _issue(
    subject: x509.Name,
    issuer: x509.Name,
    public_key: rsa.RSAPublicKey,
    signing_key: rsa.RSAPrivateKey,
    *,
    ca: bool,
) -> x509.Certificate:
    now = datetime.now(UTC)
    return (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer)
        .public_key(public_key)
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=365))
        .add_extension(x509.BasicConstraints(ca=ca, path_length=None), critical=True)
        .sign(signing_key, hashes.SHA256())
    )


def generate_pki() -> SigningMaterial:
    """Create a WWDR-style CA and a leaf certificate it signed."""
    wwdr_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    wwdr_name = _name(
        "Test Worldwide Developer Relations Certification Authority", "Passforge Test CA"
    )
    wwdr_certificate = _issue(wwdr_name, wwdr_name, wwdr_key.public_key(), wwdr_key, ca=True)

    leaf_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    leaf_certificate = _issue(
        _name("Pass Type ID: pass.com.example.test", "Passforge Test Team"),
        wwdr_name,
        leaf_key.public_key(),
        wwdr_key,
        ca=False,
    )
    return SigningMaterial(
        wwdr_certificate=wwdr_certificate,
        certificate=leaf_certificate,
        private_key=leaf_key,
    )


@pytest.fixture(scope="session")
def pki() -> SigningMaterial:
    """Session-wide signing material (RSA generation is slow)."""
    return generate_pki()


@pytest.fixture(scope="session")
def other_pki() -> SigningMaterial:
    """Second, unrelated chain for mismatch tests."""
    return generate_pki()


@pytest.fixture
def signing_identity(pki: SigningMaterial) -> SigningIdentity:
    return SigningIdentity(
        certificate=pki.certificate,
        wwdr_certificate=pki.wwdr_certificate,
        private_key=pki.private_key,
    )


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmpdir = tempfile.mkdtemp()
    try:
        yield Path(tmpdir)
    finally:
        # Force garbage collection to release any file handles
        gc.collect()
        time.sleep(0.05)
        shutil.rmtree(tmpdir, ignore_errors=True)


@pytest.fixture
def pem_files(temp_dir: Path, pki: SigningMaterial) -> dict[str, Path]:
    """Write the test chain to PEM files."""
    pem_dir = temp_dir / "certs"
    pem_dir.mkdir()
    paths = {
        "wwdr_certificate_path": pem_dir / "wwdr.pem",
        "certificate_path": pem_dir / "pass.pem",
        "private_key_path": pem_dir / "pass.key",
    }
    paths["wwdr_certificate_path"].write_bytes(pki.wwdr_pem)
    paths["certificate_path"].write_bytes(pki.certificate_pem)
    paths["private_key_path"].write_bytes(pki.private_key_pem)
    return paths


@pytest.fixture
def secrets_file(temp_dir: Path, pki: SigningMaterial) -> Path:
    """Secrets JSON with base64-wrapped PEM values."""
    path = temp_dir / "secrets.json"
    path.write_text(
        json.dumps(
            {
                "pemWWDRCertificate": base64.b64encode(pki.wwdr_pem).decode("ascii"),
                "pemCertificate": base64.b64encode(pki.certificate_pem).decode("ascii"),
                "pemPrivateKey": base64.b64encode(pki.private_key_pem).decode("ascii"),
            }
        ),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def assets_dir(temp_dir: Path) -> Path:
    directory = temp_dir / "assets"
    directory.mkdir()
    (directory / "icon.png").write_bytes(FAKE_PNG + b"icon")
    (directory / "icon@2x.png").write_bytes(FAKE_PNG + b"icon@2x")
    (directory / "logo.png").write_bytes(FAKE_PNG + b"logo")
    return directory


@pytest.fixture
def sample_assets() -> dict[str, bytes]:
    return {
        "icon.png": FAKE_PNG + b"icon",
        "logo.png": FAKE_PNG + b"logo",
    }


@pytest.fixture
def pass_request() -> dict:
    """Wire request for a simple generic pass."""
    return {
        "formatVersion": 1,
        "passTypeIdentifier": "pass.com.example.test",
        "serialNumber": "SN-0001",
        "teamIdentifier": "ABCDE12345",
        "organizationName": "Example Org",
        "description": "Example membership card",
        "logoText": "Example",
        "foregroundColor": "#ffffff",
        "backgroundColor": "rgb(12, 34, 56)",
        "barcodes": [
            {
                "format": "PKBarcodeFormatQR",
                "message": "SN-0001",
                "messageEncoding": "iso-8859-1",
                "altText": "SN-0001",
            }
        ],
        "generic": {
            "primaryFields": [{"key": "member", "label": "Member", "value": "Ada Lovelace"}],
            "secondaryFields": [
                {
                    "key": "level",
                    "label": "Level",
                    "value": "Gold",
                    "textAlignment": "PKTextAlignmentRight",
                }
            ],
        },
    }


@pytest.fixture
def override_settings(temp_dir: Path) -> Generator[Settings, None, None]:
    """Provide isolated passforge settings scoped to tests."""

    import passforge.config as config_module

    original_settings = getattr(config_module, "_settings", None)

    data_dir = temp_dir / "appdata"
    config_dir = temp_dir / "appconfig"
    data_dir.mkdir(parents=True, exist_ok=True)
    config_dir.mkdir(parents=True, exist_ok=True)

    settings = config_module.Settings(
        data_dir=data_dir,
        config_dir=config_dir,
        audit_enabled=True,
    )

    config_module._settings = settings

    try:
        yield settings
    finally:
        config_module._settings = original_settings


@pytest.fixture
def signing_settings(override_settings: Settings, pem_files: dict[str, Path]) -> Settings:
    """Isolated settings pointing at the test PEM files."""
    override_settings.wwdr_certificate_path = pem_files["wwdr_certificate_path"]
    override_settings.certificate_path = pem_files["certificate_path"]
    override_settings.private_key_path = pem_files["private_key_path"]
    return override_settings
