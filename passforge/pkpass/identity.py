"""Signing identity: leaf certificate, WWDR intermediate and RSA private key.

The identity is loaded once at process start and shared read-only by every
signing call. Parsing failures surface as :class:`ConfigurationError`
subclasses so the service refuses to start instead of failing per request.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import pkcs12

from passforge.errors import CertificateParseError, KeyParseError

logger = logging.getLogger(__name__)


def _as_bytes(value: str | bytes) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else value


def load_certificate(data: str | bytes, *, label: str) -> x509.Certificate:
    """Parse a PEM certificate, falling back to DER.

    Raises:
        CertificateParseError: If neither encoding parses.
    """
    raw = _as_bytes(data)
    try:
        return x509.load_pem_x509_certificate(raw)
    except ValueError:
        pass
    try:
        return x509.load_der_x509_certificate(raw)
    except ValueError as exc:
        raise CertificateParseError(f"Invalid {label} certificate: {exc}") from exc


def load_private_key(
    data: str | bytes, *, password: str | bytes | None = None
) -> rsa.RSAPrivateKey:
    """Parse a PEM private key and require it to be RSA.

    Raises:
        KeyParseError: If the key cannot be parsed or is not an RSA key.
    """
    secret = _as_bytes(password) if password else None
    try:
        key = serialization.load_pem_private_key(_as_bytes(data), password=secret)
    except (ValueError, TypeError) as exc:
        raise KeyParseError(f"Invalid private key: {exc}") from exc

    if not isinstance(key, rsa.RSAPrivateKey):
        raise KeyParseError(
            f"Private key must be RSA, got {type(key).__name__}"
        )
    return key


def _public_key_der(key: object) -> bytes:
    return key.public_bytes(  # type: ignore[attr-defined]
        serialization.Encoding.DER,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )


@dataclass(frozen=True, slots=True)
class SigningIdentity:
    """Immutable certificate chain and key used to sign manifests."""

    certificate: x509.Certificate
    wwdr_certificate: x509.Certificate
    private_key: rsa.RSAPrivateKey

    def __post_init__(self) -> None:
        if _public_key_der(self.certificate.public_key()) != _public_key_der(
            self.private_key.public_key()
        ):
            raise KeyParseError("Private key does not match the signing certificate")

    @classmethod
    def from_pem(
        cls,
        *,
        wwdr_pem: str | bytes,
        certificate_pem: str | bytes,
        private_key_pem: str | bytes,
        password: str | bytes | None = None,
    ) -> SigningIdentity:
        """Build an identity from PEM-encoded material.

        Args:
            wwdr_pem: Intermediate (WWDR) certificate included in every signature
            certificate_pem: Leaf pass-signing certificate
            private_key_pem: RSA private key for the leaf certificate
            password: Optional passphrase for an encrypted private key

        Raises:
            CertificateParseError: If either certificate is invalid
            KeyParseError: If the key is invalid, not RSA, or does not match
        """
        identity = cls(
            certificate=load_certificate(certificate_pem, label="signing"),
            wwdr_certificate=load_certificate(wwdr_pem, label="WWDR"),
            private_key=load_private_key(private_key_pem, password=password),
        )
        logger.debug("Loaded signing identity %s", identity.subject)
        return identity

    @classmethod
    def from_pkcs12(
        cls,
        data: bytes,
        *,
        password: str | bytes | None,
        wwdr_pem: str | bytes,
    ) -> SigningIdentity:
        """Build an identity from a PKCS#12 bundle plus the WWDR certificate."""
        secret = _as_bytes(password) if password else None
        try:
            key, certificate, _additional = pkcs12.load_key_and_certificates(data, secret)
        except (ValueError, TypeError) as exc:
            raise KeyParseError(f"Invalid PKCS#12 bundle: {exc}") from exc

        if certificate is None:
            raise CertificateParseError("PKCS#12 bundle contains no signing certificate")
        if not isinstance(key, rsa.RSAPrivateKey):
            raise KeyParseError("PKCS#12 bundle does not contain an RSA private key")

        identity = cls(
            certificate=certificate,
            wwdr_certificate=load_certificate(wwdr_pem, label="WWDR"),
            private_key=key,
        )
        logger.debug("Loaded signing identity %s from PKCS#12", identity.subject)
        return identity

    @property
    def subject(self) -> str:
        return self.certificate.subject.rfc4514_string()

    def fingerprint(self) -> str:
        """SHA-256 fingerprint of the leaf certificate as lowercase hex."""
        return self.certificate.fingerprint(hashes.SHA256()).hex()
