"""Tests for the detached PKCS#7 signer."""

import re
import shutil
import subprocess
from datetime import UTC, datetime, timedelta

import pytest
from cryptography.hazmat.primitives.serialization import pkcs7

from passforge.app.adapters import OpenSSLSignatureVerifier, PKCS7Signer, inspect_signature
from passforge.errors import SigningError

requires_openssl = pytest.mark.skipif(
    shutil.which("openssl") is None, reason="openssl binary not available"
)

MANIFEST = b'{\n  "icon.png": "a9993e364706816aba3e25717850c26c9cd0d89d",\n  "pass.json": "da39a3ee5e6b4b0d3255bfef95601890afd80709"\n}'


def test_signature_is_der_with_both_certificates(signing_identity, pki):
    signature = PKCS7Signer(signing_identity).sign(MANIFEST)

    # DER SEQUENCE, not PEM text
    assert signature[:1] == b"\x30"
    certificates = pkcs7.load_der_pkcs7_certificates(signature)
    assert pki.certificate in certificates
    assert pki.wwdr_certificate in certificates
    assert len(certificates) == 2


def test_signature_is_detached(signing_identity):
    payload = b"unique-payload-marker" * 20
    signature = PKCS7Signer(signing_identity).sign(payload)
    assert payload not in signature


def test_repeated_signing_keeps_certificates(signing_identity):
    signer = PKCS7Signer(signing_identity)
    first = inspect_signature(signer.sign(MANIFEST))
    second = inspect_signature(signer.sign(MANIFEST))
    assert first == second


def test_sign_rejects_non_bytes(signing_identity):
    with pytest.raises(SigningError):
        PKCS7Signer(signing_identity).sign("text")  # type: ignore[arg-type]


def test_inspect_signature_rejects_garbage():
    with pytest.raises(SigningError):
        inspect_signature(b"not a signature")


def test_fingerprint_delegates_to_identity(signing_identity):
    assert PKCS7Signer(signing_identity).fingerprint() == signing_identity.fingerprint()


@requires_openssl
def test_signature_verifies_with_openssl(signing_identity):
    signature = PKCS7Signer(signing_identity).sign(MANIFEST)
    verifier = OpenSSLSignatureVerifier()

    assert verifier.available()
    assert verifier.verify(MANIFEST, signature)


@requires_openssl
def test_signature_rejects_modified_content(signing_identity):
    signature = PKCS7Signer(signing_identity).sign(MANIFEST)
    verifier = OpenSSLSignatureVerifier()

    assert not verifier.verify(MANIFEST + b" ", signature)


@requires_openssl
def test_signature_rejects_single_flipped_byte(signing_identity):
    signature = PKCS7Signer(signing_identity).sign(MANIFEST)
    flipped = bytearray(MANIFEST)
    flipped[len(flipped) // 2] ^= 0x01

    assert len(flipped) == len(MANIFEST)
    assert not OpenSSLSignatureVerifier().verify(bytes(flipped), signature)


@requires_openssl
def test_line_endings_are_not_canonicalized(signing_identity):
    """Content with LF line endings must verify byte-for-byte."""
    content = b"line one\nline two\n"
    signature = PKCS7Signer(signing_identity).sign(content)
    verifier = OpenSSLSignatureVerifier()

    assert verifier.verify(content, signature)
    assert not verifier.verify(content.replace(b"\n", b"\r\n"), signature)


def test_missing_openssl_binary_reported():
    verifier = OpenSSLSignatureVerifier("passforge-no-such-openssl")
    assert not verifier.available()
    with pytest.raises(RuntimeError):
        verifier.verify(b"data", b"sig")


# DER-encoded object identifiers as they appear inside SignedData.
SHA256_OID = bytes.fromhex("0609608648016503040201")
SHA1_OID = bytes.fromhex("06052b0e03021a")
SIGNING_TIME_OID = bytes.fromhex("06092a864886f70d010905")


def test_signature_uses_sha256_and_signing_time(signing_identity):
    signature = PKCS7Signer(signing_identity).sign(MANIFEST)

    assert SHA256_OID in signature
    assert SHA1_OID not in signature
    assert SIGNING_TIME_OID in signature


@requires_openssl
def test_signing_time_is_current(signing_identity, temp_dir):
    before = datetime.now(UTC).replace(microsecond=0)
    signature_path = temp_dir / "signature"
    signature_path.write_bytes(PKCS7Signer(signing_identity).sign(MANIFEST))

    printed = subprocess.run(
        ["openssl", "cms", "-cmsout", "-print", "-inform", "DER", "-in", str(signature_path)],
        capture_output=True,
        text=True,
        check=True,
    ).stdout

    assert re.search(r"algorithm: sha256\b", printed)
    section = printed[printed.index("signingTime") :]
    match = re.search(r"UTCTIME:(\w{3}\s+\d{1,2} \d{2}:\d{2}:\d{2} \d{4}) GMT", section)
    assert match is not None
    signed_at = datetime.strptime(" ".join(match.group(1).split()), "%b %d %H:%M:%S %Y")
    signed_at = signed_at.replace(tzinfo=UTC)
    assert before - timedelta(seconds=5) <= signed_at <= datetime.now(UTC) + timedelta(seconds=5)
