"""Detached PKCS#7/CMS signer backed by ``cryptography``."""

from __future__ import annotations

import logging

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.serialization import pkcs7

from passforge.app.ports import SignerPort
from passforge.errors import SigningError
from passforge.pkpass.identity import SigningIdentity

logger = logging.getLogger(__name__)

# Binary keeps LF line endings intact; without it the builder canonicalizes
# to CRLF and the signature no longer covers the manifest bytes on disk.
SIGNING_OPTIONS = (
    pkcs7.PKCS7Options.DetachedSignature,
    pkcs7.PKCS7Options.Binary,
)


class PKCS7Signer(SignerPort):
    """Produce DER-encoded detached SignedData over manifest bytes.

    The structure embeds the leaf and WWDR certificates and carries a
    signing-time authenticated attribute set at signing, so every call
    yields a fresh signature.
    """

    def __init__(self, identity: SigningIdentity) -> None:
        self._identity = identity

    @property
    def identity(self) -> SigningIdentity:
        return self._identity

    def fingerprint(self) -> str:
        return self._identity.fingerprint()

    def sign(self, data: bytes) -> bytes:
        if not isinstance(data, (bytes, bytearray)):
            raise SigningError(f"Signed content must be bytes, got {type(data).__name__}")

        try:
            builder = (
                pkcs7.PKCS7SignatureBuilder()
                .set_data(bytes(data))
                .add_signer(
                    self._identity.certificate,
                    self._identity.private_key,
                    hashes.SHA256(),
                )
                .add_certificate(self._identity.wwdr_certificate)
            )
            signature = builder.sign(serialization.Encoding.DER, list(SIGNING_OPTIONS))
        except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
            raise SigningError(f"Cryptographic backend rejected signing: {exc}") from exc

        logger.debug("Signed %d bytes (%d byte signature)", len(data), len(signature))
        return signature


def inspect_signature(signature: bytes) -> list[x509.Certificate]:
    """Return the certificates embedded in a DER signature blob.

    Raises:
        SigningError: If ``signature`` is not a DER PKCS#7 structure.
    """
    try:
        return pkcs7.load_der_pkcs7_certificates(signature)
    except ValueError as exc:
        raise SigningError(f"Signature is not a valid PKCS#7 structure: {exc}") from exc
