"""Consumer-side bundle verification.

Repeats the checks a wallet application performs after unpacking a
``.pkpass``: required members, flat layout, manifest coverage, per-member
digests and the detached signature over ``manifest.json``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from passforge.app.adapters.pkcs7_signer import inspect_signature
from passforge.app.ports import BundlePort, SignatureVerifierPort
from passforge.errors import BundleReadError, DigestError, SigningError
from passforge.pkpass.constants import (
    MANIFEST_MEMBER,
    PASS_MEMBER,
    SIGNATURE_MEMBER,
    UNDIGESTED_MEMBERS,
)
from passforge.pkpass.manifest import Manifest

logger = logging.getLogger(__name__)

MIN_EMBEDDED_CERTIFICATES = 2


@dataclass(slots=True)
class VerificationReport:
    """Outcome of verifying one bundle."""

    members: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    signature_checked: bool = False
    certificate_subjects: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, object]:
        return {
            "valid": self.valid,
            "members": self.members,
            "errors": self.errors,
            "signature_checked": self.signature_checked,
            "certificate_subjects": self.certificate_subjects,
        }


class BundleVerifier:
    """Validate bundle structure, digests and (optionally) the signature."""

    def __init__(
        self,
        bundle_reader: BundlePort,
        signature_verifier: SignatureVerifierPort | None = None,
    ) -> None:
        self._reader = bundle_reader
        self._signature_verifier = signature_verifier

    def verify(self, bundle: bytes) -> VerificationReport:
        report = VerificationReport()

        try:
            members = self._reader.read_members(bundle)
        except BundleReadError as exc:
            report.errors.append(str(exc))
            return report

        report.members = sorted(members)

        for name in report.members:
            if "/" in name or "\\" in name:
                report.errors.append(f"Member '{name}' is not a flat filename")

        missing = [
            name for name in (PASS_MEMBER, MANIFEST_MEMBER, SIGNATURE_MEMBER) if name not in members
        ]
        if missing:
            report.errors.append(f"Missing required members: {', '.join(missing)}")
        if MANIFEST_MEMBER not in members:
            return report

        manifest_bytes = members[MANIFEST_MEMBER]
        try:
            manifest = Manifest.from_bytes(manifest_bytes)
        except DigestError as exc:
            report.errors.append(str(exc))
            return report

        for name in sorted(set(manifest) - set(members)):
            report.errors.append(f"Manifest lists '{name}' but the bundle does not contain it")
        for name in manifest.undescribed(frozenset(members)):
            report.errors.append(f"Member '{name}' is not listed in the manifest")
        for name in sorted(UNDIGESTED_MEMBERS & set(manifest)):
            report.errors.append(f"Manifest must not describe '{name}'")

        for name in manifest.mismatches(members):
            if name in members:
                report.errors.append(f"Digest mismatch for '{name}'")

        if SIGNATURE_MEMBER in members:
            self._check_signature(report, manifest_bytes, members[SIGNATURE_MEMBER])

        logger.debug("Verified bundle: %d members, %d errors", len(members), len(report.errors))
        return report

    def _check_signature(
        self, report: VerificationReport, manifest_bytes: bytes, signature: bytes
    ) -> None:
        try:
            certificates = inspect_signature(signature)
        except SigningError as exc:
            report.errors.append(str(exc))
            return

        report.certificate_subjects = [cert.subject.rfc4514_string() for cert in certificates]
        if len(certificates) < MIN_EMBEDDED_CERTIFICATES:
            report.errors.append(
                f"Signature embeds {len(certificates)} certificate(s); "
                "expected the signing and WWDR certificates"
            )

        verifier = self._signature_verifier
        if verifier is None or not verifier.available():
            logger.info("No signature verifier available; skipping signature check")
            return

        report.signature_checked = True
        if not verifier.verify(manifest_bytes, signature):
            report.errors.append("Signature does not verify against manifest.json")
