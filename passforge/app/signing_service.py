"""Signing pipeline: manifest, detached signature, bundle.

The service holds no mutable state of its own, so one instance serves
concurrent requests. The audit ledger it reports to serializes its own
appends.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass

from passforge.app.ports import BundlePort, LedgerPort, SignerPort
from passforge.passes.models import PassDocument
from passforge.pkpass.manifest import Manifest
from passforge.utils.hashing import compute_sha256

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SignedBundle:
    """Result of one signing call."""

    data: bytes
    manifest: Manifest
    manifest_bytes: bytes
    signature: bytes

    @property
    def sha256(self) -> str:
        return compute_sha256(self.data)

    @property
    def member_names(self) -> list[str]:
        return sorted(self.manifest)

    @property
    def member_count(self) -> int:
        """Archive members: every digested member plus manifest and signature."""
        return len(self.manifest) + 2


class PassSigningService:
    """Orchestrates manifest construction, signing and bundling."""

    def __init__(
        self,
        signer: SignerPort,
        bundle_writer: BundlePort,
        ledger_port: LedgerPort,
    ) -> None:
        """Initialize signing service.

        Args:
            signer: Detached signature producer bound to the signing identity
            bundle_writer: Archive writer
            ledger_port: Audit logging port
        """
        self.signer = signer
        self.bundle_writer = bundle_writer
        self.ledger = ledger_port

    def sign_bundle(
        self,
        pass_definition: bytes,
        assets: Mapping[str, bytes],
        *,
        serial_number: str | None = None,
    ) -> SignedBundle:
        """Produce a signed bundle from already-serialized pass.json bytes.

        The manifest is serialized once and those exact bytes are both signed
        and written, as are the pass definition and asset bytes that were
        digested.

        Args:
            pass_definition: Final pass.json bytes
            assets: Asset filename to content mapping
            serial_number: Pass serial number recorded in the audit entry

        Returns:
            SignedBundle with the archive bytes and its manifest and signature

        Raises:
            BundleCompositionError: If an asset name is reserved or not flat
            DigestError: If a member cannot be digested
            SigningError: If the signing backend rejects the manifest
            BundleWriteError: If the archive cannot be finalized
            AuditError: If the signing record cannot be appended to the ledger
        """
        self.bundle_writer.validate_members(pass_definition, assets)

        manifest = Manifest.build(pass_definition, assets)
        manifest_bytes = manifest.to_bytes()
        signature = self.signer.sign(manifest_bytes)
        data = self.bundle_writer.write(pass_definition, assets, manifest_bytes, signature)

        result = SignedBundle(
            data=data,
            manifest=manifest,
            manifest_bytes=manifest_bytes,
            signature=signature,
        )

        logger.info(
            "Signed pass bundle (members=%d, size=%d bytes, serial=%s)",
            result.member_count,
            len(data),
            serial_number or "-",
        )

        args: dict[str, object] = {
            "certificate_sha256": self.signer.fingerprint(),
            "asset_count": len(assets),
        }
        if serial_number is not None:
            args["serial_number"] = serial_number
        self.ledger.log(
            operation="pass_sign",
            inputs=result.member_names,
            outputs=[result.sha256],
            args=args,
        )

        return result

    def sign_pass(self, document: PassDocument, assets: Mapping[str, bytes]) -> SignedBundle:
        """Serialize ``document`` once and sign it with ``assets``."""
        return self.sign_bundle(
            document.to_bytes(),
            assets,
            serial_number=document.serial_number,
        )
