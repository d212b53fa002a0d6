"""Application bootstrap wiring ports, adapters, and services."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from passforge.app import AuditService, BundleVerifier, PassSigningService
from passforge.app.adapters import (
    DirectoryAssetLoader,
    OpenSSLSignatureVerifier,
    PKCS7Signer,
    ZipBundleWriter,
)
from passforge.app.ports import LedgerPort
from passforge.audit.ledger import AuditLedger, NoOpLedger
from passforge.config import Settings, get_settings, load_signing_identity
from passforge.errors import AuditError, ConfigurationError
from passforge.pkpass.identity import SigningIdentity

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ApplicationContainer:
    """Aggregates wired services and adapters for the CLI layer.

    ``identity``, ``signer`` and ``signing_service`` are ``None`` when the
    container was bootstrapped without signing material (verify, inspect and
    audit commands do not need it).
    """

    settings: Settings
    identity: SigningIdentity | None
    signer: PKCS7Signer | None
    signing_service: PassSigningService | None
    bundle_writer: ZipBundleWriter
    signature_verifier: OpenSSLSignatureVerifier
    bundle_verifier: BundleVerifier
    audit_service: AuditService
    ledger_port: LedgerPort

    def require_signing_service(self) -> PassSigningService:
        if self.signing_service is None:
            raise ConfigurationError("No signing identity loaded")
        return self.signing_service

    def asset_loader(self, directory: Path | None = None) -> DirectoryAssetLoader:
        """Asset loader for ``directory``, defaulting to the configured assets dir."""
        return DirectoryAssetLoader(directory if directory is not None else self.settings.assets_dir)


def _create_ledger(settings: Settings) -> LedgerPort | None:
    if not settings.audit_enabled:
        return None

    try:
        return AuditLedger(
            settings.get_audit_path(),
            hmac_key=settings.get_audit_hmac_key(),
            fsync_interval=settings.audit_fsync_interval,
        )
    except AuditError as exc:
        raise ConfigurationError(str(exc)) from exc


def bootstrap_application(
    settings: Settings | None = None,
    *,
    identity: SigningIdentity | None = None,
    load_identity: bool = True,
) -> ApplicationContainer:
    """Instantiate adapters and services for CLI consumption.

    The signing identity is loaded exactly once here. A missing or invalid
    identity raises :class:`ConfigurationError`, which callers treat as fatal.

    Args:
        settings: Settings to use (defaults to the global settings)
        identity: Pre-built identity, bypassing configured material
        load_identity: Skip identity loading when False

    Raises:
        ConfigurationError: If signing material is required but unusable
    """
    active_settings = settings or get_settings()

    if identity is None and load_identity:
        identity = load_signing_identity(active_settings)

    ledger = _create_ledger(active_settings)
    ledger_for_services: LedgerPort = ledger or NoOpLedger()

    bundle_writer = ZipBundleWriter(compression=active_settings.bundle_compression)
    signature_verifier = OpenSSLSignatureVerifier(active_settings.openssl_binary)
    bundle_verifier = BundleVerifier(bundle_writer, signature_verifier)

    signer: PKCS7Signer | None = None
    signing_service: PassSigningService | None = None
    if identity is not None:
        signer = PKCS7Signer(identity)
        signing_service = PassSigningService(
            signer=signer,
            bundle_writer=bundle_writer,
            ledger_port=ledger_for_services,
        )
        logger.debug("Signing identity ready: %s", identity.subject)

    return ApplicationContainer(
        settings=active_settings,
        identity=identity,
        signer=signer,
        signing_service=signing_service,
        bundle_writer=bundle_writer,
        signature_verifier=signature_verifier,
        bundle_verifier=bundle_verifier,
        audit_service=AuditService(ledger=ledger),
        ledger_port=ledger_for_services,
    )
