"""Tests for application wiring."""

import pytest

from passforge.audit.ledger import AuditLedger, NoOpLedger
from passforge.bootstrap import bootstrap_application
from passforge.errors import ConfigurationError


def test_bootstrap_loads_identity_once(signing_settings, pki):
    container = bootstrap_application(signing_settings)

    assert container.identity is not None
    assert container.identity.certificate == pki.certificate
    assert container.signer is not None
    assert container.signer.identity is container.identity
    assert container.require_signing_service() is container.signing_service
    assert isinstance(container.ledger_port, AuditLedger)


def test_bootstrap_without_identity_fails(override_settings):
    with pytest.raises(ConfigurationError):
        bootstrap_application(override_settings)


def test_bootstrap_without_identity_for_verification(override_settings):
    container = bootstrap_application(override_settings, load_identity=False)

    assert container.identity is None
    assert container.signing_service is None
    with pytest.raises(ConfigurationError):
        container.require_signing_service()


def test_bootstrap_with_explicit_identity(override_settings, signing_identity):
    override_settings.audit_enabled = False
    container = bootstrap_application(override_settings, identity=signing_identity)

    assert container.identity is signing_identity
    assert isinstance(container.ledger_port, NoOpLedger)
    assert not container.audit_service.is_enabled()


def test_asset_loader_defaults_to_settings(override_settings, assets_dir, signing_identity):
    override_settings.assets_dir = assets_dir
    container = bootstrap_application(override_settings, identity=signing_identity)

    assert container.asset_loader().directory == assets_dir
    assert container.asset_loader(assets_dir / "other").directory == assets_dir / "other"
