"""Configuration management with Pydantic and XDG base directory support."""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, SecretStr, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from passforge.errors import ConfigurationError
from passforge.pkpass.identity import SigningIdentity
from passforge.utils.crypto import decode_base64_text, load_or_create_hmac_key

logger = logging.getLogger(__name__)


def get_xdg_data_home() -> Path:
    """Get XDG_DATA_HOME directory, defaulting to ~/.local/share."""
    xdg_data = os.getenv("XDG_DATA_HOME")
    if xdg_data:
        return Path(xdg_data)
    return Path.home() / ".local" / "share"


def get_xdg_config_home() -> Path:
    """Get XDG_CONFIG_HOME directory, defaulting to ~/.config."""
    xdg_config = os.getenv("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config)
    return Path.home() / ".config"


BundleCompression = Literal["deflated", "stored"]


class Settings(BaseSettings):
    """passforge configuration settings.

    Precedence: CLI flag > environment variable > .env file > defaults.
    """

    model_config = SettingsConfigDict(
        env_prefix="PASSFORGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Data directories
    data_dir: Path | None = Field(
        default=None,
        description="Override data directory (defaults to XDG_DATA_HOME/passforge)",
    )

    config_dir: Path | None = Field(
        default=None,
        description="Override config directory (defaults to XDG_CONFIG_HOME/passforge)",
    )

    # Signing material
    secrets_path: Path | None = Field(
        default=None,
        description=(
            "JSON file holding base64-encoded PEM values under pemWWDRCertificate, "
            "pemCertificate and pemPrivateKey"
        ),
    )

    wwdr_certificate_path: Path | None = Field(
        default=None,
        description="Apple WWDR intermediate certificate (PEM or DER)",
    )

    certificate_path: Path | None = Field(
        default=None,
        description="Pass Type ID signing certificate (PEM or DER)",
    )

    private_key_path: Path | None = Field(
        default=None,
        description="PEM RSA private key for the signing certificate",
    )

    private_key_password: SecretStr | None = Field(
        default=None,
        description="Passphrase for an encrypted private key",
    )

    certificate_p12_path: Path | None = Field(
        default=None,
        description="PKCS#12 bundle holding the signing certificate and key",
    )

    certificate_p12_password: SecretStr | None = Field(
        default=None,
        description="Password for the PKCS#12 bundle",
    )

    # Bundling
    assets_dir: Path | None = Field(
        default=None,
        description="Default directory of pass images bundled alongside pass.json",
    )

    bundle_compression: BundleCompression = Field(
        default="deflated",
        description="ZIP compression method for bundle members",
    )

    strict_tags: bool = Field(
        default=False,
        description="Reject unrecognized barcode/encoding/alignment/transit tags",
    )

    openssl_binary: str = Field(
        default="openssl",
        description="openssl executable used to verify bundle signatures",
    )

    # Audit settings
    audit_enabled: bool = Field(
        default=True,
        description="Enable append-only audit ledger",
    )

    audit_fsync_interval: int = Field(
        default=1,
        ge=1,
        description="Number of audit entries between fsync operations (1 = fsync every entry).",
    )

    audit_hmac_key_path: Path | None = Field(
        default=None,
        description="Location of the audit ledger HMAC key for tamper detection",
    )

    log_level: str = Field(
        default="WARNING",
        description="Logging level for the passforge logger",
    )

    _resolved_data_dir: Path | None = PrivateAttr(default=None)
    _data_dir_warning_emitted: bool = PrivateAttr(default=False)

    def get_data_dir(self) -> Path:
        """Get the data directory, creating if necessary."""
        if self._resolved_data_dir is not None:
            return self._resolved_data_dir

        if self.data_dir:
            data_dir = self.data_dir
            data_dir.mkdir(parents=True, exist_ok=True)
            self._resolved_data_dir = data_dir
            return data_dir

        primary_dir = get_xdg_data_home() / "passforge"
        try:
            primary_dir.mkdir(parents=True, exist_ok=True)
            self._resolved_data_dir = primary_dir
            return primary_dir
        except PermissionError as exc:
            fallback = Path.cwd() / ".passforge-data"
            fallback.mkdir(parents=True, exist_ok=True)
            self._resolved_data_dir = fallback
            if not self._data_dir_warning_emitted:
                print(
                    f"Warning: cannot create data directory at {primary_dir} ({exc}). "
                    f"Using local '{fallback}' instead. Pass --data-dir to override.",
                    file=sys.stderr,
                )
                self._data_dir_warning_emitted = True
            return fallback

    def get_config_dir(self) -> Path:
        """Get the config directory, creating if necessary."""
        if self.config_dir:
            config_dir = self.config_dir
        else:
            config_dir = get_xdg_config_home() / "passforge"

        config_dir.mkdir(parents=True, exist_ok=True)
        return config_dir

    def get_audit_path(self) -> Path:
        """Get path to audit ledger file."""
        return self.get_data_dir() / "audit.jsonl"

    def get_audit_hmac_key(self) -> bytes:
        """Return the HMAC key used to seal audit ledger metadata."""
        key_path = (
            self.audit_hmac_key_path
            if self.audit_hmac_key_path is not None
            else self.get_config_dir() / "audit-ledger.key"
        )
        return load_or_create_hmac_key(key_path, length=32)

    def get_private_key_password(self) -> str | None:
        if self.private_key_password is None:
            return None
        return self.private_key_password.get_secret_value()

    def get_p12_password(self) -> str | None:
        if self.certificate_p12_password is None:
            return None
        return self.certificate_p12_password.get_secret_value()


class SigningSecrets(BaseModel):
    """Secrets file layout: base64-wrapped PEM documents."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    wwdr_certificate: str = Field(..., alias="pemWWDRCertificate")
    certificate: str = Field(..., alias="pemCertificate")
    private_key: str = Field(..., alias="pemPrivateKey")


def _read_material(path: Path, label: str) -> bytes:
    try:
        return path.read_bytes()
    except OSError as exc:
        raise ConfigurationError(f"Cannot read {label} at {path}: {exc}") from exc


def _identity_from_secrets_file(path: Path, password: str | None) -> SigningIdentity:
    raw = _read_material(path, "secrets file")
    try:
        secrets = SigningSecrets.model_validate_json(raw)
    except ValidationError as exc:
        raise ConfigurationError(f"Malformed secrets file {path}: {exc}") from exc

    decoded: dict[str, str] = {}
    for field_name in ("wwdr_certificate", "certificate", "private_key"):
        try:
            decoded[field_name] = decode_base64_text(getattr(secrets, field_name))
        except ValueError as exc:
            alias = SigningSecrets.model_fields[field_name].alias
            raise ConfigurationError(f"Secrets file field '{alias}' is not base64 PEM") from exc

    return SigningIdentity.from_pem(
        wwdr_pem=decoded["wwdr_certificate"],
        certificate_pem=decoded["certificate"],
        private_key_pem=decoded["private_key"],
        password=password,
    )


def load_signing_identity(settings: Settings | None = None) -> SigningIdentity:
    """Resolve the signing identity from configured material.

    Sources are tried in order: secrets file, PKCS#12 bundle, PEM paths.

    Raises:
        ConfigurationError: If no material is configured or it cannot be used.
    """
    active = settings or get_settings()
    password = active.get_private_key_password()

    if active.secrets_path is not None:
        logger.debug("Loading signing identity from secrets file %s", active.secrets_path)
        return _identity_from_secrets_file(active.secrets_path, password)

    if active.certificate_p12_path is not None:
        if active.wwdr_certificate_path is None:
            raise ConfigurationError(
                "PASSFORGE_WWDR_CERTIFICATE_PATH is required with a PKCS#12 bundle"
            )
        logger.debug("Loading signing identity from %s", active.certificate_p12_path)
        return SigningIdentity.from_pkcs12(
            _read_material(active.certificate_p12_path, "PKCS#12 bundle"),
            password=active.get_p12_password(),
            wwdr_pem=_read_material(active.wwdr_certificate_path, "WWDR certificate"),
        )

    paths: dict[str, Path | None] = {
        "wwdr_certificate_path": active.wwdr_certificate_path,
        "certificate_path": active.certificate_path,
        "private_key_path": active.private_key_path,
    }
    missing = [name for name, path in paths.items() if path is None]
    if len(missing) == len(paths):
        raise ConfigurationError(
            "No signing identity configured. Set PASSFORGE_SECRETS_PATH, "
            "PASSFORGE_CERTIFICATE_P12_PATH, or the PEM certificate and key paths."
        )
    if missing:
        raise ConfigurationError(
            "Incomplete signing identity; missing "
            + ", ".join(f"PASSFORGE_{name.upper()}" for name in missing)
        )

    assert active.wwdr_certificate_path is not None
    assert active.certificate_path is not None
    assert active.private_key_path is not None
    return SigningIdentity.from_pem(
        wwdr_pem=_read_material(active.wwdr_certificate_path, "WWDR certificate"),
        certificate_pem=_read_material(active.certificate_path, "signing certificate"),
        private_key_pem=_read_material(active.private_key_path, "private key"),
        password=password,
    )


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def set_settings(settings: Settings) -> None:
    """Set the global settings instance (useful for testing)."""
    global _settings
    _settings = settings


