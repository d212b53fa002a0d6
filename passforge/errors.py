"""Error taxonomy for the signing and packaging pipeline.

Every error carries a ``category`` so callers can tell configuration problems
(fatal at startup) apart from per-request client input problems and internal
failures.
"""

from __future__ import annotations

from typing import Literal

ErrorCategory = Literal["configuration", "client", "internal"]


class PassforgeError(Exception):
    """Base class for all passforge errors."""

    category: ErrorCategory = "internal"


class ConfigurationError(PassforgeError):
    """Raised when signing material or settings are unusable at startup."""

    category: ErrorCategory = "configuration"


class CertificateParseError(ConfigurationError):
    """Raised when a PEM/DER certificate cannot be parsed."""


class KeyParseError(ConfigurationError):
    """Raised when the private key cannot be parsed or is not an RSA key."""


class DigestError(PassforgeError):
    """Raised when a bundle member cannot be digested."""

    category: ErrorCategory = "internal"


class SigningError(PassforgeError):
    """Raised when the cryptographic backend rejects a signing operation."""

    category: ErrorCategory = "internal"


class BundleCompositionError(PassforgeError):
    """Raised when bundle members collide with reserved names or are unsafe."""

    category: ErrorCategory = "client"


class BundleWriteError(PassforgeError):
    """Raised when the archive cannot be finalized."""

    category: ErrorCategory = "internal"


class BundleReadError(BundleWriteError):
    """Raised when an existing bundle cannot be unpacked."""


class AuditError(PassforgeError):
    """Raised when a signing record cannot be appended to the audit ledger."""

    category: ErrorCategory = "internal"


__all__ = [
    "AuditError",
    "BundleCompositionError",
    "BundleReadError",
    "BundleWriteError",
    "CertificateParseError",
    "ConfigurationError",
    "DigestError",
    "ErrorCategory",
    "KeyParseError",
    "PassforgeError",
    "SigningError",
]
