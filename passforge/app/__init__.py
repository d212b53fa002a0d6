"""Application layer for passforge.

Services orchestrate the signing pipeline without direct filesystem I/O.
Side effects are delegated to adapters via port interfaces.
"""

__all__ = [
    "AuditService",
    "BundleVerifier",
    "PassSigningService",
    "SignedBundle",
    "VerificationReport",
]

from passforge.app.audit_service import AuditService
from passforge.app.signing_service import PassSigningService, SignedBundle
from passforge.app.verify_service import BundleVerifier, VerificationReport
