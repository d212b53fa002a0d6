"""Port interfaces for the passforge application layer.

These protocol interfaces define contracts for adapters.
Services depend on these ports, never on concrete implementations.
"""

__all__ = [
    "AssetSourcePort",
    "BundlePort",
    "LedgerPort",
    "SignatureVerifierPort",
    "SignerPort",
]

from passforge.app.ports.assets import AssetSourcePort
from passforge.app.ports.bundle import BundlePort
from passforge.app.ports.ledger import LedgerPort
from passforge.app.ports.signer import SignerPort
from passforge.app.ports.verifier import SignatureVerifierPort
