"""Signer port interface for detached manifest signatures."""

from typing import Protocol


class SignerPort(Protocol):
    """Port interface for cryptographic signing operations.

    Implementations hold only immutable key material and may be shared
    across threads.

    Side effects: None (pure computation).
    """

    def sign(self, data: bytes) -> bytes:
        """Sign data.

        Args:
            data: Exact bytes to sign (the serialized manifest)

        Returns:
            Detached signature bytes
        """
        ...

    def fingerprint(self) -> str:
        """Return an identifier for the signing certificate."""
        ...
