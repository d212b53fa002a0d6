"""Verifier port interface for detached signatures."""

from typing import Protocol


class SignatureVerifierPort(Protocol):
    """Port interface for checking a detached signature against content.

    Side effects: May spawn external tooling (offline).
    """

    def available(self) -> bool:
        """Return True when the verifier can run in this environment."""
        ...

    def verify(self, content: bytes, signature: bytes) -> bool:
        """Verify signature.

        Args:
            content: Original signed bytes
            signature: Detached signature to verify

        Returns:
            True if signature is valid
        """
        ...
