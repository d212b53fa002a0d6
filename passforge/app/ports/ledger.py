"""Ledger port interface for audit trail operations."""

from typing import Any, Protocol


class LedgerPort(Protocol):
    """Port interface for audit ledger operations.

    Adapters implementing this port must provide:
    - Append-only audit logging
    - Hash chain verification
    - Tamper-evident storage

    Side effects: Writes to audit ledger (offline).
    """

    def log(
        self,
        operation: str,
        inputs: list[str],
        outputs: list[str],
        args: dict[str, Any],
    ) -> Any:
        """Log an operation to the audit ledger.

        Args:
            operation: Operation name (e.g., "pass_sign")
            inputs: List of input identifiers
            outputs: List of output identifiers or digests
            args: Additional arguments/metadata

        Raises:
            AuditError: If the entry cannot be recorded.
        """
        ...

    def verify(self) -> tuple[bool, str | None]:
        """Verify audit ledger integrity.

        Returns:
            Tuple of (is_valid, error_message)
        """
        ...

    def read_all(self) -> list[Any]:
        """Read all audit entries.

        Returns:
            List of audit entry DTOs
        """
        ...
