"""Audit ledger read/verify service."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from passforge.app.ports import LedgerPort


@dataclass(slots=True)
class AuditService:
    """Expose read/verify operations over the signing audit ledger."""

    ledger: LedgerPort | None

    def is_enabled(self) -> bool:
        return self.ledger is not None

    def get_entries(self) -> list[Any]:
        """Return all audit ledger entries (empty list when disabled)."""
        if self.ledger is None:
            return []
        return self.ledger.read_all()

    def verify(self) -> tuple[bool, str | None]:
        """Verify ledger integrity, treating a disabled ledger as valid."""
        if self.ledger is None:
            return True, None
        return self.ledger.verify()
