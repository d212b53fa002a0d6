"""Append-only audit ledger recording every signed bundle.

Entries are JSON lines linked in a hash chain and sealed with an HMAC so a
deleted, edited, or reordered signing record is detectable. A small tip file
beside the ledger records the last sequence and hash, which exposes
truncation of the final lines.

The ledger sits beside the signing pipeline, not inside it: the pipeline
stays stateless and hands each finished bundle to :meth:`AuditLedger.log`,
which serializes appends so the chain stays linear.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
import os
import threading
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from passforge import __version__
from passforge.errors import AuditError
from passforge.utils.crypto import load_or_create_hmac_key
from passforge.utils.hashing import compute_sha256

logger = logging.getLogger(__name__)

GENESIS_HASH = "0" * 64
GENESIS_SIGNATURE = "0" * 64
TIP_FORMAT_VERSION = 1


class AuditEntry(BaseModel):
    """One signing record. ``entry_hash`` is filled in on construction."""

    timestamp: str = Field(..., description="ISO 8601 timestamp in UTC")
    operation: str = Field(..., description="Operation name (e.g., pass_sign)")
    inputs: list[str] = Field(default_factory=list, description="Bundle member names")
    outputs: list[str] = Field(default_factory=list, description="Bundle SHA-256 digests")
    args: dict[str, Any] = Field(
        default_factory=dict,
        description="Certificate fingerprint, serial number and asset count",
    )
    versions: dict[str, str] = Field(default_factory=dict)
    previous_hash: str = Field(default=GENESIS_HASH)
    sequence: int | None = Field(default=None, ge=1)
    entry_hash: str | None = None
    signature: str | None = None

    def compute_hash(self) -> str:
        """SHA-256 over canonical JSON of the entry, excluding hash and signature."""
        content = self.model_dump(
            mode="json",
            exclude={"entry_hash", "signature"},
            exclude_none=True,
        )
        canonical = json.dumps(content, sort_keys=True, separators=(",", ":"))
        return compute_sha256(canonical.encode("utf-8"))

    def model_post_init(self, __context: Any) -> None:
        if self.entry_hash is None:
            self.entry_hash = self.compute_hash()


@dataclass(frozen=True, slots=True)
class LedgerTip:
    """Position of the newest sealed entry."""

    sequence: int = 0
    entry_hash: str = GENESIS_HASH
    signature: str = GENESIS_SIGNATURE

    @classmethod
    def of(cls, entry: AuditEntry) -> LedgerTip:
        return cls(
            sequence=entry.sequence or 0,
            entry_hash=entry.entry_hash or GENESIS_HASH,
            signature=entry.signature or GENESIS_SIGNATURE,
        )


class AuditLedger:
    """Hash-chained JSONL ledger with an HMAC-sealed tip file."""

    def __init__(
        self,
        ledger_path: Path,
        *,
        hmac_key: bytes | None = None,
        fsync_interval: int = 1,
    ) -> None:
        """Open (or create) the ledger at ``ledger_path``.

        Args:
            ledger_path: Path to JSONL ledger file
            hmac_key: Key sealing entries (defaults to a key file beside the ledger)
            fsync_interval: Entries between fsync calls (1 = every entry)

        Raises:
            AuditError: If the ledger directory, key or existing entries are unusable.
        """
        self.ledger_path = Path(ledger_path)
        self._tip_path = self.ledger_path.with_suffix(".meta")
        self._fsync_interval = max(1, fsync_interval)
        self._append_lock = threading.Lock()

        try:
            self.ledger_path.parent.mkdir(parents=True, exist_ok=True)
            if hmac_key is None:
                hmac_key = load_or_create_hmac_key(
                    self.ledger_path.with_suffix(".key"), length=32
                )
            self._hmac_key = hmac_key
            self._tip = self._resume()
        except (OSError, ValueError) as exc:
            raise AuditError(f"Cannot open audit ledger {self.ledger_path}: {exc}") from exc

    # Sealing -------------------------------------------------------------

    def _seal(self, entry: AuditEntry, previous_signature: str) -> str:
        payload = "|".join(
            (
                str(entry.sequence or 0),
                entry.previous_hash,
                entry.entry_hash or "",
                previous_signature,
            )
        )
        return hmac.new(self._hmac_key, payload.encode("utf-8"), hashlib.sha256).hexdigest()

    def _tip_hmac(self, sequence: int, entry_hash: str | None) -> str:
        payload = f"{sequence}:{entry_hash or GENESIS_HASH}"
        return hmac.new(self._hmac_key, payload.encode("utf-8"), hashlib.sha256).hexdigest()

    # Tip file ------------------------------------------------------------

    def _resume(self) -> LedgerTip:
        entries = self._read_entries()
        tip = LedgerTip.of(entries[-1]) if entries else LedgerTip()

        try:
            recorded = self._load_tip_record()
        except ValueError:
            # Tampered tip files stay in place for verify() to report.
            logger.warning("Audit tip file %s failed its integrity check", self._tip_path)
            return tip
        if recorded is None:
            self._save_tip(tip)
        return tip

    def _save_tip(self, tip: LedgerTip) -> None:
        last_hash = tip.entry_hash if tip.sequence else None
        record = {
            "version": TIP_FORMAT_VERSION,
            "last_sequence": tip.sequence,
            "last_hash": last_hash,
            "hmac": self._tip_hmac(tip.sequence, last_hash),
        }
        staging = self._tip_path.with_name(self._tip_path.name + ".tmp")
        fd = os.open(staging, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        try:
            os.write(fd, json.dumps(record, sort_keys=True).encode("utf-8"))
            os.fsync(fd)
        finally:
            os.close(fd)
        os.replace(staging, self._tip_path)

    def _load_tip_record(self) -> dict[str, Any] | None:
        """Return the tip record, or None when no tip file exists.

        Raises:
            ValueError: If the record is unreadable or its HMAC does not match.
        """
        try:
            record = json.loads(self._tip_path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        if not isinstance(record, dict):
            raise ValueError("Audit tip record is not a JSON object")

        expected = self._tip_hmac(int(record.get("last_sequence", 0)), record.get("last_hash"))
        actual = record.get("hmac")
        if not isinstance(actual, str) or not hmac.compare_digest(expected, actual):
            raise ValueError("Audit metadata HMAC mismatch")
        return record

    # Entries -------------------------------------------------------------

    def _read_entries(self) -> list[AuditEntry]:
        if not self.ledger_path.exists():
            return []

        entries: list[AuditEntry] = []
        with open(self.ledger_path, encoding="utf-8") as fh:
            for line_num, line in enumerate(fh, 1):
                if not line.strip():
                    continue
                try:
                    entries.append(AuditEntry.model_validate_json(line))
                except ValidationError as exc:
                    raise ValueError(
                        f"Invalid entry at line {line_num} in {self.ledger_path}: {exc}"
                    ) from exc
        return entries

    def _append(self, entry: AuditEntry) -> None:
        with open(self.ledger_path, "a", encoding="utf-8") as fh:
            fh.write(entry.model_dump_json() + "\n")
            fh.flush()
            if (entry.sequence or 0) % self._fsync_interval == 0:
                os.fsync(fh.fileno())

    def log(
        self,
        operation: str,
        inputs: list[str] | None = None,
        outputs: list[str] | None = None,
        args: dict[str, Any] | None = None,
        versions: dict[str, str] | None = None,
    ) -> AuditEntry:
        """Append a sealed entry and return it.

        Raises:
            AuditError: If the entry cannot be written.
        """
        stamped_versions = {"passforge": __version__, **(versions or {})}

        with self._append_lock:
            tip = self._tip
            entry = AuditEntry(
                timestamp=datetime.now(UTC).isoformat(),
                operation=operation,
                inputs=list(inputs or []),
                outputs=list(outputs or []),
                args=dict(args or {}),
                versions=stamped_versions,
                previous_hash=tip.entry_hash,
                sequence=tip.sequence + 1,
            )
            entry.signature = self._seal(entry, tip.signature)

            try:
                self._append(entry)
                next_tip = LedgerTip.of(entry)
                self._save_tip(next_tip)
            except OSError as exc:
                raise AuditError(
                    f"Cannot append to audit ledger {self.ledger_path}: {exc}"
                ) from exc
            self._tip = next_tip

        return entry

    def read_all(self) -> list[AuditEntry]:
        """Return all entries in chronological order."""
        return self._read_entries()

    def get_by_operation(self, operation: str) -> list[AuditEntry]:
        return [entry for entry in self._read_entries() if entry.operation == operation]

    # Verification --------------------------------------------------------

    def _check_chain(self, entries: list[AuditEntry]) -> str | None:
        expected = LedgerTip()
        for position, entry in enumerate(entries, 1):
            if entry.sequence != position:
                return f"Entry {position} sequence mismatch (got {entry.sequence})."
            if entry.entry_hash is None or entry.signature is None:
                return f"Entry {position} is missing its hash or signature."
            if not hmac.compare_digest(entry.entry_hash, entry.compute_hash()):
                return f"Entry {position} has invalid hash; content was modified."
            if entry.previous_hash != expected.entry_hash:
                return f"Entry {position} breaks hash chain."
            if not hmac.compare_digest(entry.signature, self._seal(entry, expected.signature)):
                return f"Entry {position} has invalid signature; ledger may have been tampered."
            expected = LedgerTip.of(entry)
        return None

    def verify(self) -> tuple[bool, str | None]:
        """Verify the hash chain, entry seals and tip record.

        Returns:
            Tuple of (is_valid, error_message). error_message is None if valid.
        """
        try:
            recorded = self._load_tip_record()
        except ValueError as exc:
            return False, f"Audit metadata integrity failure: {exc}"

        try:
            entries = self._read_entries()
        except (OSError, ValueError) as exc:
            return False, str(exc)

        problem = self._check_chain(entries)
        if problem is not None:
            return False, problem

        recorded_sequence = int(recorded.get("last_sequence", 0)) if recorded else 0
        if not entries:
            if recorded_sequence > 0:
                return False, "Audit ledger appears truncated (metadata expects entries)."
            return True, None

        if recorded is None:
            return False, "Audit metadata file is missing."

        newest = entries[-1]
        if recorded_sequence != newest.sequence:
            return False, "Ledger metadata sequence mismatch; possible truncation detected."
        if recorded.get("last_hash") != newest.entry_hash:
            return False, "Ledger metadata hash mismatch; possible truncation or tampering detected."
        return True, None


class NoOpLedger:
    """Ledger implementation that drops all writes."""

    def log(self, *args: Any, **kwargs: Any) -> None:
        return None

    def read_all(self) -> list[AuditEntry]:
        return []

    def verify(self) -> tuple[bool, str | None]:
        return (True, None)
