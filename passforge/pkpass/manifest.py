"""Digest manifest for ``.pkpass`` bundles.

The manifest maps every bundle member except ``manifest.json`` and
``signature`` to the SHA-1 hex digest of the exact bytes written into the
archive. Wallet applications recompute these digests after unpacking, so the
bytes hashed here must be the bytes handed to the bundle writer.
"""

from __future__ import annotations

import json
from collections.abc import Iterator, Mapping

from passforge.errors import DigestError
from passforge.pkpass.constants import PASS_MEMBER, UNDIGESTED_MEMBERS
from passforge.utils.hashing import compute_sha1


def digest_member(name: str, data: bytes) -> str:
    """Return the manifest digest for ``data``.

    Raises:
        DigestError: If ``data`` is not a bytes-like object.
    """
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise DigestError(
            f"Cannot digest member '{name}': expected bytes, got {type(data).__name__}"
        )
    return compute_sha1(bytes(data))


class Manifest(Mapping[str, str]):
    """Mapping of bundle member name to lowercase hex SHA-1 digest."""

    __slots__ = ("_hashes",)

    def __init__(self, hashes: Mapping[str, str] | None = None) -> None:
        self._hashes: dict[str, str] = dict(hashes or {})

    @classmethod
    def build(cls, pass_definition: bytes, assets: Mapping[str, bytes]) -> Manifest:
        """Digest the pass definition and every asset.

        Args:
            pass_definition: Serialized pass.json bytes
            assets: Asset filename to content mapping

        Returns:
            Manifest with one entry per member
        """
        manifest = cls()
        manifest.add(PASS_MEMBER, pass_definition)
        for filename, data in assets.items():
            manifest.add(filename, data)
        return manifest

    @classmethod
    def from_bytes(cls, data: bytes) -> Manifest:
        """Parse a serialized manifest.

        Raises:
            DigestError: If ``data`` is not a JSON object of string values.
        """
        try:
            decoded = json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise DigestError(f"Manifest is not valid JSON: {exc}") from exc

        if not isinstance(decoded, dict) or not all(
            isinstance(key, str) and isinstance(value, str) for key, value in decoded.items()
        ):
            raise DigestError("Manifest must be a JSON object mapping names to digests")

        return cls(decoded)

    def add(self, name: str, data: bytes) -> str:
        """Digest ``data`` and record it under ``name``."""
        digest = digest_member(name, data)
        self._hashes[name] = digest
        return digest

    @property
    def entries(self) -> dict[str, str]:
        """Copy of the name to digest mapping."""
        return dict(self._hashes)

    def names(self) -> list[str]:
        return sorted(self._hashes)

    def __getitem__(self, name: str) -> str:
        return self._hashes[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._hashes)

    def __len__(self) -> int:
        return len(self._hashes)

    def __repr__(self) -> str:
        return f"Manifest({self._hashes!r})"

    def to_bytes(self) -> bytes:
        """Serialize as pretty-printed JSON with keys sorted by member name."""
        ordered = {name: self._hashes[name] for name in sorted(self._hashes)}
        return json.dumps(ordered, indent=2).encode("utf-8")

    def mismatches(self, members: Mapping[str, bytes]) -> list[str]:
        """Return names whose content does not match the recorded digest.

        Names present in the manifest but absent from ``members`` count as
        mismatches. Members the manifest never describes are ignored.
        """
        failed: list[str] = []
        for name in sorted(self._hashes):
            data = members.get(name)
            if data is None or digest_member(name, data) != self._hashes[name]:
                failed.append(name)
        return failed

    def undescribed(self, member_names: set[str] | frozenset[str]) -> list[str]:
        """Return bundle members that should be digested but are not."""
        return sorted(
            name
            for name in member_names
            if name not in UNDIGESTED_MEMBERS and name not in self._hashes
        )
