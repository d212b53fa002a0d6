"""Ports for writing and reading pass bundles."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol


class BundlePort(Protocol):
    """Port interface for assembling the final pass archive."""

    def validate_members(self, pass_definition: bytes, assets: Mapping[str, bytes]) -> None:
        """Reject inputs that cannot be written as a flat bundle."""
        ...

    def write(
        self,
        pass_definition: bytes,
        assets: Mapping[str, bytes],
        manifest: bytes,
        signature: bytes,
    ) -> bytes:
        """Return the archive bytes holding every member."""
        ...

    def read_members(self, bundle: bytes) -> dict[str, bytes]:
        """Unpack ``bundle`` into a member name to content mapping."""
        ...
