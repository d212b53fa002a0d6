"""Asset source port for bundle image files."""

from __future__ import annotations

from typing import Protocol


class AssetSourcePort(Protocol):
    """Port interface for resolving pass assets before signing.

    Implementations guarantee unique, flat filenames that do not collide
    with reserved bundle members.

    Side effects: Reads asset files (offline).
    """

    def load(self) -> dict[str, bytes]:
        """Return a filename to content mapping."""
        ...
