"""Directory-backed asset source for pass images."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from passforge.app.ports import AssetSourcePort
from passforge.pkpass.constants import ASSET_NAME_PATTERN, RESERVED_MEMBERS

logger = logging.getLogger(__name__)

DEFAULT_ASSET_EXTENSIONS = frozenset({".png"})


class DirectoryAssetLoader(AssetSourcePort):
    """Load flat asset files (``icon.png``, ``logo@2x.png``...) from one directory.

    Subdirectories and symlinks are ignored. A missing directory yields no
    assets, matching a pass that ships without images.
    """

    def __init__(
        self,
        directory: Path | None,
        *,
        extensions: Iterable[str] = DEFAULT_ASSET_EXTENSIONS,
    ) -> None:
        self._directory = Path(directory) if directory is not None else None
        self._extensions = frozenset(ext.lower() for ext in extensions)

    @property
    def directory(self) -> Path | None:
        return self._directory

    def load(self) -> dict[str, bytes]:
        if self._directory is None or not self._directory.exists():
            logger.info("Asset directory %s not found; bundling without assets", self._directory)
            return {}
        if not self._directory.is_dir():
            raise NotADirectoryError(f"Asset path is not a directory: {self._directory}")

        assets: dict[str, bytes] = {}
        for path in sorted(self._directory.iterdir()):
            if path.is_symlink() or not path.is_file():
                continue
            if path.suffix.lower() not in self._extensions:
                continue

            name = path.name
            if name in RESERVED_MEMBERS:
                logger.warning("Skipping asset %s: name is reserved for bundle metadata", name)
                continue
            if not ASSET_NAME_PATTERN.fullmatch(name):
                logger.warning("Skipping asset %s: name contains unsupported characters", name)
                continue

            assets[name] = path.read_bytes()

        logger.debug("Loaded %d assets from %s", len(assets), self._directory)
        return assets
