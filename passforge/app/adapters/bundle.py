"""Zip bundle adapter producing ``.pkpass`` archives in memory."""

from __future__ import annotations

import logging
import zlib
from collections.abc import Mapping
from io import BytesIO
from typing import Literal
from zipfile import ZIP_DEFLATED, ZIP_STORED, BadZipFile, ZipFile, ZipInfo

from passforge.app.ports import BundlePort
from passforge.errors import (
    BundleCompositionError,
    BundleReadError,
    BundleWriteError,
    ConfigurationError,
)
from passforge.pkpass.constants import (
    ASSET_NAME_PATTERN,
    MANIFEST_MEMBER,
    PASS_MEMBER,
    RESERVED_MEMBERS,
    SIGNATURE_MEMBER,
)

logger = logging.getLogger(__name__)

CompressionName = Literal["deflated", "stored"]

_COMPRESSION = {
    "deflated": ZIP_DEFLATED,
    "stored": ZIP_STORED,
}

# Fixed member timestamp so identical inputs give identical archives.
_MEMBER_DATE_TIME = (1980, 1, 1, 0, 0, 0)


def check_asset_name(name: object) -> None:
    """Raise :class:`BundleCompositionError` unless ``name`` is a flat, unreserved name."""
    if not isinstance(name, str) or not name:
        raise BundleCompositionError("Asset names must be non-empty strings")
    if name in RESERVED_MEMBERS:
        raise BundleCompositionError(
            f"Asset '{name}' collides with reserved bundle member '{name}'"
        )
    if "/" in name or "\\" in name or name in {".", ".."}:
        raise BundleCompositionError(f"Asset '{name}' must be a flat filename")
    if not ASSET_NAME_PATTERN.fullmatch(name):
        raise BundleCompositionError(f"Asset {name!r} contains unsupported characters")


class ZipBundleWriter(BundlePort):
    """Write pass definition, assets, manifest and signature as flat zip members."""

    def __init__(self, *, compression: CompressionName = "deflated") -> None:
        try:
            self._compression = _COMPRESSION[compression]
        except KeyError:
            raise ConfigurationError(
                f"Unknown bundle compression '{compression}' (expected deflated or stored)"
            ) from None

    def validate_members(self, pass_definition: bytes, assets: Mapping[str, bytes]) -> None:
        if not pass_definition:
            raise BundleWriteError("Pass definition is empty; refusing to write bundle")
        for name in assets:
            check_asset_name(name)

    def write(
        self,
        pass_definition: bytes,
        assets: Mapping[str, bytes],
        manifest: bytes,
        signature: bytes,
    ) -> bytes:
        self.validate_members(pass_definition, assets)
        if not manifest:
            raise BundleWriteError("Manifest is empty; refusing to write bundle")
        if not signature:
            raise BundleWriteError("Signature is empty; refusing to write bundle")

        buffer = BytesIO()
        try:
            with ZipFile(buffer, "w") as archive:
                self._add(archive, PASS_MEMBER, pass_definition)
                for name in sorted(assets):
                    self._add(archive, name, assets[name])
                self._add(archive, MANIFEST_MEMBER, manifest)
                self._add(archive, SIGNATURE_MEMBER, signature)
        except (OSError, ValueError, TypeError, zlib.error) as exc:
            raise BundleWriteError(f"Failed to finalize bundle: {exc}") from exc

        data = buffer.getvalue()
        logger.debug("Wrote bundle with %d members (%d bytes)", len(assets) + 3, len(data))
        return data

    def _add(self, archive: ZipFile, name: str, content: bytes) -> None:
        info = ZipInfo(name, date_time=_MEMBER_DATE_TIME)
        info.compress_type = self._compression
        info.external_attr = 0o644 << 16
        archive.writestr(info, bytes(content))

    def read_members(self, bundle: bytes) -> dict[str, bytes]:
        members: dict[str, bytes] = {}
        try:
            with ZipFile(BytesIO(bundle)) as archive:
                for info in archive.infolist():
                    if info.filename in members:
                        raise BundleReadError(f"Duplicate member '{info.filename}'")
                    members[info.filename] = archive.read(info)
        except (BadZipFile, OSError, ValueError, zlib.error) as exc:
            raise BundleReadError(f"Bundle is not a readable zip archive: {exc}") from exc
        return members
