"""Closed tag sets used in pass.json and their lookup tables.

Wire values arrive as free strings. Every tag set has an explicit lookup
table and a fallback; unknown values resolve to the fallback with a warning,
or raise ``ValueError`` when ``strict`` is set.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from enum import Enum
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BarcodeFormat(str, Enum):
    QR = "PKBarcodeFormatQR"
    PDF417 = "PKBarcodeFormatPDF417"
    AZTEC = "PKBarcodeFormatAztec"
    CODE128 = "PKBarcodeFormatCode128"


class MessageEncoding(str, Enum):
    ISO_8859_1 = "iso-8859-1"
    UTF_8 = "utf-8"


class TextAlignment(str, Enum):
    LEFT = "PKTextAlignmentLeft"
    CENTER = "PKTextAlignmentCenter"
    RIGHT = "PKTextAlignmentRight"
    NATURAL = "PKTextAlignmentNatural"


class TransitType(str, Enum):
    AIR = "PKTransitTypeAir"
    BOAT = "PKTransitTypeBoat"
    BUS = "PKTransitTypeBus"
    TRAIN = "PKTransitTypeTrain"
    GENERIC = "PKTransitTypeGeneric"


class PassStyle(str, Enum):
    """Top-level pass.json key holding the field structure."""

    GENERIC = "generic"
    STORE_CARD = "storeCard"
    EVENT_TICKET = "eventTicket"
    COUPON = "coupon"
    BOARDING_PASS = "boardingPass"


BARCODE_FORMATS: Mapping[str, BarcodeFormat] = {member.value: member for member in BarcodeFormat}

MESSAGE_ENCODINGS: Mapping[str, MessageEncoding] = {
    "iso-8859-1": MessageEncoding.ISO_8859_1,
    "iso88591": MessageEncoding.ISO_8859_1,
    "utf-8": MessageEncoding.UTF_8,
    "utf8": MessageEncoding.UTF_8,
}

TEXT_ALIGNMENTS: Mapping[str, TextAlignment] = {member.value: member for member in TextAlignment}

TRANSIT_TYPES: Mapping[str, TransitType] = {member.value: member for member in TransitType}


def _lookup(
    table: Mapping[str, T],
    value: str,
    *,
    kind: str,
    fallback: T,
    strict: bool,
) -> T:
    try:
        return table[value]
    except KeyError:
        if strict:
            raise ValueError(
                f"Unknown {kind} '{value}' (expected one of: {', '.join(sorted(table))})"
            ) from None
        logger.warning("Unknown %s %r; falling back to %s", kind, value, fallback)
        return fallback


def resolve_barcode_format(value: str, *, strict: bool = False) -> BarcodeFormat:
    return _lookup(
        BARCODE_FORMATS, value, kind="barcode format", fallback=BarcodeFormat.QR, strict=strict
    )


def resolve_message_encoding(value: str, *, strict: bool = False) -> MessageEncoding:
    """Encoding names are matched case-insensitively."""
    return _lookup(
        MESSAGE_ENCODINGS,
        value.lower(),
        kind="message encoding",
        fallback=MessageEncoding.ISO_8859_1,
        strict=strict,
    )


def resolve_text_alignment(value: str | None, *, strict: bool = False) -> TextAlignment | None:
    """A missing alignment stays unset; an unknown one falls back to unset."""
    if value is None:
        return None
    return _lookup(TEXT_ALIGNMENTS, value, kind="text alignment", fallback=None, strict=strict)


def resolve_transit_type(value: str | None, *, strict: bool = False) -> TransitType | None:
    if value is None:
        return None
    return _lookup(
        TRANSIT_TYPES, value, kind="transit type", fallback=TransitType.GENERIC, strict=strict
    )
