"""Pass description models and tag translation (outside the signing core)."""

from passforge.passes.models import (
    Barcode,
    BarcodeInfo,
    CreatePassRequest,
    FieldContent,
    PassDocument,
    PassFieldInfo,
    PassFields,
    PassStructureInfo,
    normalize_color,
)
from passforge.passes.tags import (
    BarcodeFormat,
    MessageEncoding,
    PassStyle,
    TextAlignment,
    TransitType,
)

__all__ = [
    "Barcode",
    "BarcodeFormat",
    "BarcodeInfo",
    "CreatePassRequest",
    "FieldContent",
    "MessageEncoding",
    "PassDocument",
    "PassFieldInfo",
    "PassFields",
    "PassStructureInfo",
    "PassStyle",
    "TextAlignment",
    "TransitType",
    "normalize_color",
]
