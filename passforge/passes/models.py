"""Pass description models: the wire request and the pass.json document.

``CreatePassRequest`` mirrors the JSON a client posts; ``PassDocument`` is
what ends up in the bundle as ``pass.json``. Translation between the two goes
through the tag lookup tables in :mod:`passforge.passes.tags`.
"""

from __future__ import annotations

import json
import re

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from passforge.passes.tags import (
    BarcodeFormat,
    MessageEncoding,
    PassStyle,
    TextAlignment,
    TransitType,
    resolve_barcode_format,
    resolve_message_encoding,
    resolve_text_alignment,
    resolve_transit_type,
)

_HEX_COLOR = re.compile(r"^#?([0-9a-fA-F]{6})$")
_RGB_COLOR = re.compile(r"^rgb\(\s*(\d{1,3})\s*,\s*(\d{1,3})\s*,\s*(\d{1,3})\s*\)$")


def normalize_color(value: str) -> str:
    """Convert ``#rrggbb`` or ``rgb(r, g, b)`` to the ``rgb(r, g, b)`` form pass.json uses."""
    candidate = value.strip()
    hex_match = _HEX_COLOR.match(candidate)
    if hex_match:
        digits = hex_match.group(1)
        components = tuple(int(digits[i : i + 2], 16) for i in (0, 2, 4))
    else:
        rgb_match = _RGB_COLOR.match(candidate)
        if rgb_match is None:
            raise ValueError("Color must be '#rrggbb' or 'rgb(r, g, b)'")
        components = tuple(int(group) for group in rgb_match.groups())
        if any(component > 255 for component in components):
            raise ValueError("Color components must be between 0 and 255")
    return "rgb({}, {}, {})".format(*components)


# pass.json document ---------------------------------------------------------


class _PassJSONModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class Barcode(_PassJSONModel):
    alt_text: str | None = None
    format: BarcodeFormat
    message: str
    message_encoding: MessageEncoding


class FieldContent(_PassJSONModel):
    key: str
    label: str | None = None
    text_alignment: TextAlignment | None = None
    value: str


class PassFields(_PassJSONModel):
    auxiliary_fields: list[FieldContent] | None = None
    back_fields: list[FieldContent] | None = None
    header_fields: list[FieldContent] | None = None
    primary_fields: list[FieldContent] | None = None
    secondary_fields: list[FieldContent] | None = None
    transit_type: TransitType | None = None


class PassDocument(_PassJSONModel):
    """Top-level pass.json content."""

    format_version: int = 1
    pass_type_identifier: str
    serial_number: str
    team_identifier: str
    organization_name: str
    description: str
    logo_text: str | None = None
    foreground_color: str | None = None
    background_color: str | None = None
    label_color: str | None = None
    barcodes: list[Barcode] = Field(default_factory=list)
    generic: PassFields | None = None
    store_card: PassFields | None = None
    event_ticket: PassFields | None = None
    coupon: PassFields | None = None
    boarding_pass: PassFields | None = None

    def to_bytes(self) -> bytes:
        """Serialize to canonical pass.json bytes.

        The result is what gets digested and bundled; callers must not
        re-serialize the document after handing these bytes to the signer.
        """
        payload = self.model_dump(mode="json", by_alias=True, exclude_none=True)
        return json.dumps(payload, sort_keys=True, indent=2, ensure_ascii=False).encode("utf-8")


# Wire request -----------------------------------------------------------------


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class BarcodeInfo(_WireModel):
    format: str
    message: str
    message_encoding: str
    alt_text: str | None = None

    def to_barcode(self, *, strict: bool = False) -> Barcode:
        return Barcode(
            alt_text=self.alt_text,
            format=resolve_barcode_format(self.format, strict=strict),
            message=self.message,
            message_encoding=resolve_message_encoding(self.message_encoding, strict=strict),
        )


class PassFieldInfo(_WireModel):
    key: str
    label: str | None = None
    value: str
    text_alignment: str | None = None

    def to_field(self, *, strict: bool = False) -> FieldContent:
        return FieldContent(
            key=self.key,
            label=self.label,
            text_alignment=resolve_text_alignment(self.text_alignment, strict=strict),
            value=self.value,
        )


class PassStructureInfo(_WireModel):
    header_fields: list[PassFieldInfo] | None = None
    primary_fields: list[PassFieldInfo] | None = None
    secondary_fields: list[PassFieldInfo] | None = None
    auxiliary_fields: list[PassFieldInfo] | None = None
    back_fields: list[PassFieldInfo] | None = None
    transit_type: str | None = None

    def to_fields(self, *, strict: bool = False) -> PassFields:
        def convert(fields: list[PassFieldInfo] | None) -> list[FieldContent] | None:
            if fields is None:
                return None
            return [field.to_field(strict=strict) for field in fields]

        return PassFields(
            auxiliary_fields=convert(self.auxiliary_fields),
            back_fields=convert(self.back_fields),
            header_fields=convert(self.header_fields),
            primary_fields=convert(self.primary_fields),
            secondary_fields=convert(self.secondary_fields),
            transit_type=resolve_transit_type(self.transit_type, strict=strict),
        )


_STYLE_ATTRIBUTES: dict[PassStyle, str] = {
    PassStyle.GENERIC: "generic",
    PassStyle.STORE_CARD: "store_card",
    PassStyle.EVENT_TICKET: "event_ticket",
    PassStyle.COUPON: "coupon",
    PassStyle.BOARDING_PASS: "boarding_pass",
}


class CreatePassRequest(_WireModel):
    """Client request describing one pass.

    Exactly one of ``generic``, ``storeCard``, ``eventTicket``, ``coupon`` or
    ``boardingPass`` must be present.
    """

    format_version: int = Field(..., ge=1)
    pass_type_identifier: str
    serial_number: str
    team_identifier: str
    organization_name: str
    description: str
    logo_text: str | None = None
    foreground_color: str | None = None
    background_color: str | None = None
    label_color: str | None = None
    barcodes: list[BarcodeInfo] | None = None
    generic: PassStructureInfo | None = None
    store_card: PassStructureInfo | None = None
    event_ticket: PassStructureInfo | None = None
    coupon: PassStructureInfo | None = None
    boarding_pass: PassStructureInfo | None = None

    @field_validator("foreground_color", "background_color", "label_color")
    @classmethod
    def _normalize_color(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return normalize_color(value)

    @model_validator(mode="after")
    def _require_single_style(self) -> CreatePassRequest:
        present = [
            style.value
            for style, attribute in _STYLE_ATTRIBUTES.items()
            if getattr(self, attribute) is not None
        ]
        if len(present) != 1:
            raise ValueError(
                "Must specify exactly one pass type: generic, storeCard, eventTicket, "
                f"coupon, or boardingPass (got {present or 'none'})"
            )
        return self

    @property
    def style(self) -> PassStyle:
        for style, attribute in _STYLE_ATTRIBUTES.items():
            if getattr(self, attribute) is not None:
                return style
        raise AssertionError("validated request has no pass style")

    def to_pass(self, *, strict_tags: bool = False) -> PassDocument:
        """Translate into the pass.json document.

        Raises:
            ValueError: If ``strict_tags`` is set and a tag value is unknown.
        """
        style = self.style
        structure: PassStructureInfo = getattr(self, _STYLE_ATTRIBUTES[style])
        fields = structure.to_fields(strict=strict_tags)

        return PassDocument(
            format_version=self.format_version,
            pass_type_identifier=self.pass_type_identifier,
            serial_number=self.serial_number,
            team_identifier=self.team_identifier,
            organization_name=self.organization_name,
            description=self.description,
            logo_text=self.logo_text,
            foreground_color=self.foreground_color,
            background_color=self.background_color,
            label_color=self.label_color,
            barcodes=[barcode.to_barcode(strict=strict_tags) for barcode in self.barcodes or []],
            **{_STYLE_ATTRIBUTES[style]: fields},
        )
