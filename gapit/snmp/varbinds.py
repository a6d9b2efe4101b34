"""Varbind container and conversion of raw varbind values."""
from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from gapit.core.enums import VarbindType
from gapit.snmp.counter64 import decode_counter64

logger = logging.getLogger(__name__)


@dataclass
class Varbind:
    """An (OID, type, value) triple returned by a GET."""

    oid: str
    type: VarbindType
    value: Any = None

    @property
    def tstr(self) -> str:
        """Type name, as carried on outbound varbinds."""
        return self.type.value

    def to_dict(self) -> dict[str, Any]:
        return {"oid": self.oid, "type": self.type.value, "value": self.value, "tstr": self.tstr}


def _decode_text(raw: Any) -> str:
    if isinstance(raw, (bytes, bytearray, memoryview)):
        return bytes(raw).decode("utf-8", errors="replace")
    return str(raw)


def normalize_varbind(vb: Varbind, convert_counter64: bool) -> Varbind:
    """
    Return a copy with a presentation-ready value.

    OCTET STRING becomes text, Counter64 is decoded (see decode_counter64).
    Other types keep their value.
    """
    if vb.type == VarbindType.OCTET_STRING:
        return Varbind(vb.oid, vb.type, _decode_text(vb.value))
    if vb.type == VarbindType.COUNTER64:
        return Varbind(
            vb.oid, vb.type,
            decode_counter64(vb.value, convert_counter64, oid=vb.oid),
        )
    return Varbind(vb.oid, vb.type, vb.value)


def build_oid_value_map(
    varbinds: Iterable[Varbind],
    convert_counter64: bool,
) -> tuple[list[Varbind], dict[str, Any]]:
    """
    Normalize varbinds and index their values by OID.

    Raises:
        DecodeError: a Counter64 value is malformed.
    """
    normalized: list[Varbind] = []
    oid_value_map: dict[str, Any] = {}
    for vb in varbinds:
        nvb = normalize_varbind(vb, convert_counter64)
        normalized.append(nvb)
        oid_value_map[nvb.oid] = nvb.value
    logger.debug("Built OID value map with %d entries", len(oid_value_map))
    return normalized, oid_value_map
