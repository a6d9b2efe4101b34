"""Tests for gapit.snmp.varbinds."""
import pytest

from gapit.core.enums import VarbindType
from gapit.core.errors import DecodeError
from gapit.snmp.counter64 import UInt64
from gapit.snmp.varbinds import Varbind, build_oid_value_map, normalize_varbind


def test_octet_string_decoded_as_text():
    vb = normalize_varbind(Varbind("1.1", VarbindType.OCTET_STRING, b"Smart-UPS"), True)
    assert vb.value == "Smart-UPS"


def test_invalid_utf8_replaced():
    vb = normalize_varbind(Varbind("1.1", VarbindType.OCTET_STRING, b"ab\xff"), True)
    assert vb.value.startswith("ab")


def test_counter64_decoded_with_policy():
    raw = Varbind("1.2", VarbindType.COUNTER64, 2**63)
    assert isinstance(normalize_varbind(raw, True).value, UInt64)
    assert type(normalize_varbind(Varbind("1.2", VarbindType.COUNTER64, 7), True).value) is int


def test_normalize_returns_copy():
    raw = Varbind("1.3", VarbindType.GAUGE32, 12)
    vb = normalize_varbind(raw, True)
    assert vb == raw
    assert vb is not raw


def test_tstr_and_to_dict():
    vb = Varbind("1.3", VarbindType.GAUGE32, 12)
    assert vb.tstr == "Gauge32"
    assert vb.to_dict() == {"oid": "1.3", "type": "Gauge32", "value": 12, "tstr": "Gauge32"}


def test_build_oid_value_map():
    varbinds = [
        Varbind("1.1", VarbindType.INTEGER, 97),
        Varbind("1.2", VarbindType.OCTET_STRING, b"abc"),
    ]
    normalized, values = build_oid_value_map(varbinds, True)
    assert values == {"1.1": 97, "1.2": "abc"}
    assert [vb.oid for vb in normalized] == ["1.1", "1.2"]


def test_build_oid_value_map_propagates_decode_error():
    with pytest.raises(DecodeError):
        build_oid_value_map([Varbind("1.9", VarbindType.COUNTER64, b"\x00" * 10)], True)
