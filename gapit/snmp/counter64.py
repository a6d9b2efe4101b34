"""
Counter64 decoding.

Some transports hand Counter64 values over as a big-endian byte buffer of
variable length: up to 8 bytes, plus a leading sign byte when the top bit
of the unsigned value is set (the buffer encodes a signed integer). Others
already deliver an integer. Both end up here.
"""
from __future__ import annotations

from typing import Any, Union

from gapit.core.errors import DecodeError

# Largest integer a double represents exactly (2**53 - 1)
MAX_SAFE_INTEGER = 9007199254740991
_COUNTER64_MAX = 2**64 - 1


class UInt64(int):
    """
    A Counter64 reading kept as an exact, arbitrary-precision integer.

    Returned when the value does not fit the safe-integer range or when the
    node does not convert Counter64 values to plain numbers. The scaling
    engine only applies integer arithmetic to these.
    """

    def __repr__(self) -> str:
        return f"UInt64({int(self)})"


def decode_counter64(
    raw: Any,
    convert_to_number: bool,
    oid: str | None = None,
) -> Union[int, UInt64]:
    """
    Decode a Counter64 value.

    A 9-byte buffer loses its leading sign byte; the rest is left-padded
    with zeros to 8 bytes and read as an unsigned big-endian integer.

    Raises:
        DecodeError: buffer longer than 9 bytes, negative or oversized
            integer, or an unsupported value type.
    """
    if isinstance(raw, (bytes, bytearray, memoryview)):
        buf = bytes(raw)
        if len(buf) > 9:
            raise DecodeError(
                f"Counter64 buffer too long ({len(buf)} bytes)", oid=oid,
            )
        if len(buf) == 9:
            buf = buf[1:]
        value = int.from_bytes(buf.rjust(8, b"\x00"), "big", signed=False)
    elif isinstance(raw, int) and not isinstance(raw, bool):
        if not 0 <= raw <= _COUNTER64_MAX:
            raise DecodeError(f"Counter64 out of range: {raw}", oid=oid)
        value = int(raw)
    else:
        raise DecodeError(
            f"Unsupported Counter64 value type {type(raw).__name__}", oid=oid,
        )

    if convert_to_number and value <= MAX_SAFE_INTEGER:
        return value
    return UInt64(value)
