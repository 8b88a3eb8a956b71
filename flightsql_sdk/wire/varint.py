# flightsql_sdk/wire/varint.py
# SPDX-License-Identifier: Apache-2.0
"""
Base-128 varints, as used by the protobuf wire format.

Each byte carries 7 payload bits, least significant group first; the high
bit is set on every byte except the last. Values are unsigned and limited
to 64 bits, which covers every length and count the transport can send.

Reads are bounded: a varint longer than MAX_VARINT_LEN bytes, or one that
runs past the end of the buffer, raises VarintDecodeError instead of
reading on.
"""

from __future__ import annotations

from typing import Tuple, Union

MAX_VARINT_LEN = 10
MAX_VARINT_VALUE = (1 << 64) - 1

Buffer = Union[bytes, bytearray, memoryview]


class VarintDecodeError(ValueError):
    """Raised for truncated or over-long varints."""


def _check_value(value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"varint value must be an int, got {type(value).__name__}")
    if value < 0:
        raise ValueError("varint value must be non-negative")
    if value > MAX_VARINT_VALUE:
        raise ValueError("varint value exceeds 64 bits")


def encoded_size(value: int) -> int:
    """Return the number of bytes `value` occupies when encoded."""
    _check_value(value)
    size = 1
    while value >= 0x80:
        value >>= 7
        size += 1
    return size


def write_varint(buf: bytearray, offset: int, value: int) -> int:
    """
    Write `value` into `buf` at `offset` and return the offset just past it.

    `buf` grows when the write runs past its current end.
    """
    _check_value(value)
    if offset < 0 or offset > len(buf):
        raise IndexError(f"offset {offset} out of range for buffer of {len(buf)} bytes")
    out = bytearray()
    while value >= 0x80:
        out.append((value & 0x7F) | 0x80)
        value >>= 7
    out.append(value)
    buf[offset:offset + len(out)] = out
    return offset + len(out)


def encode_varint(value: int) -> bytes:
    buf = bytearray()
    write_varint(buf, 0, value)
    return bytes(buf)


def read_varint(buf: Buffer, offset: int = 0) -> Tuple[int, int]:
    """
    Decode one varint from `buf` starting at `offset`.

    Returns (value, bytes_consumed).
    """
    end = len(buf)
    if offset < 0 or offset >= end:
        raise VarintDecodeError(f"varint offset {offset} out of range for {end} bytes")

    result = 0
    shift = 0
    pos = offset
    for _ in range(MAX_VARINT_LEN):
        if pos >= end:
            raise VarintDecodeError("truncated varint")
        byte = buf[pos]
        pos += 1
        result |= (byte & 0x7F) << shift
        if not byte & 0x80:
            if result > MAX_VARINT_VALUE:
                raise VarintDecodeError("varint exceeds 64 bits")
            return result, pos - offset
        shift += 7
    raise VarintDecodeError(f"varint longer than {MAX_VARINT_LEN} bytes")


__all__ = [
    "MAX_VARINT_LEN",
    "MAX_VARINT_VALUE",
    "VarintDecodeError",
    "encoded_size",
    "write_varint",
    "encode_varint",
    "read_varint",
]
