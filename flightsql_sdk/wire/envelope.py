# flightsql_sdk/wire/envelope.py
# SPDX-License-Identifier: Apache-2.0
"""
`google.protobuf.Any` envelopes and Flight SQL command descriptors.

Flight SQL carries every command, action body and most action results as an
Any message:

    field 1 (tag 0x0A)  type_url  length-delimited UTF-8
    field 2 (tag 0x12)  value     length-delimited bytes

These routines work on bytes directly so the envelope stays readable by
any protobuf decoder while tolerating fields this layer does not know:
unknown fields are skipped by their wire type (and declared length), and
only field 2 is captured.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from flightsql_sdk.wire.varint import (
    Buffer,
    VarintDecodeError,
    encoded_size,
    read_varint,
    write_varint,
)

TYPE_URL_PREFIX = "type.googleapis.com/arrow.flight.protocol.sql"

TAG_TYPE_URL = 0x0A
TAG_VALUE = 0x12

WIRE_VARINT = 0
WIRE_FIXED64 = 1
WIRE_LEN = 2
WIRE_START_GROUP = 3
WIRE_END_GROUP = 4
WIRE_FIXED32 = 5


class EnvelopeDecodeError(ValueError):
    """Raised when an Any envelope cannot be scanned."""


@dataclass(frozen=True)
class AnyEnvelope:
    """A decoded Any message. Missing fields decode as empty."""
    type_url: str
    value: bytes


@dataclass(frozen=True)
class CommandDescriptor:
    """
    Transport descriptor in CMD addressing mode.

    `cmd` holds the serialized Any envelope naming the Flight SQL command.
    """
    cmd: bytes
    type: str = "CMD"


def type_url_for(type_name: str) -> str:
    """Full type URL for a Flight SQL message name."""
    if not type_name:
        raise ValueError("type_name must be a non-empty string")
    return f"{TYPE_URL_PREFIX}.{type_name}"


def pack_any(type_url: str, payload: Buffer) -> bytes:
    """Encode `payload` as an Any message tagged with `type_url`."""
    if not type_url:
        raise ValueError("type_url must be a non-empty string")
    url = type_url.encode("utf-8")
    value = bytes(payload)

    size = (
        1 + encoded_size(len(url)) + len(url)
        + 1 + encoded_size(len(value)) + len(value)
    )
    buf = bytearray(size)
    offset = 0

    buf[offset] = TAG_TYPE_URL
    offset = write_varint(buf, offset + 1, len(url))
    buf[offset:offset + len(url)] = url
    offset += len(url)

    buf[offset] = TAG_VALUE
    offset = write_varint(buf, offset + 1, len(value))
    buf[offset:offset + len(value)] = value
    return bytes(buf)


def _read(data: Buffer, offset: int) -> Tuple[int, int]:
    try:
        return read_varint(data, offset)
    except VarintDecodeError as e:
        raise EnvelopeDecodeError(f"bad varint at offset {offset}: {e}") from e


def parse_any(data: Buffer) -> AnyEnvelope:
    """
    Scan the top-level fields of an Any message.

    Fields other than 1 and 2 are skipped. Repeated singular fields follow
    protobuf semantics: the last occurrence wins.
    """
    view = memoryview(bytes(data))
    end = len(view)
    offset = 0
    url: Optional[bytes] = None
    value: Optional[bytes] = None

    while offset < end:
        key, n = _read(view, offset)
        offset += n
        field_number, wire_type = key >> 3, key & 0x07
        if field_number == 0:
            raise EnvelopeDecodeError("invalid field number 0")

        if wire_type == WIRE_VARINT:
            _, n = _read(view, offset)
            offset += n
        elif wire_type == WIRE_FIXED64:
            offset += 8
        elif wire_type == WIRE_FIXED32:
            offset += 4
        elif wire_type == WIRE_LEN:
            length, n = _read(view, offset)
            offset += n
            if offset + length > end:
                raise EnvelopeDecodeError(
                    f"field {field_number} declares {length} bytes, {end - offset} available"
                )
            chunk = view[offset:offset + length].tobytes()
            offset += length
            if field_number == 1:
                url = chunk
            elif field_number == 2:
                value = chunk
        else:
            raise EnvelopeDecodeError(f"unsupported wire type {wire_type}")

        if offset > end:
            raise EnvelopeDecodeError(f"field {field_number} truncated")

    return AnyEnvelope(
        type_url=(url or b"").decode("utf-8", errors="replace"),
        value=value or b"",
    )


def unpack_any(data: Buffer) -> bytes:
    """
    Return the `value` bytes of an Any message.

    An envelope without field 2 yields b"" (no payload), not an error.
    """
    return parse_any(data).value


def command_descriptor(type_name: str, encoded_command: Buffer) -> CommandDescriptor:
    """Wrap an encoded Flight SQL command as a CMD descriptor."""
    return CommandDescriptor(cmd=pack_any(type_url_for(type_name), encoded_command))


__all__ = [
    "TYPE_URL_PREFIX",
    "TAG_TYPE_URL",
    "TAG_VALUE",
    "EnvelopeDecodeError",
    "AnyEnvelope",
    "CommandDescriptor",
    "type_url_for",
    "pack_any",
    "parse_any",
    "unpack_any",
    "command_descriptor",
]
