# SPDX-License-Identifier: Apache-2.0
"""
Wire - Any envelopes and command descriptors.

Covers:
  • pack_any layout (tags, length prefixes, field order)
  • Interop with google.protobuf.Any in both directions
  • Unknown fields of every supported wire type are skipped
  • Missing value decodes to b""; last field 2 wins
  • Truncation, groups and field number 0 raise EnvelopeDecodeError
  • command_descriptor wraps in CMD mode under the Flight SQL type URL
"""

import pytest
from google.protobuf import any_pb2

from flightsql_sdk.wire.envelope import (
    TYPE_URL_PREFIX,
    EnvelopeDecodeError,
    command_descriptor,
    pack_any,
    parse_any,
    type_url_for,
    unpack_any,
)
from flightsql_sdk.wire.varint import encode_varint


def _len_field(tag: int, payload: bytes) -> bytes:
    return bytes([tag]) + encode_varint(len(payload)) + payload


def test_pack_layout():
    packed = pack_any("t", b"\x01\x02")
    assert packed == b"\x0a\x01t\x12\x02\x01\x02"


def test_pack_empty_payload_keeps_value_field():
    assert pack_any("t", b"") == b"\x0a\x01t\x12\x00"


def test_pack_matches_protobuf_any():
    url = type_url_for("CommandStatementQuery")
    payload = b"\x0a\x08SELECT 1"
    msg = any_pb2.Any(type_url=url, value=payload)
    assert pack_any(url, payload) == msg.SerializeToString()


def test_unpack_protobuf_any():
    payload = bytes(range(200))
    data = any_pb2.Any(type_url="x/y", value=payload).SerializeToString()
    env = parse_any(data)
    assert env.type_url == "x/y"
    assert env.value == payload


def test_long_payload_uses_multibyte_length():
    payload = b"z" * 300
    packed = pack_any("u", payload)
    assert packed[3:6] == b"\x12\xac\x02"
    assert unpack_any(packed) == payload


def test_unknown_fields_are_skipped():
    data = (
        b"\x18\x96\x01"                      # field 3, varint
        + b"\x21" + b"\x00" * 8              # field 4, fixed64
        + b"\x2d" + b"\x00" * 4              # field 5, fixed32
        + _len_field(0x32, b"ignored")       # field 6, length-delimited
        + _len_field(0x0A, b"url")
        + _len_field(0x12, b"value")
    )
    env = parse_any(data)
    assert env.type_url == "url"
    assert env.value == b"value"


def test_unknown_fields_after_value_are_skipped():
    data = (
        _len_field(0x0A, b"url")
        + _len_field(0x12, b"value")
        + b"\x18\x01"                        # field 3, varint
        + _len_field(0x3A, b"trailing")      # field 7, length-delimited
        + b"\x2d" + b"\x01" * 4              # field 5, fixed32
    )
    env = parse_any(data)
    assert env.type_url == "url"
    assert env.value == b"value"


def test_non_ascii_url_and_long_payload():
    url = "type.example.com/données.Zeichenkette"
    payload = bytes(range(256)) * 2
    packed = pack_any(url, payload)
    assert packed == any_pb2.Any(type_url=url, value=payload).SerializeToString()
    env = parse_any(packed)
    assert env.type_url == url
    assert env.value == payload


def test_missing_value_is_empty():
    assert unpack_any(_len_field(0x0A, b"only-url")) == b""
    assert unpack_any(b"") == b""


def test_last_value_wins():
    data = _len_field(0x12, b"first") + _len_field(0x12, b"second")
    assert unpack_any(data) == b"second"


def test_truncated_length_delimited_rejected():
    with pytest.raises(EnvelopeDecodeError):
        unpack_any(b"\x12\x05abc")


def test_truncated_fixed64_rejected():
    with pytest.raises(EnvelopeDecodeError):
        unpack_any(b"\x21\x00\x00")


def test_truncated_key_rejected():
    with pytest.raises(EnvelopeDecodeError):
        unpack_any(b"\x80")


@pytest.mark.parametrize("data", [b"\x1b", b"\x1c", b"\x1e", b"\x1f"])
def test_unsupported_wire_types_rejected(data):
    with pytest.raises(EnvelopeDecodeError):
        unpack_any(data)


def test_field_zero_rejected():
    with pytest.raises(EnvelopeDecodeError):
        unpack_any(b"\x02\x00")


def test_command_descriptor():
    desc = command_descriptor("CommandGetCatalogs", b"")
    assert desc.type == "CMD"
    env = parse_any(desc.cmd)
    assert env.type_url == f"{TYPE_URL_PREFIX}.CommandGetCatalogs"
    assert env.type_url == "type.googleapis.com/arrow.flight.protocol.sql.CommandGetCatalogs"
    assert env.value == b""


def test_type_url_requires_name():
    with pytest.raises(ValueError):
        type_url_for("")
    with pytest.raises(ValueError):
        pack_any("", b"x")
