# flightsql_sdk/wire/__init__.py
# SPDX-License-Identifier: Apache-2.0

"""
Byte-level codecs shared by the Flight SQL layer: varints, Any envelopes
and command descriptors.
"""

from flightsql_sdk.wire.varint import (
    MAX_VARINT_LEN,
    MAX_VARINT_VALUE,
    VarintDecodeError,
    encoded_size,
    write_varint,
    encode_varint,
    read_varint,
)
from flightsql_sdk.wire.envelope import (
    TYPE_URL_PREFIX,
    EnvelopeDecodeError,
    AnyEnvelope,
    CommandDescriptor,
    type_url_for,
    pack_any,
    parse_any,
    unpack_any,
    command_descriptor,
)

__all__ = [
    "MAX_VARINT_LEN",
    "MAX_VARINT_VALUE",
    "VarintDecodeError",
    "encoded_size",
    "write_varint",
    "encode_varint",
    "read_varint",
    "TYPE_URL_PREFIX",
    "EnvelopeDecodeError",
    "AnyEnvelope",
    "CommandDescriptor",
    "type_url_for",
    "pack_any",
    "parse_any",
    "unpack_any",
    "command_descriptor",
]
