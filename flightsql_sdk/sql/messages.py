# flightsql_sdk/sql/messages.py
# SPDX-License-Identifier: Apache-2.0
"""
Flight SQL protocol messages.

The message classes are regular protobuf classes (`google.protobuf`),
built once at import time from a FileDescriptorProto that mirrors the
subset of `FlightSql.proto` this client speaks. Field numbers, types and
proto3 `optional` presence match the upstream schema, so the encoded bytes
are interchangeable with any other Flight SQL implementation.

    >>> cmd = CommandStatementQuery(query="SELECT 1")
    >>> CommandStatementQuery.FromString(cmd.SerializeToString()).query
    'SELECT 1'
"""

from __future__ import annotations

import enum
from typing import Dict, Sequence, Tuple

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

PACKAGE = "arrow.flight.protocol.sql"

# Action types (Action.type strings)
ACTION_CREATE_PREPARED_STATEMENT = "CreatePreparedStatement"
ACTION_CLOSE_PREPARED_STATEMENT = "ClosePreparedStatement"
ACTION_BEGIN_TRANSACTION = "BeginTransaction"
ACTION_END_TRANSACTION = "EndTransaction"

_F = descriptor_pb2.FieldDescriptorProto

_TYPES = {
    "string": _F.TYPE_STRING,
    "bytes": _F.TYPE_BYTES,
    "bool": _F.TYPE_BOOL,
    "int32": _F.TYPE_INT32,
    "int64": _F.TYPE_INT64,
    "uint32": _F.TYPE_UINT32,
    "enum": _F.TYPE_ENUM,
}

# (name, number, type, modifier[, enum type name])
# modifier: "" (implicit presence), "optional" (proto3 optional), "repeated"
FieldSpec = Tuple

_FILTERED_TABLE_REF: Sequence[FieldSpec] = (
    ("catalog", 1, "string", "optional"),
    ("db_schema", 2, "string", "optional"),
    ("table", 3, "string", ""),
)

_MESSAGES: Dict[str, Sequence[FieldSpec]] = {
    # statements
    "CommandStatementQuery": (
        ("query", 1, "string", ""),
        ("transaction_id", 2, "bytes", "optional"),
    ),
    "CommandStatementUpdate": (
        ("query", 1, "string", ""),
        ("transaction_id", 2, "bytes", "optional"),
    ),
    "DoPutUpdateResult": (
        ("record_count", 1, "int64", ""),
    ),
    # prepared statements
    "ActionCreatePreparedStatementRequest": (
        ("query", 1, "string", ""),
        ("transaction_id", 2, "bytes", "optional"),
    ),
    "ActionCreatePreparedStatementResult": (
        ("prepared_statement_handle", 1, "bytes", ""),
        ("dataset_schema", 2, "bytes", ""),
        ("parameter_schema", 3, "bytes", ""),
    ),
    "ActionClosePreparedStatementRequest": (
        ("prepared_statement_handle", 1, "bytes", ""),
    ),
    "CommandPreparedStatementQuery": (
        ("prepared_statement_handle", 1, "bytes", ""),
    ),
    "CommandPreparedStatementUpdate": (
        ("prepared_statement_handle", 1, "bytes", ""),
    ),
    "DoPutPreparedStatementResult": (
        ("prepared_statement_handle", 1, "bytes", "optional"),
    ),
    # transactions
    "ActionBeginTransactionRequest": (),
    "ActionBeginTransactionResult": (
        ("transaction_id", 1, "bytes", ""),
    ),
    "ActionEndTransactionRequest": (
        ("transaction_id", 1, "bytes", ""),
        ("action", 2, "enum", "", "EndTransaction"),
    ),
    # catalog / metadata
    "CommandGetCatalogs": (),
    "CommandGetDbSchemas": (
        ("catalog", 1, "string", "optional"),
        ("db_schema_filter_pattern", 2, "string", "optional"),
    ),
    "CommandGetTables": (
        ("catalog", 1, "string", "optional"),
        ("db_schema_filter_pattern", 2, "string", "optional"),
        ("table_name_filter_pattern", 3, "string", "optional"),
        ("table_types", 4, "string", "repeated"),
        ("include_schema", 5, "bool", ""),
    ),
    "CommandGetTableTypes": (),
    "CommandGetPrimaryKeys": _FILTERED_TABLE_REF,
    "CommandGetExportedKeys": _FILTERED_TABLE_REF,
    "CommandGetImportedKeys": _FILTERED_TABLE_REF,
    "CommandGetCrossReference": (
        ("pk_catalog", 1, "string", "optional"),
        ("pk_db_schema", 2, "string", "optional"),
        ("pk_table", 3, "string", ""),
        ("fk_catalog", 4, "string", "optional"),
        ("fk_db_schema", 5, "string", "optional"),
        ("fk_table", 6, "string", ""),
    ),
    "CommandGetSqlInfo": (
        ("info", 1, "uint32", "repeated"),
    ),
    "CommandGetXdbcTypeInfo": (
        ("data_type", 1, "int32", "optional"),
    ),
}

# Nested enums: message -> (enum name, ((value name, number), ...))
_ENUMS = {
    "ActionEndTransactionRequest": (
        "EndTransaction",
        (
            ("END_TRANSACTION_UNSPECIFIED", 0),
            ("END_TRANSACTION_COMMIT", 1),
            ("END_TRANSACTION_ROLLBACK", 2),
        ),
    ),
}


def _build_file() -> descriptor_pb2.FileDescriptorProto:
    fdp = descriptor_pb2.FileDescriptorProto(
        name="flightsql_sdk/FlightSql.proto",
        package=PACKAGE,
        syntax="proto3",
    )
    for msg_name, fields in _MESSAGES.items():
        msg = fdp.message_type.add(name=msg_name)

        if msg_name in _ENUMS:
            enum_name, values = _ENUMS[msg_name]
            enum_proto = msg.enum_type.add(name=enum_name)
            for value_name, number in values:
                enum_proto.value.add(name=value_name, number=number)

        for spec in fields:
            name, number, type_name, modifier = spec[:4]
            field = msg.field.add(
                name=name,
                number=number,
                type=_TYPES[type_name],
                label=_F.LABEL_REPEATED if modifier == "repeated" else _F.LABEL_OPTIONAL,
                json_name=_json_name(name),
            )
            if type_name == "enum":
                field.type_name = f".{PACKAGE}.{msg_name}.{spec[4]}"
            if modifier == "optional":
                # proto3 optional is a one-field synthetic oneof named "_<field>"
                msg.oneof_decl.add(name=f"_{name}")
                field.oneof_index = len(msg.oneof_decl) - 1
                field.proto3_optional = True
    return fdp


def _json_name(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


_POOL = descriptor_pool.DescriptorPool()
_FILE = _POOL.AddSerializedFile(_build_file().SerializeToString())


def _message_class(name: str):
    return message_factory.GetMessageClass(_POOL.FindMessageTypeByName(f"{PACKAGE}.{name}"))


CommandStatementQuery = _message_class("CommandStatementQuery")
CommandStatementUpdate = _message_class("CommandStatementUpdate")
DoPutUpdateResult = _message_class("DoPutUpdateResult")
ActionCreatePreparedStatementRequest = _message_class("ActionCreatePreparedStatementRequest")
ActionCreatePreparedStatementResult = _message_class("ActionCreatePreparedStatementResult")
ActionClosePreparedStatementRequest = _message_class("ActionClosePreparedStatementRequest")
CommandPreparedStatementQuery = _message_class("CommandPreparedStatementQuery")
CommandPreparedStatementUpdate = _message_class("CommandPreparedStatementUpdate")
DoPutPreparedStatementResult = _message_class("DoPutPreparedStatementResult")
ActionBeginTransactionRequest = _message_class("ActionBeginTransactionRequest")
ActionBeginTransactionResult = _message_class("ActionBeginTransactionResult")
ActionEndTransactionRequest = _message_class("ActionEndTransactionRequest")
CommandGetCatalogs = _message_class("CommandGetCatalogs")
CommandGetDbSchemas = _message_class("CommandGetDbSchemas")
CommandGetTables = _message_class("CommandGetTables")
CommandGetTableTypes = _message_class("CommandGetTableTypes")
CommandGetPrimaryKeys = _message_class("CommandGetPrimaryKeys")
CommandGetExportedKeys = _message_class("CommandGetExportedKeys")
CommandGetImportedKeys = _message_class("CommandGetImportedKeys")
CommandGetCrossReference = _message_class("CommandGetCrossReference")
CommandGetSqlInfo = _message_class("CommandGetSqlInfo")
CommandGetXdbcTypeInfo = _message_class("CommandGetXdbcTypeInfo")


class EndTransaction(enum.IntEnum):
    """Values of ActionEndTransactionRequest.action."""
    UNSPECIFIED = 0
    COMMIT = 1
    ROLLBACK = 2


class SqlInfo(enum.IntEnum):
    """Common CommandGetSqlInfo codes."""
    FLIGHT_SQL_SERVER_NAME = 0
    FLIGHT_SQL_SERVER_VERSION = 1
    FLIGHT_SQL_SERVER_ARROW_VERSION = 2
    FLIGHT_SQL_SERVER_READ_ONLY = 3
    FLIGHT_SQL_SERVER_SQL = 4
    FLIGHT_SQL_SERVER_SUBSTRAIT = 5
    FLIGHT_SQL_SERVER_SUBSTRAIT_MIN_VERSION = 6
    FLIGHT_SQL_SERVER_SUBSTRAIT_MAX_VERSION = 7
    FLIGHT_SQL_SERVER_TRANSACTION = 8
    FLIGHT_SQL_SERVER_CANCEL = 9
    FLIGHT_SQL_SERVER_STATEMENT_TIMEOUT = 100
    FLIGHT_SQL_SERVER_TRANSACTION_TIMEOUT = 101
    SQL_DDL_CATALOG = 500
    SQL_DDL_SCHEMA = 501
    SQL_DDL_TABLE = 502
    SQL_IDENTIFIER_CASE = 503
    SQL_IDENTIFIER_QUOTE_CHAR = 504


def message_name(message) -> str:
    """Short protobuf name of a message instance, e.g. 'CommandStatementQuery'."""
    return message.DESCRIPTOR.name


__all__ = [
    "PACKAGE",
    "ACTION_CREATE_PREPARED_STATEMENT",
    "ACTION_CLOSE_PREPARED_STATEMENT",
    "ACTION_BEGIN_TRANSACTION",
    "ACTION_END_TRANSACTION",
    "CommandStatementQuery",
    "CommandStatementUpdate",
    "DoPutUpdateResult",
    "ActionCreatePreparedStatementRequest",
    "ActionCreatePreparedStatementResult",
    "ActionClosePreparedStatementRequest",
    "CommandPreparedStatementQuery",
    "CommandPreparedStatementUpdate",
    "DoPutPreparedStatementResult",
    "ActionBeginTransactionRequest",
    "ActionBeginTransactionResult",
    "ActionEndTransactionRequest",
    "CommandGetCatalogs",
    "CommandGetDbSchemas",
    "CommandGetTables",
    "CommandGetTableTypes",
    "CommandGetPrimaryKeys",
    "CommandGetExportedKeys",
    "CommandGetImportedKeys",
    "CommandGetCrossReference",
    "CommandGetSqlInfo",
    "CommandGetXdbcTypeInfo",
    "EndTransaction",
    "SqlInfo",
    "message_name",
]
