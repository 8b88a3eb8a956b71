# flightsql_sdk/sql/__init__.py
# SPDX-License-Identifier: Apache-2.0

"""
Flight SQL client - Public API

All public types, helpers and handlers are re-exported here for clean imports.
"""

from flightsql_sdk.sql.sql_base import (
    # Protocol version
    FLIGHT_SQL_PROTOCOL_VERSION,
    FLIGHT_SQL_PROTOCOL_ID,

    # Error types
    FlightSqlError,
    ValidationError,
    InvalidQuery,
    InvalidHandle,
    InvalidParameter,
    InvalidTransaction,
    ResultError,
    SchemaError,
    NotSupported,

    # Validation
    validate_query,
    validate_handle,
    validate_transaction_id,
    validate_parameter_data,

    # Results
    UpdateResult,
    PreparedStatementResult,
    TransactionResult,
    BindParametersResult,
    ParameterData,
    EndTransactionAction,

    # Metrics
    MetricsSink,
    NoopMetrics,

    # Client and wire handler
    FlightSqlClient,
    WireFlightSqlHandler,
)
from flightsql_sdk.sql.transport import (
    Ticket,
    FlightEndpoint,
    FlightInfo,
    FlightData,
    PutResult,
    Action,
    ActionResult,
    WriteStream,
    FlightTransport,
)
from flightsql_sdk.sql.results import (
    iterate_results,
    flight_info_to_table,
    ticket_to_table,
    query_to_table,
    parameters_from_arrow,
    schema_from_bytes,
)
from flightsql_sdk.sql.messages import SqlInfo
from flightsql_sdk.sql.arrow_flight_transport import ArrowFlightTransport, connect
from flightsql_sdk.core.operational_context import OperationContext

__version__ = FLIGHT_SQL_PROTOCOL_VERSION

__all__ = [
    "FLIGHT_SQL_PROTOCOL_VERSION",
    "FLIGHT_SQL_PROTOCOL_ID",
    "FlightSqlError",
    "ValidationError",
    "InvalidQuery",
    "InvalidHandle",
    "InvalidParameter",
    "InvalidTransaction",
    "ResultError",
    "SchemaError",
    "NotSupported",
    "validate_query",
    "validate_handle",
    "validate_transaction_id",
    "validate_parameter_data",
    "UpdateResult",
    "PreparedStatementResult",
    "TransactionResult",
    "BindParametersResult",
    "ParameterData",
    "EndTransactionAction",
    "MetricsSink",
    "NoopMetrics",
    "FlightSqlClient",
    "WireFlightSqlHandler",
    "Ticket",
    "FlightEndpoint",
    "FlightInfo",
    "FlightData",
    "PutResult",
    "Action",
    "ActionResult",
    "WriteStream",
    "FlightTransport",
    "iterate_results",
    "flight_info_to_table",
    "ticket_to_table",
    "query_to_table",
    "parameters_from_arrow",
    "schema_from_bytes",
    "SqlInfo",
    "ArrowFlightTransport",
    "connect",
    "OperationContext",
    "__version__",
]
