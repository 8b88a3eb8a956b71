# flightsql_sdk/sql/sql_base.py
# SPDX-License-Identifier: Apache-2.0
"""
Flight SQL SDK - client facade over Arrow Flight

Purpose
-------
A relational API (queries, updates, prepared statements, transactions and
catalog introspection) expressed as Arrow Flight calls, following the
Flight SQL protocol. This module only builds and interprets messages; the
network lives behind a `FlightTransport`.

Every logical operation maps onto one of three call shapes:

    single request   query / prepared query / metadata lookups
                     get_flight_info(CMD descriptor) -> FlightInfo
                     (rows are fetched later from the endpoints' tickets)

    write stream     execute_update / execute_prepared_update / bind_parameters
                     do_put: write one FlightData carrying the descriptor,
                     done_writing, collect the PutResults, decode the first
                     one's app_metadata

    action           create/close prepared statement, begin/end transaction
                     do_action(type, Any-packed request), keep the first
                     result (close/end just drain the stream)

Canonical wire contract (WireFlightSqlHandler)
----------------------------------------------
    Request:
        {"op": "flightsql.<operation>", "ctx": {...}, "args": {...}}

    Response (success):
        {"ok": true, "code": "OK", "ms": <float>, "result": {...}}

    Response (error):
        {
            "ok": false,
            "code": "<UPPER_SNAKE_CASE>",
            "error": "<ErrorClassName>",
            "message": "<human readable>",
            "flight_code": "<FLIGHT_CODE>|null",
            "details": {...}|null,
            "ms": <float>
        }

    Byte values travel base64-encoded under keys suffixed with `_b64`.

Error model
-----------
- Validation errors are raised before any transport call.
- Result errors are raised when the round trip succeeded but the reply
  is absent, empty or malformed. Messages are stable per operation.
- Transport errors propagate unchanged (debugging context attached via
  `attach_context`).

Deliberate Non-Goals
--------------------
- No SQL parsing or validation beyond emptiness checks
- No retries, pooling or result caching
- No tracking of prepared statement or transaction state; handles are
  passed through and the server enforces validity
"""

from __future__ import annotations

import base64
import enum
import hashlib
import inspect
import logging
import time
from dataclasses import asdict, dataclass, is_dataclass
from typing import (
    Any,
    AsyncIterator,
    Awaitable,
    Callable,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Protocol,
    Union,
)

from google.protobuf.message import DecodeError

from flightsql_sdk.core.error_context import attach_context
from flightsql_sdk.core.operational_context import OperationContext
from flightsql_sdk.sql import messages as pb
from flightsql_sdk.sql.transport import (
    Action,
    ActionResult,
    FlightData,
    FlightInfo,
    FlightTransport,
    PutResult,
    Ticket,
)
from flightsql_sdk.wire.envelope import (
    CommandDescriptor,
    EnvelopeDecodeError,
    command_descriptor,
    pack_any,
    type_url_for,
    unpack_any,
)

FLIGHT_SQL_PROTOCOL_VERSION = "1.0.0"
FLIGHT_SQL_PROTOCOL_ID = "flightsql/v1.0"
LOG = logging.getLogger(__name__)

BytesLike = Union[bytes, bytearray, memoryview]

# =============================================================================
# Normalized Errors
# =============================================================================

class FlightSqlError(Exception):
    """
    Base exception for errors raised by this SDK.

    Attributes:
        message: Human-readable error description
        code: Machine-readable SQL-level code (UPPER_SNAKE_CASE)
        flight_code: Closest Arrow Flight status code (e.g. "INVALID_ARGUMENT")
        details: SIEM-safe, JSON-serializable context
    """
    default_flight_code = "INVALID_ARGUMENT"

    def __init__(
        self,
        message: str = "",
        *,
        code: Optional[str] = None,
        flight_code: Optional[str] = None,
        details: Optional[Mapping[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.flight_code = flight_code or self.default_flight_code
        self.details = dict(details or {})

    def asdict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "code": self.code,
            "flight_code": self.flight_code,
            "details": {k: self.details[k] for k in sorted(self.details)},
        }

# Subclasses set default `code` in UPPER_SNAKE_CASE where not explicitly provided.

class ValidationError(FlightSqlError):
    """An argument failed client-side validation; nothing was sent."""
    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "VALIDATION_ERROR")
        super().__init__(message, **kwargs)

class InvalidQuery(ValidationError):
    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "INVALID_QUERY")
        super().__init__(message, **kwargs)

class InvalidHandle(ValidationError):
    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "INVALID_HANDLE")
        super().__init__(message, **kwargs)

class InvalidParameter(ValidationError):
    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "INVALID_PARAMETER")
        super().__init__(message, **kwargs)

class InvalidTransaction(ValidationError):
    default_flight_code = "FAILED_PRECONDITION"

    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "TRANSACTION_ERROR")
        super().__init__(message, **kwargs)

class ResultError(FlightSqlError):
    """The server replied, but without the response the operation requires."""
    default_flight_code = "INTERNAL"

    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "RESULT_ERROR")
        super().__init__(message, **kwargs)

class SchemaError(FlightSqlError):
    """Result bytes could not be decoded as an Arrow IPC stream."""
    default_flight_code = "INTERNAL"

    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "SCHEMA_ERROR")
        super().__init__(message, **kwargs)

class NotSupported(FlightSqlError):
    default_flight_code = "UNIMPLEMENTED"

    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "NOT_SUPPORTED")
        super().__init__(message, **kwargs)

# =============================================================================
# Validation
# =============================================================================

def validate_query(query: str) -> None:
    """Reject empty and whitespace-only query text."""
    if not isinstance(query, str) or not query.strip():
        raise InvalidQuery("query cannot be empty")


def validate_handle(handle: BytesLike, name: str = "handle") -> None:
    if not isinstance(handle, (bytes, bytearray, memoryview)):
        raise InvalidHandle(f"{name} must be bytes")
    if len(handle) == 0:
        raise InvalidHandle(f"{name} cannot be empty")


def validate_transaction_id(transaction_id: BytesLike) -> None:
    if not isinstance(transaction_id, (bytes, bytearray, memoryview)):
        raise InvalidTransaction("transaction ID must be bytes")
    if len(transaction_id) == 0:
        raise InvalidTransaction("transaction ID cannot be empty")


def validate_parameter_data(params: "ParameterData") -> None:
    if not isinstance(params, ParameterData):
        raise InvalidParameter("parameters must be ParameterData")
    if not params.schema:
        raise InvalidParameter("parameter schema is required")
    if not params.data:
        raise InvalidParameter("parameter data is required")

# =============================================================================
# Operation Results
# =============================================================================

@dataclass(frozen=True)
class UpdateResult:
    """
    Result of an update statement.

    Attributes:
        record_count: Rows affected; -1 when the server does not know
    """
    record_count: int

@dataclass(frozen=True)
class PreparedStatementResult:
    """
    Server-side prepared statement.

    Attributes:
        handle: Opaque, non-empty statement handle
        dataset_schema: IPC-encoded result schema, b"" when not provided
        parameter_schema: IPC-encoded parameter schema, b"" when not provided
    """
    handle: bytes
    dataset_schema: bytes = b""
    parameter_schema: bytes = b""

@dataclass(frozen=True)
class TransactionResult:
    transaction_id: bytes

@dataclass(frozen=True)
class BindParametersResult:
    """
    Result of binding parameters to a prepared statement.

    `handle` is set only when the server issued a replacement handle.
    None means keep using the original one (older servers never send it,
    and an empty value is treated the same way).
    """
    handle: Optional[bytes] = None

@dataclass(frozen=True)
class ParameterData:
    """
    Parameter values for a prepared statement, as Arrow IPC messages.

    Attributes:
        schema: Encapsulated IPC schema message
        data: One or more encapsulated IPC record batch messages
    """
    schema: bytes
    data: bytes


class EndTransactionAction(str, enum.Enum):
    COMMIT = "commit"
    ROLLBACK = "rollback"


_END_TRANSACTION_CODES = {
    EndTransactionAction.COMMIT: pb.EndTransaction.COMMIT,
    EndTransactionAction.ROLLBACK: pb.EndTransaction.ROLLBACK,
}

# =============================================================================
# Metrics Interface (SIEM-safe, low-cardinality)
# =============================================================================

class MetricsSink(Protocol):
    """
    Metrics collector. Never receives SQL text, handles or raw tenant ids.
    """
    def observe(
        self,
        *,
        component: str,
        op: str,
        ms: float,
        ok: bool,
        code: str = "OK",
        extra: Optional[Mapping[str, Any]] = None,
    ) -> None: ...

    def counter(
        self,
        *,
        component: str,
        name: str,
        value: int = 1,
        extra: Optional[Mapping[str, Any]] = None,
    ) -> None: ...

class NoopMetrics:
    def observe(self, **_: Any) -> None: ...
    def counter(self, **_: Any) -> None: ...

# =============================================================================
# Client facade
# =============================================================================

def _present(**fields: Any) -> Dict[str, Any]:
    """Drop unset keyword fields so proto3 optional presence stays unset."""
    return {k: v for k, v in fields.items() if v is not None}


class FlightSqlClient:
    """
    Flight SQL operations over a `FlightTransport`.

    The client holds no per-statement or per-transaction state; all
    encode/decode work is per call, so one instance can serve concurrent
    operations.

    Example:
        transport = ArrowFlightTransport("grpc://localhost:8815")
        async with FlightSqlClient(transport) as client:
            info = await client.query("SELECT * FROM users")
            table = await flight_info_to_table(client, info)

            result = await client.execute_update("DELETE FROM users WHERE id = 7")
            print(result.record_count)
    """

    _component = "flightsql"

    def __init__(
        self,
        transport: FlightTransport,
        *,
        metrics: Optional[MetricsSink] = None,
    ) -> None:
        if not isinstance(transport, FlightTransport):
            raise TypeError(
                "transport must implement FlightTransport "
                "(get_flight_info, do_put, do_action, do_get)"
            )
        self._transport = transport
        self._metrics: MetricsSink = metrics or NoopMetrics()

    @property
    def transport(self) -> FlightTransport:
        return self._transport

    async def close(self) -> None:
        """Close the underlying transport, if it can be closed."""
        close = getattr(self._transport, "close", None)
        if close is None:
            return
        result = close()
        if inspect.isawaitable(result):
            await result

    async def __aenter__(self) -> "FlightSqlClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # --- internal helpers (instrumentation) ---

    @staticmethod
    def _tenant_hash(tenant: Optional[str]) -> Optional[str]:
        if not tenant:
            return None
        return hashlib.sha256(tenant.encode()).hexdigest()[:12]

    def _record(
        self,
        op: str,
        t0: float,
        ok: bool,
        *,
        code: str = "OK",
        ctx: Optional[OperationContext] = None,
        **extra: Any,
    ) -> None:
        try:
            ms = (time.monotonic() - t0) * 1000.0
            x = dict(extra or {})
            if ctx:
                tenant_h = self._tenant_hash(ctx.tenant)
                if tenant_h:
                    x.setdefault("tenant_hash", tenant_h)
            self._metrics.observe(
                component=self._component,
                op=op,
                ms=ms,
                ok=ok,
                code=code,
                extra=x or None,
            )
        except Exception:
            # Never let metrics recording break the operation
            LOG.debug("metrics observe failed for %s", op, exc_info=True)

    async def _with_metrics(
        self,
        *,
        op: str,
        ctx: Optional[OperationContext],
        call: Callable[[], Awaitable[Any]],
        metric_extra: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """
        Run one logical operation:
        - records latency and outcome
        - lets FlightSqlError through as-is
        - attaches debugging context to transport errors and re-raises them
        """
        metric_extra = dict(metric_extra or {})
        t0 = time.monotonic()
        try:
            result = await call()
        except FlightSqlError as e:
            self._record(op, t0, False, code=e.code or type(e).__name__, ctx=ctx, **metric_extra)
            LOG.debug("flightsql %s failed: %s", op, e.code)
            raise
        except Exception as e:
            self._record(op, t0, False, code="UnhandledException", ctx=ctx, **metric_extra)
            attach_context(e, self._component, operation=op, request_id=ctx.request_id if ctx else None)
            raise
        self._record(op, t0, True, ctx=ctx, **metric_extra)
        return result

    # --- message encoding / decoding ---

    @staticmethod
    def _descriptor(message: Any) -> CommandDescriptor:
        return command_descriptor(pb.message_name(message), message.SerializeToString())

    @staticmethod
    def _action(action_type: str, message: Any) -> Action:
        body = pack_any(type_url_for(pb.message_name(message)), message.SerializeToString())
        return Action(type=action_type, body=body)

    @staticmethod
    def _unpack(data: bytes, *, op: str) -> bytes:
        try:
            return unpack_any(data)
        except EnvelopeDecodeError as e:
            raise ResultError(f"malformed response from {op}", details={"stage": "envelope"}) from e

    @staticmethod
    def _parse(message_cls: Any, payload: bytes, *, op: str) -> Any:
        try:
            return message_cls.FromString(payload)
        except DecodeError as e:
            raise ResultError(f"malformed response from {op}", details={"stage": "message"}) from e

    # --- transport call shapes ---

    async def _get_flight_info(
        self,
        op: str,
        message: Any,
        ctx: Optional[OperationContext],
        **metric_extra: Any,
    ) -> FlightInfo:
        descriptor = self._descriptor(message)

        async def _call() -> FlightInfo:
            return await self._transport.get_flight_info(descriptor, ctx=ctx)

        return await self._with_metrics(op=op, ctx=ctx, call=_call, metric_extra=metric_extra)

    async def _put_command(
        self,
        message: Any,
        ctx: Optional[OperationContext],
        *,
        data_header: bytes = b"",
        data_body: bytes = b"",
    ) -> List[PutResult]:
        stream = self._transport.do_put(ctx=ctx)
        await stream.write(
            FlightData(
                descriptor=self._descriptor(message),
                data_header=data_header,
                data_body=data_body,
            )
        )
        await stream.done_writing()
        return list(await stream.collect_results())

    async def _first_action_result(
        self,
        action: Action,
        ctx: Optional[OperationContext],
    ) -> Optional[ActionResult]:
        first: Optional[ActionResult] = None
        async for result in self._transport.do_action(action, ctx=ctx):
            if first is None:
                first = result
        return first

    async def _drain_action(self, action: Action, ctx: Optional[OperationContext]) -> None:
        async for _ in self._transport.do_action(action, ctx=ctx):
            pass

    def _decode_update(self, results: List[PutResult], *, op: str, label: str) -> UpdateResult:
        first = results[0] if results else None
        if first is None:
            raise ResultError(f"no result returned from {label}")
        if not first.app_metadata:
            raise ResultError(f"{label} result missing app metadata")
        # DoPutUpdateResult travels raw, not Any-packed
        msg = self._parse(pb.DoPutUpdateResult, first.app_metadata, op=op)
        return UpdateResult(record_count=int(msg.record_count))

    # --- statements ---

    async def query(
        self,
        query: str,
        *,
        transaction_id: Optional[BytesLike] = None,
        ctx: Optional[OperationContext] = None,
    ) -> FlightInfo:
        """
        Execute a query and return the FlightInfo describing its result.

        Rows are fetched separately from the endpoints' tickets, e.g. with
        `flight_info_to_table` or `iterate_results`.
        """
        validate_query(query)
        if transaction_id is not None:
            validate_transaction_id(transaction_id)

        cmd = pb.CommandStatementQuery(
            query=query,
            **_present(transaction_id=bytes(transaction_id) if transaction_id is not None else None),
        )
        return await self._get_flight_info(
            "query", cmd, ctx, in_transaction=transaction_id is not None
        )

    async def execute_update(
        self,
        query: str,
        *,
        transaction_id: Optional[BytesLike] = None,
        ctx: Optional[OperationContext] = None,
    ) -> UpdateResult:
        """Execute an INSERT/UPDATE/DELETE (or DDL) statement."""
        validate_query(query)
        if transaction_id is not None:
            validate_transaction_id(transaction_id)

        cmd = pb.CommandStatementUpdate(
            query=query,
            **_present(transaction_id=bytes(transaction_id) if transaction_id is not None else None),
        )

        async def _call() -> UpdateResult:
            results = await self._put_command(cmd, ctx)
            return self._decode_update(results, op="execute_update", label="update")

        result = await self._with_metrics(
            op="execute_update",
            ctx=ctx,
            call=_call,
            metric_extra={"in_transaction": transaction_id is not None},
        )
        self._metrics.counter(component=self._component, name="updates", value=1)
        return result

    # --- prepared statements ---

    async def create_prepared_statement(
        self,
        query: str,
        *,
        transaction_id: Optional[BytesLike] = None,
        ctx: Optional[OperationContext] = None,
    ) -> PreparedStatementResult:
        """Prepare `query` on the server and return its handle and schemas."""
        validate_query(query)
        if transaction_id is not None:
            validate_transaction_id(transaction_id)

        request = pb.ActionCreatePreparedStatementRequest(
            query=query,
            **_present(transaction_id=bytes(transaction_id) if transaction_id is not None else None),
        )
        action = self._action(pb.ACTION_CREATE_PREPARED_STATEMENT, request)
        op = "create_prepared_statement"

        async def _call() -> PreparedStatementResult:
            first = await self._first_action_result(action, ctx)
            if first is None or not first.body:
                raise ResultError("no result returned from create prepared statement")
            msg = self._parse(
                pb.ActionCreatePreparedStatementResult,
                self._unpack(first.body, op=op),
                op=op,
            )
            if not msg.prepared_statement_handle:
                raise ResultError("create prepared statement result missing handle")
            return PreparedStatementResult(
                handle=bytes(msg.prepared_statement_handle),
                dataset_schema=bytes(msg.dataset_schema),
                parameter_schema=bytes(msg.parameter_schema),
            )

        return await self._with_metrics(op=op, ctx=ctx, call=_call)

    async def close_prepared_statement(
        self,
        handle: BytesLike,
        *,
        ctx: Optional[OperationContext] = None,
    ) -> None:
        """Release a prepared statement. Any results the server sends are ignored."""
        validate_handle(handle, "prepared statement handle")
        request = pb.ActionClosePreparedStatementRequest(prepared_statement_handle=bytes(handle))
        action = self._action(pb.ACTION_CLOSE_PREPARED_STATEMENT, request)

        async def _call() -> None:
            await self._drain_action(action, ctx)

        await self._with_metrics(op="close_prepared_statement", ctx=ctx, call=_call)

    async def execute_prepared_query(
        self,
        handle: BytesLike,
        *,
        ctx: Optional[OperationContext] = None,
    ) -> FlightInfo:
        validate_handle(handle, "prepared statement handle")
        cmd = pb.CommandPreparedStatementQuery(prepared_statement_handle=bytes(handle))
        return await self._get_flight_info("execute_prepared_query", cmd, ctx)

    async def execute_prepared_update(
        self,
        handle: BytesLike,
        *,
        ctx: Optional[OperationContext] = None,
    ) -> UpdateResult:
        validate_handle(handle, "prepared statement handle")
        cmd = pb.CommandPreparedStatementUpdate(prepared_statement_handle=bytes(handle))

        async def _call() -> UpdateResult:
            results = await self._put_command(cmd, ctx)
            return self._decode_update(results, op="execute_prepared_update", label="prepared update")

        result = await self._with_metrics(op="execute_prepared_update", ctx=ctx, call=_call)
        self._metrics.counter(component=self._component, name="updates", value=1)
        return result

    async def bind_parameters(
        self,
        handle: BytesLike,
        params: ParameterData,
        *,
        ctx: Optional[OperationContext] = None,
    ) -> BindParametersResult:
        """
        Send parameter values for a prepared statement.

        Servers that support it answer with a replacement handle, which is
        returned in `BindParametersResult.handle`. A missing or empty answer
        is not an error: the original handle stays valid.
        """
        validate_handle(handle, "prepared statement handle")
        validate_parameter_data(params)
        cmd = pb.CommandPreparedStatementQuery(prepared_statement_handle=bytes(handle))
        op = "bind_parameters"

        async def _call() -> BindParametersResult:
            results = await self._put_command(
                cmd,
                ctx,
                data_header=bytes(params.schema),
                data_body=bytes(params.data),
            )
            first = results[0] if results else None
            if first is None or not first.app_metadata:
                return BindParametersResult()
            payload = self._unpack(first.app_metadata, op=op)
            if not payload:
                return BindParametersResult()
            msg = self._parse(pb.DoPutPreparedStatementResult, payload, op=op)
            if msg.HasField("prepared_statement_handle") and msg.prepared_statement_handle:
                return BindParametersResult(handle=bytes(msg.prepared_statement_handle))
            return BindParametersResult()

        return await self._with_metrics(op=op, ctx=ctx, call=_call)

    # --- transactions ---

    async def begin_transaction(
        self,
        *,
        ctx: Optional[OperationContext] = None,
    ) -> TransactionResult:
        action = self._action(pb.ACTION_BEGIN_TRANSACTION, pb.ActionBeginTransactionRequest())
        op = "begin_transaction"

        async def _call() -> TransactionResult:
            first = await self._first_action_result(action, ctx)
            if first is None or not first.body:
                raise ResultError("no result returned from begin transaction")
            msg = self._parse(
                pb.ActionBeginTransactionResult,
                self._unpack(first.body, op=op),
                op=op,
            )
            if not msg.transaction_id:
                raise ResultError("begin transaction result missing transaction ID")
            return TransactionResult(transaction_id=bytes(msg.transaction_id))

        return await self._with_metrics(op=op, ctx=ctx, call=_call)

    async def end_transaction(
        self,
        transaction_id: BytesLike,
        action: Union[EndTransactionAction, str],
        *,
        ctx: Optional[OperationContext] = None,
    ) -> None:
        """Commit or roll back a transaction."""
        validate_transaction_id(transaction_id)
        try:
            resolved = EndTransactionAction(action)
        except ValueError:
            raise InvalidParameter(
                f"action must be 'commit' or 'rollback', got {action!r}"
            ) from None

        request = pb.ActionEndTransactionRequest(
            transaction_id=bytes(transaction_id),
            action=int(_END_TRANSACTION_CODES[resolved]),
        )
        flight_action = self._action(pb.ACTION_END_TRANSACTION, request)

        async def _call() -> None:
            await self._drain_action(flight_action, ctx)

        await self._with_metrics(
            op="end_transaction",
            ctx=ctx,
            call=_call,
            metric_extra={"action": resolved.value},
        )

    async def commit(self, transaction_id: BytesLike, *, ctx: Optional[OperationContext] = None) -> None:
        await self.end_transaction(transaction_id, EndTransactionAction.COMMIT, ctx=ctx)

    async def rollback(self, transaction_id: BytesLike, *, ctx: Optional[OperationContext] = None) -> None:
        await self.end_transaction(transaction_id, EndTransactionAction.ROLLBACK, ctx=ctx)

    # --- catalog / metadata ---

    async def get_catalogs(self, *, ctx: Optional[OperationContext] = None) -> FlightInfo:
        return await self._get_flight_info("get_catalogs", pb.CommandGetCatalogs(), ctx)

    async def get_db_schemas(
        self,
        *,
        catalog: Optional[str] = None,
        db_schema_filter_pattern: Optional[str] = None,
        ctx: Optional[OperationContext] = None,
    ) -> FlightInfo:
        cmd = pb.CommandGetDbSchemas(
            **_present(catalog=catalog, db_schema_filter_pattern=db_schema_filter_pattern)
        )
        return await self._get_flight_info("get_db_schemas", cmd, ctx)

    async def get_tables(
        self,
        *,
        catalog: Optional[str] = None,
        db_schema_filter_pattern: Optional[str] = None,
        table_name_filter_pattern: Optional[str] = None,
        table_types: Optional[Iterable[str]] = None,
        include_schema: bool = False,
        ctx: Optional[OperationContext] = None,
    ) -> FlightInfo:
        cmd = pb.CommandGetTables(
            table_types=list(table_types or ()),
            include_schema=bool(include_schema),
            **_present(
                catalog=catalog,
                db_schema_filter_pattern=db_schema_filter_pattern,
                table_name_filter_pattern=table_name_filter_pattern,
            ),
        )
        return await self._get_flight_info(
            "get_tables", cmd, ctx, include_schema=bool(include_schema)
        )

    async def get_table_types(self, *, ctx: Optional[OperationContext] = None) -> FlightInfo:
        return await self._get_flight_info("get_table_types", pb.CommandGetTableTypes(), ctx)

    async def get_primary_keys(
        self,
        table: str,
        *,
        catalog: Optional[str] = None,
        db_schema: Optional[str] = None,
        ctx: Optional[OperationContext] = None,
    ) -> FlightInfo:
        cmd = pb.CommandGetPrimaryKeys(table=table, **_present(catalog=catalog, db_schema=db_schema))
        return await self._get_flight_info("get_primary_keys", cmd, ctx)

    async def get_exported_keys(
        self,
        table: str,
        *,
        catalog: Optional[str] = None,
        db_schema: Optional[str] = None,
        ctx: Optional[OperationContext] = None,
    ) -> FlightInfo:
        """Foreign keys in other tables that reference `table`'s primary key."""
        cmd = pb.CommandGetExportedKeys(table=table, **_present(catalog=catalog, db_schema=db_schema))
        return await self._get_flight_info("get_exported_keys", cmd, ctx)

    async def get_imported_keys(
        self,
        table: str,
        *,
        catalog: Optional[str] = None,
        db_schema: Optional[str] = None,
        ctx: Optional[OperationContext] = None,
    ) -> FlightInfo:
        """Foreign keys declared on `table`."""
        cmd = pb.CommandGetImportedKeys(table=table, **_present(catalog=catalog, db_schema=db_schema))
        return await self._get_flight_info("get_imported_keys", cmd, ctx)

    async def get_cross_reference(
        self,
        pk_table: str,
        fk_table: str,
        *,
        pk_catalog: Optional[str] = None,
        pk_db_schema: Optional[str] = None,
        fk_catalog: Optional[str] = None,
        fk_db_schema: Optional[str] = None,
        ctx: Optional[OperationContext] = None,
    ) -> FlightInfo:
        """Foreign keys in `fk_table` that reference the primary key of `pk_table`."""
        cmd = pb.CommandGetCrossReference(
            pk_table=pk_table,
            fk_table=fk_table,
            **_present(
                pk_catalog=pk_catalog,
                pk_db_schema=pk_db_schema,
                fk_catalog=fk_catalog,
                fk_db_schema=fk_db_schema,
            ),
        )
        return await self._get_flight_info("get_cross_reference", cmd, ctx)

    async def get_sql_info(
        self,
        info: Optional[Iterable[int]] = None,
        *,
        ctx: Optional[OperationContext] = None,
    ) -> FlightInfo:
        """Server metadata; an empty `info` asks for every code the server knows."""
        cmd = pb.CommandGetSqlInfo(info=[int(code) for code in (info or ())])
        return await self._get_flight_info("get_sql_info", cmd, ctx)

    async def get_xdbc_type_info(
        self,
        data_type: Optional[int] = None,
        *,
        ctx: Optional[OperationContext] = None,
    ) -> FlightInfo:
        cmd = pb.CommandGetXdbcTypeInfo(
            **_present(data_type=int(data_type) if data_type is not None else None)
        )
        return await self._get_flight_info("get_xdbc_type_info", cmd, ctx)

    # --- data retrieval ---

    def do_get(self, ticket: Ticket, *, ctx: Optional[OperationContext] = None) -> AsyncIterator[FlightData]:
        """Stream the raw Flight messages behind one ticket."""
        return self._transport.do_get(ticket, ctx=ctx)

# =============================================================================
# Wire-Level Helpers (canonical envelopes)
# =============================================================================

_WIRE_OPS = frozenset({
    "query",
    "execute_update",
    "create_prepared_statement",
    "close_prepared_statement",
    "execute_prepared_query",
    "execute_prepared_update",
    "bind_parameters",
    "begin_transaction",
    "end_transaction",
    "commit",
    "rollback",
    "get_catalogs",
    "get_db_schemas",
    "get_tables",
    "get_table_types",
    "get_primary_keys",
    "get_exported_keys",
    "get_imported_keys",
    "get_cross_reference",
    "get_sql_info",
    "get_xdbc_type_info",
})


def _to_wire_value(value: Any) -> Any:
    """Make typed results JSON-friendly: dataclasses to dicts, bytes to `<key>_b64`."""
    if is_dataclass(value) and not isinstance(value, type):
        value = asdict(value)
    if isinstance(value, Mapping):
        out: Dict[str, Any] = {}
        for k, v in value.items():
            if isinstance(v, (bytes, bytearray, memoryview)):
                out[f"{k}_b64"] = base64.b64encode(bytes(v)).decode("ascii")
            else:
                out[k] = _to_wire_value(v)
        return out
    if isinstance(value, (list, tuple)):
        return [_to_wire_value(v) for v in value]
    if isinstance(value, enum.Enum):
        return value.value
    return value


def _args_from_wire(args: Mapping[str, Any]) -> Dict[str, Any]:
    """Inverse of `_to_wire_value` for request args."""
    out: Dict[str, Any] = {}
    for k, v in args.items():
        if k.endswith("_b64"):
            out[k[:-4]] = base64.b64decode(v) if v is not None else None
        elif isinstance(v, Mapping):
            out[k] = _args_from_wire(v)
        else:
            out[k] = v
    return out


def _error_to_wire(e: Exception, ms: float) -> Dict[str, Any]:
    if isinstance(e, FlightSqlError):
        payload = e.asdict()
        return {
            "ok": False,
            "code": payload.get("code") or type(e).__name__.upper(),
            "error": type(e).__name__,
            "message": payload.get("message", ""),
            "flight_code": payload.get("flight_code"),
            "details": payload.get("details") or None,
            "ms": ms,
        }
    # Fallback: treat as UNAVAILABLE
    return {
        "ok": False,
        "code": "UNAVAILABLE",
        "error": type(e).__name__,
        "message": str(e) or "internal error",
        "flight_code": None,
        "details": None,
        "ms": ms,
    }


def _success_to_wire(result: Any, ms: float) -> Dict[str, Any]:
    return {
        "ok": True,
        "code": "OK",
        "ms": ms,
        "result": _to_wire_value(result),
    }


class WireFlightSqlHandler:
    """
    Exposes a FlightSqlClient through the canonical JSON envelope contract:

        {"op": "flightsql.execute_update", "ctx": {...}, "args": {"query": "..."}}

    The handler is transport-agnostic: plug it into HTTP, WebSockets or a
    message queue consumer.
    """

    def __init__(self, client: FlightSqlClient):
        self._client = client

    async def handle(self, envelope: Mapping[str, Any]) -> Dict[str, Any]:
        t0 = time.monotonic()
        try:
            op = envelope.get("op")
            if not isinstance(op, str):
                raise InvalidParameter("missing or invalid 'op'")

            name = op[len("flightsql."):] if op.startswith("flightsql.") else ""
            if name not in _WIRE_OPS:
                raise NotSupported(f"unknown operation '{op}'")

            ctx = OperationContext.from_dict(envelope.get("ctx") or {})
            kwargs = _args_from_wire(envelope.get("args") or {})
            if name == "bind_parameters" and isinstance(kwargs.get("params"), Mapping):
                kwargs["params"] = ParameterData(
                    schema=kwargs["params"].get("schema") or b"",
                    data=kwargs["params"].get("data") or b"",
                )

            try:
                pending = getattr(self._client, name)(ctx=ctx, **kwargs)
            except TypeError as e:
                raise InvalidParameter(f"invalid arguments for '{op}': {e}") from e

            res = await pending
            return _success_to_wire(res, (time.monotonic() - t0) * 1000.0)

        except Exception as e:
            ms = (time.monotonic() - t0) * 1000.0
            return _error_to_wire(e, ms)

# =============================================================================
# Public Exports
# =============================================================================

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
]
