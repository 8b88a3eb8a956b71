# flightsql_sdk/mock/mock_flight_transport.py
# SPDX-License-Identifier: Apache-2.0
"""
Scripted in-memory FlightTransport used by tests and example scripts.

Responses are configured up front; every call is recorded so callers can
inspect exactly what the client sent.

    transport = MockFlightTransport()
    transport.put_results = [encode_update_result(3)]
    client = FlightSqlClient(transport)

    await client.execute_update("DELETE FROM t")
    transport.written[0].descriptor   # the Any-packed CommandStatementUpdate
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

import pyarrow as pa

from flightsql_sdk.core.operational_context import OperationContext
from flightsql_sdk.sql import messages as pb
from flightsql_sdk.sql.transport import (
    Action,
    ActionResult,
    FlightData,
    FlightEndpoint,
    FlightInfo,
    PutResult,
    Ticket,
)
from flightsql_sdk.wire.envelope import CommandDescriptor, pack_any, type_url_for

# -----------------------------
# Server-side encoders
# -----------------------------

def _packed(message: Any) -> bytes:
    return pack_any(type_url_for(pb.message_name(message)), message.SerializeToString())


def encode_update_result(record_count: int) -> PutResult:
    """DoPutUpdateResult, raw in app_metadata."""
    return PutResult(app_metadata=pb.DoPutUpdateResult(record_count=record_count).SerializeToString())


def encode_bind_result(handle: Optional[bytes] = None) -> PutResult:
    msg = pb.DoPutPreparedStatementResult()
    if handle is not None:
        msg.prepared_statement_handle = handle
    return PutResult(app_metadata=_packed(msg))


def encode_prepared_statement(
    handle: bytes,
    dataset_schema: bytes = b"",
    parameter_schema: bytes = b"",
) -> ActionResult:
    return ActionResult(
        body=_packed(
            pb.ActionCreatePreparedStatementResult(
                prepared_statement_handle=handle,
                dataset_schema=dataset_schema,
                parameter_schema=parameter_schema,
            )
        )
    )


def encode_transaction(transaction_id: bytes) -> ActionResult:
    return ActionResult(body=_packed(pb.ActionBeginTransactionResult(transaction_id=transaction_id)))


def table_to_flight_data(table: pa.Table, *, max_chunksize: Optional[int] = None) -> List[FlightData]:
    """Split a table into the messages a do_get stream would carry."""
    sink = pa.BufferOutputStream()
    with pa.ipc.new_stream(sink, table.schema) as writer:
        writer.write_table(table, max_chunksize=max_chunksize)

    reader = pa.ipc.MessageReader.open_stream(sink.getvalue())
    out = [FlightData(data_header=reader.read_next_message().serialize().to_pybytes())]
    while True:
        try:
            message = reader.read_next_message()
        except StopIteration:
            break
        out.append(FlightData(data_body=message.serialize().to_pybytes()))
    return out


def info_for_tickets(*tickets: Optional[bytes], schema: Optional[pa.Schema] = None) -> FlightInfo:
    """FlightInfo with one endpoint per ticket; None makes a location-only endpoint."""
    endpoints = [
        FlightEndpoint(ticket=Ticket(t)) if t is not None else FlightEndpoint(locations=("grpc://elsewhere:8815",))
        for t in tickets
    ]
    return FlightInfo(
        schema=schema.serialize().to_pybytes() if schema is not None else b"",
        endpoints=endpoints,
    )

# -----------------------------
# Transport
# -----------------------------

class MockWriteStream:
    def __init__(self, transport: "MockFlightTransport", ctx: Optional[OperationContext]):
        self._transport = transport
        self._ctx = ctx
        self.done = False

    async def write(self, data: FlightData) -> None:
        self._transport.written.append(data)

    async def done_writing(self) -> None:
        self.done = True
        self._transport.done_writing_calls += 1

    async def collect_results(self) -> List[PutResult]:
        self._transport._maybe_fail("collect_results")
        return list(self._transport.put_results)


@dataclass
class MockFlightTransport:
    """
    FlightTransport with canned responses.

    Attributes:
        flight_info: Returned by every get_flight_info call
        put_results: Returned by collect_results on every do_put stream
        action_results: Results per action type
        streams: do_get messages per ticket bytes
        errors: Exception to raise, keyed by primitive name
            ("get_flight_info", "do_put", "collect_results", "do_action", "do_get")
    """
    flight_info: FlightInfo = field(default_factory=FlightInfo)
    put_results: List[PutResult] = field(default_factory=list)
    action_results: Dict[str, List[ActionResult]] = field(default_factory=dict)
    streams: Dict[bytes, List[FlightData]] = field(default_factory=dict)
    errors: Dict[str, BaseException] = field(default_factory=dict)

    # recorded traffic
    calls: List[Tuple[str, Optional[OperationContext]]] = field(default_factory=list)
    descriptors: List[CommandDescriptor] = field(default_factory=list)
    actions: List[Action] = field(default_factory=list)
    written: List[FlightData] = field(default_factory=list)
    tickets: List[Ticket] = field(default_factory=list)
    done_writing_calls: int = 0
    closed: bool = False

    def _maybe_fail(self, primitive: str) -> None:
        err = self.errors.get(primitive)
        if err is not None:
            raise err

    def add_table(self, ticket: bytes, table: pa.Table, *, max_chunksize: Optional[int] = None) -> None:
        self.streams[ticket] = table_to_flight_data(table, max_chunksize=max_chunksize)

    async def get_flight_info(
        self,
        descriptor: CommandDescriptor,
        *,
        ctx: Optional[OperationContext] = None,
    ) -> FlightInfo:
        self.calls.append(("get_flight_info", ctx))
        self.descriptors.append(descriptor)
        self._maybe_fail("get_flight_info")
        return self.flight_info

    def do_put(self, *, ctx: Optional[OperationContext] = None) -> MockWriteStream:
        self.calls.append(("do_put", ctx))
        self._maybe_fail("do_put")
        return MockWriteStream(self, ctx)

    async def do_action(
        self,
        action: Action,
        *,
        ctx: Optional[OperationContext] = None,
    ) -> AsyncIterator[ActionResult]:
        self.calls.append(("do_action", ctx))
        self.actions.append(action)
        self._maybe_fail("do_action")
        for result in self.action_results.get(action.type, []):
            yield result

    async def do_get(
        self,
        ticket: Ticket,
        *,
        ctx: Optional[OperationContext] = None,
    ) -> AsyncIterator[FlightData]:
        self.calls.append(("do_get", ctx))
        self.tickets.append(ticket)
        self._maybe_fail("do_get")
        for data in self.streams.get(ticket.ticket, []):
            yield data

    async def close(self) -> None:
        self.closed = True


__all__ = [
    "MockFlightTransport",
    "MockWriteStream",
    "encode_update_result",
    "encode_bind_result",
    "encode_prepared_statement",
    "encode_transaction",
    "table_to_flight_data",
    "info_for_tickets",
]
