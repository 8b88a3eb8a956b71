# flightsql_sdk/sql/transport.py
# SPDX-License-Identifier: Apache-2.0
"""
Transport contract consumed by the Flight SQL client.

The client never opens connections itself. It drives four Arrow Flight
primitives through an object implementing `FlightTransport`:

    get_flight_info(descriptor)  -> FlightInfo           (unary)
    do_put()                     -> WriteStream          (client stream + acks)
    do_action(action)            -> AsyncIterator[ActionResult]
    do_get(ticket)               -> AsyncIterator[FlightData]

The record types below are the plain-data view of Flight messages the
client needs. `ArrowFlightTransport` converts pyarrow.flight objects into
them; tests use `MockFlightTransport`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import (
    AsyncIterator,
    List,
    Optional,
    Protocol,
    Tuple,
    runtime_checkable,
)

from flightsql_sdk.core.operational_context import OperationContext
from flightsql_sdk.wire.envelope import CommandDescriptor


@dataclass(frozen=True)
class Ticket:
    """Opaque retrieval token for one endpoint's share of a result."""
    ticket: bytes


@dataclass(frozen=True)
class FlightEndpoint:
    """
    Where to fetch part of a result.

    Endpoints without a ticket only name external locations; the client
    skips them.
    """
    ticket: Optional[Ticket] = None
    locations: Tuple[str, ...] = ()


@dataclass(frozen=True)
class FlightInfo:
    """
    Response to get_flight_info.

    Attributes:
        schema: IPC-encoded result schema (may be empty)
        endpoints: Endpoints in server order
        descriptor: The descriptor the info was produced for, if echoed
        total_records: Row count, -1 when unknown
        total_bytes: Byte count, -1 when unknown
        ordered: Whether endpoint order is significant
        app_metadata: Server-defined metadata
    """
    schema: bytes = b""
    endpoints: List[FlightEndpoint] = field(default_factory=list)
    descriptor: Optional[CommandDescriptor] = None
    total_records: int = -1
    total_bytes: int = -1
    ordered: bool = False
    app_metadata: bytes = b""


@dataclass(frozen=True)
class FlightData:
    """
    One Flight stream message.

    `data_header` carries IPC message metadata (the schema on the first
    message of a stream), `data_body` the record batch bytes.
    """
    descriptor: Optional[CommandDescriptor] = None
    data_header: bytes = b""
    data_body: bytes = b""
    app_metadata: bytes = b""


@dataclass(frozen=True)
class PutResult:
    """Acknowledgement sent back on a DoPut stream."""
    app_metadata: bytes = b""


@dataclass(frozen=True)
class Action:
    type: str
    body: bytes = b""


@dataclass(frozen=True)
class ActionResult:
    body: bytes = b""


class WriteStream(Protocol):
    """Client side of a DoPut call."""

    async def write(self, data: FlightData) -> None: ...

    async def done_writing(self) -> None: ...

    async def collect_results(self) -> List[PutResult]:
        """Wait for the server to finish and return every PutResult it sent."""
        ...


@runtime_checkable
class FlightTransport(Protocol):
    """
    Arrow Flight primitives the client is built on.

    Implementations own connection state, authentication and error
    classification; their exceptions reach callers unchanged.
    """

    async def get_flight_info(
        self,
        descriptor: CommandDescriptor,
        *,
        ctx: Optional[OperationContext] = None,
    ) -> FlightInfo: ...

    def do_put(self, *, ctx: Optional[OperationContext] = None) -> WriteStream: ...

    def do_action(
        self,
        action: Action,
        *,
        ctx: Optional[OperationContext] = None,
    ) -> AsyncIterator[ActionResult]: ...

    def do_get(
        self,
        ticket: Ticket,
        *,
        ctx: Optional[OperationContext] = None,
    ) -> AsyncIterator[FlightData]: ...


__all__ = [
    "Ticket",
    "FlightEndpoint",
    "FlightInfo",
    "FlightData",
    "PutResult",
    "Action",
    "ActionResult",
    "WriteStream",
    "FlightTransport",
]
