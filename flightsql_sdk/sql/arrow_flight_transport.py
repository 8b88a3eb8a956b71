# flightsql_sdk/sql/arrow_flight_transport.py
# SPDX-License-Identifier: Apache-2.0
"""
FlightTransport backed by `pyarrow.flight`.

Usage
-----
    from flightsql_sdk.sql.arrow_flight_transport import ArrowFlightTransport, connect

    transport = ArrowFlightTransport("grpc+tls://warehouse:8815", token="...")
    client = FlightSqlClient(transport)

    # or, including the basic-auth handshake:
    client = await connect("grpc://localhost:8815", username="u", password="p")

Design notes
------------
- pyarrow's Flight client is blocking; every call runs via `asyncio.to_thread`.
- Per-call `FlightCallOptions` come from the OperationContext: the remaining
  deadline becomes the call timeout, `request_id` and `traceparent` become
  headers, and `ctx.headers` are forwarded as-is.
- pyarrow errors (FlightUnauthenticatedError, FlightTimedOutError, ...)
  propagate unchanged; the client attaches debugging context to them.

Configuration
-------------
- location: argument, else env FLIGHT_SQL_URI, else grpc://localhost:8815
- token:    argument, else env FLIGHT_SQL_TOKEN (sent as a bearer header)
"""

from __future__ import annotations

import asyncio
import io
import logging
import os
from typing import Any, AsyncIterator, List, Mapping, Optional, Tuple

import pyarrow as pa
import pyarrow.flight as flight

from flightsql_sdk.core.operational_context import OperationContext
from flightsql_sdk.sql.sql_base import FlightSqlClient, MetricsSink
from flightsql_sdk.sql.transport import (
    Action,
    ActionResult,
    FlightData,
    FlightEndpoint,
    FlightInfo,
    PutResult,
    Ticket,
)
from flightsql_sdk.wire.envelope import CommandDescriptor

logger = logging.getLogger(__name__)

DEFAULT_LOCATION = "grpc://localhost:8815"

Header = Tuple[bytes, bytes]


def _to_bytes(value: Any) -> bytes:
    if value is None:
        return b""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        return value.encode()
    return value.to_pybytes()


def _next_chunk(reader: Any) -> Optional[Any]:
    # StopIteration cannot cross into an asyncio Future
    try:
        return reader.read_chunk()
    except StopIteration:
        return None


def _drain(sink: io.BytesIO) -> bytes:
    data = sink.getvalue()
    sink.seek(0)
    sink.truncate()
    return data


def _schema_bytes(info: Any) -> bytes:
    try:
        schema = info.schema
    except pa.ArrowException:
        return b""
    if schema is None:
        return b""
    return schema.serialize().to_pybytes()


def _convert_info(info: Any) -> FlightInfo:
    endpoints = []
    for ep in info.endpoints:
        ticket = Ticket(ep.ticket.ticket) if ep.ticket is not None and ep.ticket.ticket else None
        locations = tuple(_to_bytes(loc.uri).decode() for loc in ep.locations)
        endpoints.append(FlightEndpoint(ticket=ticket, locations=locations))

    descriptor = None
    if info.descriptor is not None and info.descriptor.command:
        descriptor = CommandDescriptor(cmd=_to_bytes(info.descriptor.command))

    return FlightInfo(
        schema=_schema_bytes(info),
        endpoints=endpoints,
        descriptor=descriptor,
        total_records=int(info.total_records),
        total_bytes=int(info.total_bytes),
        ordered=bool(getattr(info, "ordered", False)),
        app_metadata=_to_bytes(getattr(info, "app_metadata", b"")),
    )


class ArrowFlightWriteStream:
    """
    One DoPut call.

    The pyarrow stream needs a descriptor and a schema up front, so it is
    opened lazily by the first `write`.
    """

    def __init__(self, client: "flight.FlightClient", options: "flight.FlightCallOptions"):
        self._client = client
        self._options = options
        self._writer: Any = None
        self._reader: Any = None
        self._schema: Optional[pa.Schema] = None

    def _decode(self, data: FlightData) -> Optional[pa.Table]:
        if data.data_header:
            return pa.ipc.open_stream(pa.py_buffer(data.data_header + data.data_body)).read_all()
        if data.data_body and self._schema is not None:
            batch = pa.ipc.read_record_batch(pa.py_buffer(data.data_body), self._schema)
            return pa.Table.from_batches([batch])
        return None

    async def write(self, data: FlightData) -> None:
        table = self._decode(data)

        if self._writer is None:
            if data.descriptor is None:
                raise ValueError("first message of a DoPut stream must carry a descriptor")
            self._schema = table.schema if table is not None else pa.schema([])
            descriptor = flight.FlightDescriptor.for_command(data.descriptor.cmd)
            self._writer, self._reader = await asyncio.to_thread(
                self._client.do_put, descriptor, self._schema, self._options
            )

        if table is not None and table.num_rows:
            await asyncio.to_thread(self._writer.write_table, table)

    async def done_writing(self) -> None:
        if self._writer is None:
            raise RuntimeError("done_writing() called before any write()")
        try:
            await asyncio.to_thread(self._writer.done_writing)
        except Exception:
            await asyncio.to_thread(self._abort)
            raise

    def _abort(self) -> None:
        # the call already failed; closing only releases it
        try:
            self._writer.close()
        except Exception as e:
            logger.debug("closing failed DoPut stream raised %r", e)

    def _read_all(self) -> List[PutResult]:
        results: List[PutResult] = []
        try:
            while True:
                buf = self._reader.read()
                if buf is None:
                    break
                results.append(PutResult(app_metadata=_to_bytes(buf)))
        except Exception:
            self._abort()
            raise
        self._writer.close()
        return results

    async def collect_results(self) -> List[PutResult]:
        if self._writer is None:
            raise RuntimeError("collect_results() called before any write()")
        return await asyncio.to_thread(self._read_all)


class ArrowFlightTransport:
    """FlightTransport over a `pyarrow.flight.FlightClient`."""

    def __init__(
        self,
        location: Optional[str] = None,
        *,
        token: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
        tls_root_certs: Optional[bytes] = None,
        disable_server_verification: bool = False,
        client: Optional["flight.FlightClient"] = None,
    ) -> None:
        self._location = location or os.getenv("FLIGHT_SQL_URI") or DEFAULT_LOCATION
        token = token or os.getenv("FLIGHT_SQL_TOKEN")

        self._headers: List[Header] = [
            (k.lower().encode(), v.encode()) for k, v in (headers or {}).items()
        ]
        if token:
            self._headers.append((b"authorization", f"Bearer {token}".encode()))

        if client is not None:
            self._client = client
        else:
            kwargs: dict = {}
            if tls_root_certs is not None:
                kwargs["tls_root_certs"] = tls_root_certs
            if disable_server_verification:
                kwargs["disable_server_verification"] = True
            self._client = flight.FlightClient(self._location, **kwargs)

        logger.debug("Flight transport created for %s", self._location)

    @property
    def location(self) -> str:
        return self._location

    # --- connection management ---

    async def wait_for_available(self, timeout_s: float = 5.0) -> None:
        """Block until the server answers, raising on timeout."""
        await asyncio.to_thread(self._client.wait_for_available, timeout_s)

    async def authenticate_basic(self, username: str, password: str) -> None:
        """
        Run the basic-auth handshake and send the returned bearer header on
        every following call.
        """
        key, value = await asyncio.to_thread(
            self._client.authenticate_basic_token, username, password
        )
        self._headers = [h for h in self._headers if h[0] != b"authorization"]
        self._headers.append((_to_bytes(key).lower(), _to_bytes(value)))

    async def close(self) -> None:
        await asyncio.to_thread(self._client.close)

    # --- helpers ---

    def _call_options(self, ctx: Optional[OperationContext]) -> "flight.FlightCallOptions":
        headers = list(self._headers)
        timeout: Optional[float] = None
        if ctx is not None:
            if ctx.request_id:
                headers.append((b"x-request-id", ctx.request_id.encode()))
            if ctx.traceparent:
                headers.append((b"traceparent", ctx.traceparent.encode()))
            for k, v in ctx.headers.items():
                headers.append((k.lower().encode(), v.encode()))
            remaining = ctx.remaining_ms()
            if remaining is not None:
                timeout = remaining / 1000.0
        return flight.FlightCallOptions(timeout=timeout, headers=headers)

    # --- FlightTransport ---

    async def get_flight_info(
        self,
        descriptor: CommandDescriptor,
        *,
        ctx: Optional[OperationContext] = None,
    ) -> FlightInfo:
        options = self._call_options(ctx)
        info = await asyncio.to_thread(
            self._client.get_flight_info,
            flight.FlightDescriptor.for_command(descriptor.cmd),
            options,
        )
        return _convert_info(info)

    def do_put(self, *, ctx: Optional[OperationContext] = None) -> ArrowFlightWriteStream:
        return ArrowFlightWriteStream(self._client, self._call_options(ctx))

    async def do_action(
        self,
        action: Action,
        *,
        ctx: Optional[OperationContext] = None,
    ) -> AsyncIterator[ActionResult]:
        options = self._call_options(ctx)
        flight_action = flight.Action(action.type, pa.py_buffer(action.body))

        def _run() -> List[ActionResult]:
            return [
                ActionResult(body=_to_bytes(result.body))
                for result in self._client.do_action(flight_action, options)
            ]

        for result in await asyncio.to_thread(_run):
            yield result

    async def do_get(
        self,
        ticket: Ticket,
        *,
        ctx: Optional[OperationContext] = None,
    ) -> AsyncIterator[FlightData]:
        options = self._call_options(ctx)
        reader = await asyncio.to_thread(self._client.do_get, flight.Ticket(ticket.ticket), options)

        schema = await asyncio.to_thread(lambda: reader.schema)

        # batches go back through an IPC writer so dictionary messages are kept
        sink = io.BytesIO()
        writer = pa.ipc.new_stream(sink, schema)
        header = _drain(sink)
        if header:
            yield FlightData(data_header=header)

        try:
            while True:
                chunk = await asyncio.to_thread(_next_chunk, reader)
                if chunk is None:
                    break
                if chunk.data is not None:
                    writer.write_batch(chunk.data)
                yield FlightData(data_body=_drain(sink), app_metadata=_to_bytes(chunk.app_metadata))
        finally:
            writer.close()


async def connect(
    location: Optional[str] = None,
    *,
    username: Optional[str] = None,
    password: Optional[str] = None,
    metrics: Optional[MetricsSink] = None,
    **transport_kwargs: Any,
) -> FlightSqlClient:
    """
    Build a FlightSqlClient over an ArrowFlightTransport.

    With `username`, the basic-auth handshake runs before returning.
    """
    transport = ArrowFlightTransport(location, **transport_kwargs)
    if username is not None:
        await transport.authenticate_basic(username, password or "")
    return FlightSqlClient(transport, metrics=metrics)


__all__ = [
    "DEFAULT_LOCATION",
    "ArrowFlightWriteStream",
    "ArrowFlightTransport",
    "connect",
]
