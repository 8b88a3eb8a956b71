# flightsql_sdk/sql/results.py
# SPDX-License-Identifier: Apache-2.0
"""
Turning FlightInfo responses into Arrow data.

A query answer is a FlightInfo whose endpoints each hold a ticket. Each
ticket is redeemed with do_get, which yields Flight messages: the schema
message first (in `data_header`), then record batches (in `data_body`).
Concatenating header and body bytes of one endpoint's messages yields an
Arrow IPC stream that pyarrow can read back. Every endpoint starts its own
stream, so endpoints are decoded separately and their tables concatenated.

    info = await client.query("SELECT id, name FROM users")
    table = await flight_info_to_table(client, info)

    async for data in iterate_results(client, info):
        handle(data.data_body)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, AsyncIterator, Optional, Union

import pyarrow as pa

from flightsql_sdk.core.operational_context import OperationContext
from flightsql_sdk.sql.sql_base import ParameterData, ResultError, SchemaError
from flightsql_sdk.sql.transport import FlightData, FlightInfo, Ticket

if TYPE_CHECKING:
    from flightsql_sdk.sql.sql_base import FlightSqlClient

LOG = logging.getLogger(__name__)


def _decode_ipc(data: bytes) -> pa.Table:
    try:
        reader = pa.ipc.open_stream(pa.py_buffer(data))
        return reader.read_all()
    except (pa.ArrowException, OSError) as e:
        raise SchemaError(
            "failed to decode Arrow IPC stream",
            details={"bytes": len(data)},
        ) from e


async def _collect(client: "FlightSqlClient", ticket: Ticket, ctx: Optional[OperationContext]) -> bytearray:
    buf = bytearray()
    async for data in client.do_get(ticket, ctx=ctx):
        buf += data.data_header
        buf += data.data_body
    return buf


async def iterate_results(
    client: "FlightSqlClient",
    info: FlightInfo,
    *,
    ctx: Optional[OperationContext] = None,
) -> AsyncIterator[FlightData]:
    """
    Yield raw Flight messages for every ticketed endpoint, in order.

    Nothing is buffered; the iterator is single-pass. Endpoints without a
    ticket are skipped.
    """
    for index, endpoint in enumerate(info.endpoints):
        if endpoint.ticket is None:
            LOG.debug("skipping endpoint %d without ticket", index)
            continue
        async for data in client.do_get(endpoint.ticket, ctx=ctx):
            yield data


async def flight_info_to_table(
    client: "FlightSqlClient",
    info: FlightInfo,
    *,
    ctx: Optional[OperationContext] = None,
) -> pa.Table:
    """Fetch every ticketed endpoint and decode the combined result."""
    streams = []
    for endpoint in info.endpoints:
        if endpoint.ticket is None:
            continue
        streams.append(await _collect(client, endpoint.ticket, ctx))

    total = sum(len(s) for s in streams)
    if not total:
        raise ResultError("no data returned from query", flight_code="NOT_FOUND")

    LOG.debug("decoding %d bytes from %d endpoint(s)", total, len(streams))
    tables = [_decode_ipc(bytes(s)) for s in streams if s]
    if len(tables) == 1:
        return tables[0]
    try:
        return pa.concat_tables(tables)
    except pa.ArrowInvalid as e:
        raise SchemaError(
            "endpoint schemas do not match",
            details={"endpoints": len(tables)},
        ) from e


async def ticket_to_table(
    client: "FlightSqlClient",
    ticket: Ticket,
    *,
    ctx: Optional[OperationContext] = None,
) -> pa.Table:
    buf = await _collect(client, ticket, ctx)
    if not buf:
        raise ResultError("no data returned from ticket", flight_code="NOT_FOUND")
    return _decode_ipc(bytes(buf))


async def query_to_table(
    client: "FlightSqlClient",
    query: str,
    *,
    transaction_id: Optional[bytes] = None,
    ctx: Optional[OperationContext] = None,
) -> pa.Table:
    """Shortcut for `query` followed by `flight_info_to_table`."""
    info = await client.query(query, transaction_id=transaction_id, ctx=ctx)
    return await flight_info_to_table(client, info, ctx=ctx)


def parameters_from_arrow(data: Union[pa.RecordBatch, pa.Table]) -> ParameterData:
    """
    Encode Arrow data as bind parameters.

    Each row is one parameter set; columns are matched to the statement's
    placeholders by position.
    """
    if isinstance(data, pa.RecordBatch):
        batches = [data]
    elif isinstance(data, pa.Table):
        batches = data.combine_chunks().to_batches()
    else:
        raise TypeError(f"expected pyarrow.RecordBatch or pyarrow.Table, got {type(data).__name__}")

    return ParameterData(
        schema=data.schema.serialize().to_pybytes(),
        data=b"".join(batch.serialize().to_pybytes() for batch in batches),
    )


def schema_from_bytes(data: bytes) -> Optional[pa.Schema]:
    """
    Decode an IPC schema message such as `PreparedStatementResult.dataset_schema`.

    Returns None for empty input (the server did not provide a schema).
    """
    if not data:
        return None
    try:
        return pa.ipc.read_schema(pa.py_buffer(data))
    except (pa.ArrowException, OSError) as e:
        raise SchemaError("failed to decode Arrow schema", details={"bytes": len(data)}) from e


__all__ = [
    "iterate_results",
    "flight_info_to_table",
    "ticket_to_table",
    "query_to_table",
    "parameters_from_arrow",
    "schema_from_bytes",
]
