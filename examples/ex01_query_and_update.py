# SPDX-License-Identifier: Apache-2.0
"""
Flight SQL ex01 - Queries and updates

Demonstrates:
  • query → FlightInfo → Arrow table via the endpoints' tickets
  • execute_update → affected row count
  • Result errors when the server sends nothing back

Run: python -m examples.ex01_query_and_update
"""

import asyncio

import pyarrow as pa

from examples.common.printing import box, print_arrow, print_kv
from flightsql_sdk.mock.mock_flight_transport import (
    MockFlightTransport,
    encode_update_result,
    info_for_tickets,
)
from flightsql_sdk.sql import FlightSqlClient, OperationContext, ResultError, flight_info_to_table


async def main():
    box("Flight SQL ex01 - Queries & Updates")

    transport = MockFlightTransport()
    transport.flight_info = info_for_tickets(b"users-0", b"users-1")
    transport.add_table(b"users-0", pa.table({"id": [1, 2], "name": ["ada", "grace"]}))
    transport.add_table(b"users-1", pa.table({"id": [3], "name": ["linus"]}))

    async with FlightSqlClient(transport) as client:
        ctx = OperationContext.with_timeout(10_000, request_id="ex01")

        info = await client.query("SELECT id, name FROM users", ctx=ctx)
        print_kv({"endpoints": len(info.endpoints)})
        print_arrow(await flight_info_to_table(client, info, ctx=ctx))

        transport.put_results = [encode_update_result(2)]
        result = await client.execute_update("DELETE FROM users WHERE id < 3", ctx=ctx)
        print_kv({"rows deleted": result.record_count})

        transport.put_results = []
        try:
            await client.execute_update("DELETE FROM users")
        except ResultError as e:
            print_kv({"error": e.code, "message": e.message})

    print("\n[lesson] ex01: queries return tickets; rows are fetched per endpoint and decoded once.")


if __name__ == "__main__":
    asyncio.run(main())
