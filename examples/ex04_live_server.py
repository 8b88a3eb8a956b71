# SPDX-License-Identifier: Apache-2.0
"""
Flight SQL ex04 - Talking to a real server

Connects with pyarrow.flight to FLIGHT_SQL_URI (default grpc://localhost:8815),
optionally authenticating with FLIGHT_SQL_USER / FLIGHT_SQL_PASSWORD, then
lists server info, tables and runs a query.

Run: FLIGHT_SQL_URI=grpc://host:port python -m examples.ex04_live_server ["SELECT 1"]
"""

import asyncio
import logging
import os
import sys

from examples.common.printing import box, print_arrow
from flightsql_sdk.sql import SqlInfo, connect, flight_info_to_table, query_to_table


async def main(sql: str):
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
    box("Flight SQL ex04 - Live Server")

    client = await connect(
        username=os.getenv("FLIGHT_SQL_USER"),
        password=os.getenv("FLIGHT_SQL_PASSWORD"),
    )
    async with client:
        await client.transport.wait_for_available(5.0)

        info = await client.get_sql_info(
            [SqlInfo.FLIGHT_SQL_SERVER_NAME, SqlInfo.FLIGHT_SQL_SERVER_VERSION]
        )
        print_arrow(await flight_info_to_table(client, info))

        print()
        print_arrow(await flight_info_to_table(client, await client.get_tables()))

        print()
        print_arrow(await query_to_table(client, sql))


if __name__ == "__main__":
    asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else "SELECT 1"))
