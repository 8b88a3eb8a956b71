# SPDX-License-Identifier: Apache-2.0
"""
Flight SQL ex03 - Transactions, metrics and the JSON wire handler

Demonstrates:
  • begin_transaction / execute_update in the transaction / rollback
  • SIEM-safe metrics lines (tenant hashed)
  • The same operations through WireFlightSqlHandler envelopes

Run: python -m examples.ex03_transactions_and_wire
"""

import asyncio
import json

from examples.common.metrics_console import ConsoleMetrics
from examples.common.printing import box
from flightsql_sdk.mock.mock_flight_transport import (
    MockFlightTransport,
    encode_transaction,
    encode_update_result,
)
from flightsql_sdk.sql import FlightSqlClient, OperationContext, WireFlightSqlHandler
from flightsql_sdk.sql.messages import ACTION_BEGIN_TRANSACTION


async def main():
    box("Flight SQL ex03 - Transactions & Wire")

    transport = MockFlightTransport()
    transport.action_results[ACTION_BEGIN_TRANSACTION] = [encode_transaction(b"tx-42")]
    transport.put_results = [encode_update_result(10)]
    client = FlightSqlClient(transport, metrics=ConsoleMetrics())
    ctx = OperationContext(tenant="acme", request_id="ex03")

    txn = await client.begin_transaction(ctx=ctx)
    await client.execute_update(
        "UPDATE accounts SET balance = 0",
        transaction_id=txn.transaction_id,
        ctx=ctx,
    )
    await client.rollback(txn.transaction_id, ctx=ctx)

    box("wire envelopes")
    handler = WireFlightSqlHandler(client)
    for envelope in (
        {"op": "flightsql.begin_transaction", "ctx": {"tenant": "acme"}},
        {"op": "flightsql.execute_update", "args": {"query": ""}},
        {"op": "flightsql.truncate_everything"},
    ):
        print(json.dumps(await handler.handle(envelope)))

    print("\n[lesson] ex03: the client keeps no transaction state; pass the id to each call.")


if __name__ == "__main__":
    asyncio.run(main())
