# SPDX-License-Identifier: Apache-2.0
"""
Flight SQL ex02 - Prepared statements

Demonstrates:
  • create_prepared_statement → handle + schemas
  • bind_parameters with Arrow data (and a server-issued replacement handle)
  • execute_prepared_update, then close_prepared_statement

Run: python -m examples.ex02_prepared_statements
"""

import asyncio

import pyarrow as pa

from examples.common.printing import box, print_kv
from flightsql_sdk.mock.mock_flight_transport import (
    MockFlightTransport,
    encode_bind_result,
    encode_prepared_statement,
    encode_update_result,
)
from flightsql_sdk.sql import FlightSqlClient, parameters_from_arrow, schema_from_bytes
from flightsql_sdk.sql.messages import ACTION_CREATE_PREPARED_STATEMENT


async def main():
    box("Flight SQL ex02 - Prepared Statements")

    param_schema = pa.schema([("id", pa.int64())])
    transport = MockFlightTransport()
    transport.action_results[ACTION_CREATE_PREPARED_STATEMENT] = [
        encode_prepared_statement(b"stmt-1", parameter_schema=param_schema.serialize().to_pybytes())
    ]

    client = FlightSqlClient(transport)
    prepared = await client.create_prepared_statement("UPDATE users SET active = false WHERE id = ?")
    print_kv(
        {
            "handle": prepared.handle,
            "parameter schema": schema_from_bytes(prepared.parameter_schema),
            "dataset schema": schema_from_bytes(prepared.dataset_schema),
        }
    )

    transport.put_results = [encode_bind_result(b"stmt-1-bound")]
    params = parameters_from_arrow(pa.record_batch({"id": pa.array([7, 8], type=pa.int64())}))
    bound = await client.bind_parameters(prepared.handle, params)
    handle = bound.handle or prepared.handle
    print_kv({"handle after bind": handle})

    transport.put_results = [encode_update_result(2)]
    result = await client.execute_prepared_update(handle)
    print_kv({"rows updated": result.record_count})

    await client.close_prepared_statement(handle)
    print_kv({"actions sent": [a.type for a in transport.actions]})

    print("\n[lesson] ex02: always continue with the handle bind_parameters returns, if any.")


if __name__ == "__main__":
    asyncio.run(main())
