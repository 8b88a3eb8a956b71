# SPDX-License-Identifier: Apache-2.0
"""
Flight SQL - wire-level envelopes & routing.

Covers:
  • flightsql.<op> routed to the client with ctx translated to OperationContext
  • Bytes carried as *_b64 in args and results
  • FlightSqlError → normalized error envelope with code/flight_code/details
  • Unknown op → NOT_SUPPORTED; bad args → INVALID_PARAMETER
  • Unexpected exception → UNAVAILABLE
"""

import base64
import json

import pytest

from flightsql_sdk.mock.mock_flight_transport import (
    encode_bind_result,
    encode_prepared_statement,
    encode_update_result,
    info_for_tickets,
)
from flightsql_sdk.sql import messages as pb
from flightsql_sdk.sql.sql_base import WireFlightSqlHandler
from flightsql_sdk.wire.envelope import unpack_any

pytestmark = pytest.mark.asyncio


def b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


@pytest.fixture
def handler(client):
    return WireFlightSqlHandler(client)


async def test_execute_update_success(handler, transport):
    transport.put_results = [encode_update_result(4)]

    res = await handler.handle(
        {
            "op": "flightsql.execute_update",
            "ctx": {"request_id": "req-1", "tenant": "t", "unknown": "ignored"},
            "args": {"query": "DELETE FROM t"},
        }
    )

    assert res["ok"] is True
    assert res["code"] == "OK"
    assert isinstance(res["ms"], float)
    assert res["result"] == {"record_count": 4}
    ctx = transport.calls[0][1]
    assert ctx.request_id == "req-1"
    assert ctx.tenant == "t"
    json.dumps(res)


async def test_query_result_bytes_are_base64(handler, transport):
    transport.flight_info = info_for_tickets(b"tk")

    res = await handler.handle({"op": "flightsql.query", "args": {"query": "SELECT 1"}})

    assert res["ok"] is True
    endpoint = res["result"]["endpoints"][0]
    assert endpoint["ticket"] == {"ticket_b64": b64(b"tk")}
    assert res["result"]["schema_b64"] == ""
    json.dumps(res)


async def test_prepared_statement_round_trip(handler, transport):
    transport.action_results[pb.ACTION_CREATE_PREPARED_STATEMENT] = [encode_prepared_statement(b"h1")]
    transport.put_results = [encode_bind_result(b"h2")]

    created = await handler.handle(
        {"op": "flightsql.create_prepared_statement", "args": {"query": "SELECT ?"}}
    )
    assert created["result"]["handle_b64"] == b64(b"h1")

    bound = await handler.handle(
        {
            "op": "flightsql.bind_parameters",
            "args": {
                "handle_b64": created["result"]["handle_b64"],
                "params": {"schema_b64": b64(b"S"), "data_b64": b64(b"D")},
            },
        }
    )
    assert bound["ok"] is True
    assert bound["result"] == {"handle_b64": b64(b"h2")}
    assert transport.written[0].data_header == b"S"
    assert transport.written[0].data_body == b"D"


async def test_end_transaction_by_name(handler, transport):
    res = await handler.handle(
        {
            "op": "flightsql.end_transaction",
            "args": {"transaction_id_b64": b64(b"tx"), "action": "rollback"},
        }
    )
    assert res == {"ok": True, "code": "OK", "ms": res["ms"], "result": None}
    request = pb.ActionEndTransactionRequest.FromString(unpack_any(transport.actions[0].body))
    assert request.action == pb.EndTransaction.ROLLBACK


async def test_validation_error_envelope(handler, transport):
    res = await handler.handle({"op": "flightsql.query", "args": {"query": ""}})
    assert res["ok"] is False
    assert res["code"] == "INVALID_QUERY"
    assert res["error"] == "InvalidQuery"
    assert res["message"] == "query cannot be empty"
    assert res["flight_code"] == "INVALID_ARGUMENT"
    assert transport.calls == []


async def test_result_error_envelope(handler, transport):
    res = await handler.handle({"op": "flightsql.execute_update", "args": {"query": "UPDATE t SET x = 1"}})
    assert res["ok"] is False
    assert res["code"] == "RESULT_ERROR"
    assert res["message"] == "no result returned from update"


async def test_unknown_op(handler):
    res = await handler.handle({"op": "flightsql.drop_everything", "args": {}})
    assert res["ok"] is False
    assert res["code"] == "NOT_SUPPORTED"
    assert res["error"] == "NotSupported"


async def test_foreign_prefix_not_supported(handler):
    res = await handler.handle({"op": "vector.query", "args": {}})
    assert res["code"] == "NOT_SUPPORTED"


async def test_missing_op(handler):
    res = await handler.handle({"args": {}})
    assert res["code"] == "INVALID_PARAMETER"


async def test_bad_arguments(handler, transport):
    res = await handler.handle({"op": "flightsql.query", "args": {"sql": "SELECT 1"}})
    assert res["ok"] is False
    assert res["code"] == "INVALID_PARAMETER"
    assert transport.calls == []


async def test_unexpected_exception_maps_to_unavailable(handler, transport):
    transport.errors["get_flight_info"] = RuntimeError("socket closed")
    res = await handler.handle({"op": "flightsql.get_catalogs"})
    assert res["ok"] is False
    assert res["code"] == "UNAVAILABLE"
    assert res["error"] == "RuntimeError"
    assert res["message"] == "socket closed"


async def test_wire_helpers_stay_private():
    from flightsql_sdk.sql import sql_base

    assert [name for name in sql_base.__all__ if name.startswith("_")] == []
    assert "WireFlightSqlHandler" in sql_base.__all__
