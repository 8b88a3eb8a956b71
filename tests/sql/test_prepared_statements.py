# SPDX-License-Identifier: Apache-2.0
"""
Flight SQL - prepared statement lifecycle.

Covers:
  • create → CreatePreparedStatement action, Any-packed request and result
  • Missing/empty result and missing handle raise ResultError
  • close → ClosePreparedStatement action, results drained and ignored
  • execute query/update by handle
  • bind_parameters: header/body carried on the put message, replacement
    handle returned when present, lenient when absent or empty
"""

import pyarrow as pa
import pytest

from flightsql_sdk.mock.mock_flight_transport import (
    encode_bind_result,
    encode_prepared_statement,
    encode_update_result,
)
from flightsql_sdk.sql import messages as pb
from flightsql_sdk.sql.results import parameters_from_arrow, schema_from_bytes
from flightsql_sdk.sql.sql_base import (
    BindParametersResult,
    InvalidHandle,
    ParameterData,
    PreparedStatementResult,
    ResultError,
    UpdateResult,
)
from flightsql_sdk.sql.transport import ActionResult, PutResult
from flightsql_sdk.wire.envelope import pack_any, type_url_for, unpack_any

pytestmark = pytest.mark.asyncio

PARAMS = ParameterData(schema=b"schema-bytes", data=b"batch-bytes")


async def test_create_prepared_statement(client, transport):
    dataset = pa.schema([("id", pa.int64())])
    transport.action_results[pb.ACTION_CREATE_PREPARED_STATEMENT] = [
        encode_prepared_statement(
            b"stmt-1",
            dataset_schema=dataset.serialize().to_pybytes(),
        )
    ]

    result = await client.create_prepared_statement("SELECT id FROM users WHERE id = ?")

    assert isinstance(result, PreparedStatementResult)
    assert result.handle == b"stmt-1"
    assert result.parameter_schema == b""
    assert schema_from_bytes(result.dataset_schema).equals(dataset)
    assert schema_from_bytes(result.parameter_schema) is None

    action = transport.actions[0]
    assert action.type == "CreatePreparedStatement"
    request = pb.ActionCreatePreparedStatementRequest.FromString(unpack_any(action.body))
    assert request.query == "SELECT id FROM users WHERE id = ?"
    assert not request.HasField("transaction_id")


async def test_create_prepared_statement_in_transaction(client, transport):
    transport.action_results[pb.ACTION_CREATE_PREPARED_STATEMENT] = [encode_prepared_statement(b"h")]
    await client.create_prepared_statement("SELECT 1", transaction_id=b"tx")
    request = pb.ActionCreatePreparedStatementRequest.FromString(unpack_any(transport.actions[0].body))
    assert request.transaction_id == b"tx"


async def test_create_prepared_statement_drains_extra_results(client, transport):
    transport.action_results[pb.ACTION_CREATE_PREPARED_STATEMENT] = [
        encode_prepared_statement(b"first"),
        encode_prepared_statement(b"second"),
    ]
    result = await client.create_prepared_statement("SELECT 1")
    assert result.handle == b"first"


@pytest.mark.parametrize("results", [[], [ActionResult(body=b"")]])
async def test_create_prepared_statement_no_result(client, transport, results):
    transport.action_results[pb.ACTION_CREATE_PREPARED_STATEMENT] = results
    with pytest.raises(ResultError, match="^no result returned from create prepared statement$"):
        await client.create_prepared_statement("SELECT 1")


async def test_create_prepared_statement_missing_handle(client, transport):
    transport.action_results[pb.ACTION_CREATE_PREPARED_STATEMENT] = [encode_prepared_statement(b"")]
    with pytest.raises(ResultError, match="^create prepared statement result missing handle$"):
        await client.create_prepared_statement("SELECT 1")


async def test_create_prepared_statement_malformed(client, transport):
    transport.action_results[pb.ACTION_CREATE_PREPARED_STATEMENT] = [ActionResult(body=b"\x12\x09short")]
    with pytest.raises(ResultError, match="^malformed response from create_prepared_statement$"):
        await client.create_prepared_statement("SELECT 1")


async def test_close_prepared_statement(client, transport):
    transport.action_results[pb.ACTION_CLOSE_PREPARED_STATEMENT] = [ActionResult(body=b"ignored")]

    assert await client.close_prepared_statement(b"stmt-1") is None

    action = transport.actions[0]
    assert action.type == "ClosePreparedStatement"
    request = pb.ActionClosePreparedStatementRequest.FromString(unpack_any(action.body))
    assert request.prepared_statement_handle == b"stmt-1"


async def test_close_prepared_statement_requires_handle(client, transport):
    with pytest.raises(InvalidHandle, match="^prepared statement handle cannot be empty$"):
        await client.close_prepared_statement(b"")
    assert transport.actions == []


async def test_execute_prepared_query(client, transport):
    await client.execute_prepared_query(b"stmt-1")
    cmd = pb.CommandPreparedStatementQuery.FromString(unpack_any(transport.descriptors[0].cmd))
    assert cmd.prepared_statement_handle == b"stmt-1"


async def test_execute_prepared_update(client, transport):
    transport.put_results = [encode_update_result(5)]

    result = await client.execute_prepared_update(b"stmt-2")

    assert result == UpdateResult(record_count=5)
    cmd = pb.CommandPreparedStatementUpdate.FromString(unpack_any(transport.written[0].descriptor.cmd))
    assert cmd.prepared_statement_handle == b"stmt-2"


async def test_execute_prepared_update_errors(client, transport):
    with pytest.raises(ResultError, match="^no result returned from prepared update$"):
        await client.execute_prepared_update(b"h")
    transport.put_results = [PutResult()]
    with pytest.raises(ResultError, match="^prepared update result missing app metadata$"):
        await client.execute_prepared_update(b"h")


async def test_bind_parameters_sends_data(client, transport):
    transport.put_results = [encode_bind_result(b"stmt-1b")]

    result = await client.bind_parameters(b"stmt-1", PARAMS)

    assert result == BindParametersResult(handle=b"stmt-1b")
    sent = transport.written[0]
    assert sent.data_header == b"schema-bytes"
    assert sent.data_body == b"batch-bytes"
    cmd = pb.CommandPreparedStatementQuery.FromString(unpack_any(sent.descriptor.cmd))
    assert cmd.prepared_statement_handle == b"stmt-1"


async def test_bind_parameters_from_arrow(client, transport):
    params = parameters_from_arrow(pa.record_batch({"id": pa.array([42], type=pa.int64())}))
    result = await client.bind_parameters(b"stmt-1", params)
    assert result.handle is None
    assert transport.written[0].data_header == params.schema


@pytest.mark.parametrize(
    "put_results",
    [
        [],
        [PutResult(app_metadata=b"")],
        [PutResult(app_metadata=pack_any(type_url_for("DoPutPreparedStatementResult"), b""))],
        [encode_bind_result(None)],
        [encode_bind_result(b"")],
    ],
    ids=["no-result", "no-metadata", "empty-any", "handle-unset", "handle-empty"],
)
async def test_bind_parameters_lenient(client, transport, put_results):
    transport.put_results = put_results
    result = await client.bind_parameters(b"stmt-1", PARAMS)
    assert result == BindParametersResult()
    assert result.handle is None


async def test_bind_parameters_malformed_envelope(client, transport):
    transport.put_results = [PutResult(app_metadata=b"\x12\x10nope")]
    with pytest.raises(ResultError, match="^malformed response from bind_parameters$"):
        await client.bind_parameters(b"stmt-1", PARAMS)
