# SPDX-License-Identifier: Apache-2.0
"""
Flight SQL - catalog and metadata lookups.

Each lookup is a get_flight_info call whose descriptor carries the matching
Any-packed command; optional filters are only set when given.
"""

import pytest

from flightsql_sdk.sql import messages as pb
from flightsql_sdk.wire.envelope import TYPE_URL_PREFIX, parse_any

pytestmark = pytest.mark.asyncio


def _sent(transport, cls):
    env = parse_any(transport.descriptors[-1].cmd)
    assert env.type_url == f"{TYPE_URL_PREFIX}.{cls.DESCRIPTOR.name}"
    return cls.FromString(env.value)


async def test_get_catalogs(client, transport):
    info = await client.get_catalogs()
    assert info is transport.flight_info
    _sent(transport, pb.CommandGetCatalogs)


async def test_get_table_types(client, transport):
    await client.get_table_types()
    _sent(transport, pb.CommandGetTableTypes)


async def test_get_db_schemas_filters(client, transport):
    await client.get_db_schemas()
    cmd = _sent(transport, pb.CommandGetDbSchemas)
    assert not cmd.HasField("catalog")
    assert not cmd.HasField("db_schema_filter_pattern")

    await client.get_db_schemas(catalog="", db_schema_filter_pattern="pub%")
    cmd = _sent(transport, pb.CommandGetDbSchemas)
    assert cmd.HasField("catalog") and cmd.catalog == ""
    assert cmd.db_schema_filter_pattern == "pub%"


async def test_get_tables(client, transport):
    await client.get_tables(
        catalog="main",
        table_name_filter_pattern="user%",
        table_types=["TABLE"],
        include_schema=True,
    )
    cmd = _sent(transport, pb.CommandGetTables)
    assert cmd.catalog == "main"
    assert not cmd.HasField("db_schema_filter_pattern")
    assert cmd.table_name_filter_pattern == "user%"
    assert list(cmd.table_types) == ["TABLE"]
    assert cmd.include_schema is True


async def test_get_tables_defaults(client, transport):
    await client.get_tables()
    cmd = _sent(transport, pb.CommandGetTables)
    assert list(cmd.table_types) == []
    assert cmd.include_schema is False


@pytest.mark.parametrize(
    "method,cls",
    [
        ("get_primary_keys", pb.CommandGetPrimaryKeys),
        ("get_exported_keys", pb.CommandGetExportedKeys),
        ("get_imported_keys", pb.CommandGetImportedKeys),
    ],
)
async def test_table_reference_lookups(client, transport, method, cls):
    await getattr(client, method)("orders", db_schema="sales")
    cmd = _sent(transport, cls)
    assert cmd.table == "orders"
    assert cmd.db_schema == "sales"
    assert not cmd.HasField("catalog")


async def test_get_cross_reference(client, transport):
    await client.get_cross_reference("customers", "orders", fk_db_schema="sales")
    cmd = _sent(transport, pb.CommandGetCrossReference)
    assert cmd.pk_table == "customers"
    assert cmd.fk_table == "orders"
    assert cmd.fk_db_schema == "sales"
    assert not cmd.HasField("pk_db_schema")


async def test_get_sql_info(client, transport):
    await client.get_sql_info([pb.SqlInfo.FLIGHT_SQL_SERVER_NAME, pb.SqlInfo.FLIGHT_SQL_SERVER_VERSION])
    assert list(_sent(transport, pb.CommandGetSqlInfo).info) == [0, 1]

    await client.get_sql_info()
    assert list(_sent(transport, pb.CommandGetSqlInfo).info) == []


async def test_get_xdbc_type_info(client, transport):
    await client.get_xdbc_type_info()
    assert not _sent(transport, pb.CommandGetXdbcTypeInfo).HasField("data_type")

    await client.get_xdbc_type_info(data_type=4)
    assert _sent(transport, pb.CommandGetXdbcTypeInfo).data_type == 4


async def test_metadata_ops_are_recorded(client, transport, metrics):
    await client.get_catalogs()
    await client.get_tables(include_schema=True)
    ops = [o["op"] for o in metrics.observations]
    assert ops == ["get_catalogs", "get_tables"]
    assert metrics.observations[-1]["extra"] == {"include_schema": True}
