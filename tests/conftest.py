# SPDX-License-Identifier: Apache-2.0
"""
Shared fixtures for the Flight SQL client suites.

Every suite runs against `MockFlightTransport`; nothing touches the network.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

import pyarrow as pa
import pytest

from flightsql_sdk.mock.mock_flight_transport import MockFlightTransport
from flightsql_sdk.sql.sql_base import FlightSqlClient


class RecordingMetrics:
    """MetricsSink that keeps every observation for assertions."""

    def __init__(self) -> None:
        self.observations: List[Dict[str, Any]] = []
        self.counters: List[Dict[str, Any]] = []

    def observe(
        self,
        *,
        component: str,
        op: str,
        ms: float,
        ok: bool,
        code: str = "OK",
        extra: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.observations.append(
            {"component": component, "op": op, "ms": ms, "ok": ok, "code": code, "extra": dict(extra or {})}
        )

    def counter(
        self,
        *,
        component: str,
        name: str,
        value: int = 1,
        extra: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.counters.append({"component": component, "name": name, "value": value})


@pytest.fixture
def transport() -> MockFlightTransport:
    return MockFlightTransport()


@pytest.fixture
def metrics() -> RecordingMetrics:
    return RecordingMetrics()


@pytest.fixture
def client(transport: MockFlightTransport, metrics: RecordingMetrics) -> FlightSqlClient:
    return FlightSqlClient(transport, metrics=metrics)


@pytest.fixture
def users_table() -> pa.Table:
    return pa.table(
        {
            "id": pa.array([1, 2, 3], type=pa.int64()),
            "name": pa.array(["ada", "grace", "linus"]),
        }
    )
