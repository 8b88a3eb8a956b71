# SPDX-License-Identifier: Apache-2.0
"""
Core - OperationContext and error context attachment.
"""

from flightsql_sdk.core.error_context import attach_context, get_context
from flightsql_sdk.core.operational_context import OperationContext


def test_with_timeout_sets_future_deadline():
    ctx = OperationContext.with_timeout(10_000, request_id="r")
    assert ctx.request_id == "r"
    assert 9_000 <= ctx.remaining_ms() <= 10_000


def test_remaining_ms_never_negative():
    assert OperationContext(deadline_ms=1).remaining_ms() == 0
    assert OperationContext().remaining_ms() is None


def test_from_dict_ignores_unknown_keys():
    ctx = OperationContext.from_dict(
        {"request_id": "r", "headers": {"a": 1}, "surprise": True}
    )
    assert ctx.request_id == "r"
    assert ctx.headers == {"a": "1"}
    assert ctx.attrs == {}
    assert OperationContext.from_dict(None) == OperationContext()


def test_to_dict_round_trip():
    ctx = OperationContext(request_id="r", tenant="t", headers={"h": "v"}, attrs={"k": 1})
    assert OperationContext.from_dict(ctx.to_dict()) == ctx


def test_with_updates_merges_maps():
    base = OperationContext(request_id="a", headers={"x": "1"}, attrs={"k": 1})
    updated = base.with_updates(request_id="b", headers={"y": "2"}, attrs={"j": 2})
    assert updated.request_id == "b"
    assert updated.headers == {"x": "1", "y": "2"}
    assert updated.attrs == {"k": 1, "j": 2}
    assert base.headers == {"x": "1"}


def test_attach_context_merges_and_keeps_first_component():
    exc = RuntimeError("boom")
    attach_context(exc, "flightsql", operation="query")
    attach_context(exc, "flightsql_arrow", location="grpc://x")

    ctx = get_context(exc)
    assert ctx["component"] == "flightsql"
    assert ctx["operation"] == "query"
    assert ctx["location"] == "grpc://x"
    assert get_context(exc, component="flightsql_arrow")["location"] == "grpc://x"
    assert str(exc) == "boom"


def test_get_context_missing():
    assert get_context(ValueError()) == {}


def test_attach_context_never_raises():
    class Frozen(Exception):
        __slots__ = ()

        def __setattr__(self, name, value):
            raise AttributeError(name)

    exc = Frozen()
    attach_context(exc, "flightsql", operation="query")
    assert get_context(exc) == {}
