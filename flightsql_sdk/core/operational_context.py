# flightsql_sdk/core/operational_context.py
# SPDX-License-Identifier: Apache-2.0

"""
Per-call options bag for Flight SQL operations.

Every public operation on `FlightSqlClient` accepts an optional
`OperationContext`. The client never interprets it beyond SIEM-safe
metrics; it is handed to the transport unchanged, which is where deadlines
and headers take effect.

Typical usage
-------------

    from flightsql_sdk.core.operational_context import OperationContext

    ctx = OperationContext.with_timeout(
        5_000,
        request_id="req-123",
        headers={"x-app": "reports"},
    )
    info = await client.query("SELECT 1", ctx=ctx)

Notes
-----
- `deadline_ms` is an absolute epoch timestamp in milliseconds.
- `tenant` may be sensitive; it is only ever recorded as a hash.
- `attrs` is the escape hatch for caller-specific data and is not sent
  to the server.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional


@dataclass
class OperationContext:
    """
    Request-scoped metadata passed through to the transport.

    Fields
    ------
    request_id:
        Correlation identifier; sent as the `x-request-id` header.

    tenant:
        Multi-tenant identifier. Never sent, never logged in clear.

    deadline_ms:
        Absolute epoch milliseconds after which the call should be abandoned.
        The transport converts the remaining budget into its own timeout.

    traceparent:
        W3C traceparent header value, forwarded as-is.

    headers:
        Extra call headers (name -> value) forwarded to the server.

    attrs:
        Free-form attribute bag for callers and middleware.
    """

    request_id: Optional[str] = None
    tenant: Optional[str] = None
    deadline_ms: Optional[int] = None
    traceparent: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)
    attrs: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def with_timeout(cls, timeout_ms: int, **kwargs: Any) -> "OperationContext":
        """Build a context whose deadline is `timeout_ms` from now."""
        return cls(deadline_ms=int(time.time() * 1000) + int(timeout_ms), **kwargs)

    def remaining_ms(self) -> Optional[int]:
        """
        Milliseconds left before the deadline, or None when no deadline is set.
        Never negative.
        """
        if self.deadline_ms is None:
            return None
        now_ms = int(time.time() * 1000)
        return max(0, self.deadline_ms - now_ms)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "request_id": self.request_id,
            "tenant": self.tenant,
            "deadline_ms": self.deadline_ms,
            "traceparent": self.traceparent,
            "headers": dict(self.headers),
            "attrs": dict(self.attrs) if self.attrs is not None else {},
        }

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "OperationContext":
        """
        Create an OperationContext from a wire-level dict.

        Unknown keys are ignored; missing keys default to None / {}.
        """
        if data is None:
            return cls()
        return cls(
            request_id=data.get("request_id"),
            tenant=data.get("tenant"),
            deadline_ms=data.get("deadline_ms"),
            traceparent=data.get("traceparent"),
            headers={str(k): str(v) for k, v in (data.get("headers") or {}).items()},
            attrs=dict(data.get("attrs") or {}),
        )

    def with_updates(
        self,
        *,
        request_id: Optional[str] = None,
        deadline_ms: Optional[int] = None,
        traceparent: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
        attrs: Optional[Mapping[str, Any]] = None,
    ) -> "OperationContext":
        """
        Return a copy with the given fields replaced.

        `headers` and `attrs` are merged into copies of the existing maps.
        """
        new_headers = dict(self.headers)
        new_headers.update(headers or {})
        new_attrs = dict(self.attrs)
        new_attrs.update(attrs or {})
        return replace(
            self,
            request_id=request_id if request_id is not None else self.request_id,
            deadline_ms=deadline_ms if deadline_ms is not None else self.deadline_ms,
            traceparent=traceparent if traceparent is not None else self.traceparent,
            headers=new_headers,
            attrs=new_attrs,
        )


__all__ = [
    "OperationContext",
]
