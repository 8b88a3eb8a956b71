# flightsql_sdk/core/error_context.py
# SPDX-License-Identifier: Apache-2.0

"""
Debugging context for exceptions that cross the Flight SQL client.

Transport errors (timeouts, auth failures, server-side SQL errors) are
re-raised untouched: same type, same message, same traceback. What the
client adds is a small dict of attributes describing where the failure
happened, stored on the exception object itself:

    try:
        await client.execute_update("UPDATE t SET x = 1")
    except Exception as exc:
        ctx = get_context(exc)
        logger.error("update failed", extra={"operation": ctx.get("operation")})

Two attributes are set:

- `__flightsql_context__` (canonical), and
- `__<component>_context__` (e.g. `__flightsql_arrow_context__`), so a
  debugger session can tell which layer contributed it.

Repeated calls merge; the first `component` recorded is kept.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, MutableMapping, Optional

logger = logging.getLogger(__name__)

_CANONICAL_ATTR = "__flightsql_context__"


def attach_context(
    exc: BaseException,
    component: str,
    **context: Any,
) -> None:
    """
    Attach debugging context to an exception without altering it.

    Avoid passing SQL text, handles, parameter data or tenant identifiers;
    the context is meant to be safe to log.
    """
    try:
        merged: MutableMapping[str, Any] = {}
        existing = getattr(exc, _CANONICAL_ATTR, None)
        if isinstance(existing, Mapping):
            merged.update(existing)

        merged.setdefault("component", component)
        merged.update(context)

        setattr(exc, _CANONICAL_ATTR, merged)
        setattr(exc, f"__{component}_context__", merged)
    except Exception as attachment_error:  # noqa: BLE001
        # Context attachment must never replace the original exception.
        logger.debug(
            "Failed to attach error context to %s: %s",
            type(exc).__name__,
            attachment_error,
            extra={"component": component},
        )


def get_context(
    exc: BaseException,
    *,
    component: Optional[str] = None,
) -> Mapping[str, Any]:
    """
    Return the context attached to `exc`, or an empty dict.

    With `component`, the component-specific attribute is preferred.
    """
    if component:
        ctx = getattr(exc, f"__{component}_context__", None)
        if isinstance(ctx, Mapping):
            return ctx
    ctx = getattr(exc, _CANONICAL_ATTR, None)
    if isinstance(ctx, Mapping):
        return ctx
    return {}


__all__ = [
    "attach_context",
    "get_context",
]
