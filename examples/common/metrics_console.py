# SPDX-License-Identifier: Apache-2.0
"""
Console MetricsSink for the examples.

Prints one structured line per observation:

    [OBS] {"component":"flightsql","op":"execute_update","ms":0.412,"ok":true,"code":"OK"}
    [CTR] {"component":"flightsql","name":"updates","value":1}
"""

from __future__ import annotations

import json
import sys
import threading
from typing import Any, Mapping, Optional, TextIO

__all__ = ["ConsoleMetrics"]

_LOCK = threading.Lock()


class ConsoleMetrics:
    """MetricsSink that writes JSON lines to stdout (or `output_file`)."""

    def __init__(self, *, output_file: Optional[TextIO] = None, max_extra_fields: int = 10) -> None:
        self.output_file = output_file or sys.stdout
        self.max_extra_fields = max_extra_fields

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
        payload = {
            "component": component,
            "op": op,
            "ms": round(max(0.0, float(ms)), 3),
            "ok": bool(ok),
            "code": str(code or "OK"),
        }
        safe = self._safe_extra(extra)
        if safe:
            payload["extra"] = safe
        self._write("OBS", payload)

    def counter(
        self,
        *,
        component: str,
        name: str,
        value: int = 1,
        extra: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self._write("CTR", {"component": component, "name": name, "value": int(value)})

    def _write(self, kind: str, payload: Mapping[str, Any]) -> None:
        line = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
        with _LOCK:
            print(f"[{kind}] {line}", file=self.output_file, flush=True)

    def _safe_extra(self, extra: Optional[Mapping[str, Any]]) -> Optional[dict]:
        # scalar values only; keeps label cardinality low
        if not extra:
            return None
        out = {}
        for k, v in sorted(extra.items())[: self.max_extra_fields]:
            if v is None or isinstance(v, (str, int, float, bool)):
                out[k] = v
        return out or None
