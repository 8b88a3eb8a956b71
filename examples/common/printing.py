# SPDX-License-Identifier: Apache-2.0
"""
Small pretty-print helpers for the example scripts.

Includes:
  • box          - boxed section headers
  • print_kv     - aligned key/value output
  • print_arrow  - an Arrow table as a fixed-width text grid
"""
from __future__ import annotations

import shutil
from typing import Any, List, Mapping, Sequence, Tuple, Union

import pyarrow as pa

__all__ = ["box", "print_kv", "print_arrow"]


def _term_width(default: int = 100) -> int:
    cols = shutil.get_terminal_size((default, 20)).columns
    return max(40, min(cols, 200))


def box(title: str, *, fill: str = "─") -> None:
    width = _term_width()
    title = f" {title.strip()} "
    bar = fill * min(len(title), width - 4)
    print(f"\n┌{bar}┐")
    print(f"│{title}│")
    print(f"└{bar}┘\n")


def print_kv(pairs: Union[Mapping[str, Any], Sequence[Tuple[str, Any]]], *, indent: int = 2) -> None:
    """Print aligned key/value pairs."""
    items = list(pairs.items()) if isinstance(pairs, Mapping) else list(pairs)
    if not items:
        return
    k_width = max(len(str(k)) for k, _ in items)
    for k, v in items:
        print(" " * indent + f"{str(k).rjust(k_width)}: {v}")


def print_arrow(table: pa.Table, *, max_rows: int = 20, max_cell: int = 30) -> None:
    """
    Print the first `max_rows` rows of `table`.

    Cells longer than `max_cell` are cut and marked with "…".
    """
    headers = table.column_names
    rows: List[List[str]] = []
    for record in table.slice(0, max_rows).to_pylist():
        rows.append([_fit(str(record[h]), max_cell) for h in headers])

    widths = [max([len(h)] + [len(r[i]) for r in rows]) for i, h in enumerate(headers)]
    print(" | ".join(h.ljust(widths[i]) for i, h in enumerate(headers)))
    print("-+-".join("-" * w for w in widths))
    for r in rows:
        print(" | ".join(cell.ljust(widths[i]) for i, cell in enumerate(r)))
    if table.num_rows > max_rows:
        print(f"... {table.num_rows - max_rows} more row(s)")


def _fit(cell: str, width: int) -> str:
    return cell if len(cell) <= width else cell[: width - 1] + "…"
