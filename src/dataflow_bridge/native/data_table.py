"""Materialized columnar storage backing a computation node."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from dataflow_bridge.handles import SharedHandle
from dataflow_bridge.native.column import NativeColumn
from dataflow_bridge.native.schema import TableSchema
from dataflow_bridge.types import DType


class DataTable:
    """A schema plus one shared column per schema entry, all the same length."""

    # Widest a rendered cell may be before it is truncated
    MAX_CELL_WIDTH = 40

    def __init__(self, schema: TableSchema, capacity: int | None = None) -> None:
        self._schema = schema.copy()
        self._capacity = capacity
        self._columns: dict[str, SharedHandle[NativeColumn]] = {}
        self._num_rows = 0
        self._initialized = False

    def init(self) -> None:
        """Allocate one column per schema entry."""
        if self._initialized:
            return
        for name, dtype in zip(self._schema.columns(), self._schema.types()):
            self._columns[name] = SharedHandle.make(NativeColumn(dtype, self._capacity))
        self._initialized = True

    def get_schema(self) -> TableSchema:
        return self._schema

    def num_rows(self) -> int:
        return self._num_rows

    size = num_rows

    def extend(self, num_rows: int) -> None:
        """Grow every column to ``num_rows`` rows."""
        if num_rows <= self._num_rows:
            return
        for handle in self._columns.values():
            handle.get().extend(num_rows)
        self._num_rows = num_rows

    def set_size(self, num_rows: int) -> None:
        for handle in self._columns.values():
            handle.get().set_size(num_rows)
        self._num_rows = num_rows

    def get_column(self, name: str) -> NativeColumn:
        return self.get_column_sptr(name).get()

    def get_column_sptr(self, name: str) -> SharedHandle[NativeColumn]:
        """Return this table's own handle to the column (not a new holder)."""
        handle = self._columns.get(name)
        if handle is None:
            raise KeyError(f"Column '{name}' not in data table")
        return handle

    def add_column(self, name: str, dtype: DType) -> NativeColumn:
        """Append a column sized to the current row count."""
        self._schema.add_column(name, dtype)
        column = NativeColumn(dtype, self._capacity)
        column.extend(self._num_rows)
        self._columns[name] = SharedHandle.make(column)
        return column

    def clone_column(self, existing: str, new: str) -> NativeColumn:
        """Add ``new`` as a copy of ``existing``."""
        source = self.get_column(existing)
        column = self.add_column(new, source.dtype)
        for row in range(self._num_rows):
            value = source.get_value(row)
            if value is not None:
                column.set_nth(row, value)
        return column

    def copy_row(self, src_row: int, dst_row: int) -> None:
        for handle in self._columns.values():
            column = handle.get()
            value = column.get_value(src_row)
            if value is None:
                column.clear_nth(dst_row)
            else:
                column.set_nth(dst_row, value)

    def get_row(self, row: int) -> dict[str, Any]:
        return {name: handle.get().get_value(row) for name, handle in self._columns.items()}

    def pprint(self, num_rows: int | None = None) -> str:
        """Render up to ``num_rows`` rows as an aligned text table."""
        names = self._schema.columns()
        shown = self._num_rows if num_rows is None else max(0, min(num_rows, self._num_rows))
        rows = [[_format_cell(self.get_column(n).get_value(r)) for n in names] for r in range(shown)]

        widths = [len(n) for n in names]
        for row in rows:
            for i, cell in enumerate(row):
                widths[i] = max(widths[i], len(cell))
        widths = [min(w, self.MAX_CELL_WIDTH) for w in widths]

        header = " | ".join(n.ljust(w)[:w] for n, w in zip(names, widths))
        lines = [header, "-" * len(header)]
        for row in rows:
            cells = []
            for cell, w in zip(row, widths):
                if len(cell) > w:
                    cell = cell[: w - 3] + "..."
                cells.append(cell.ljust(w))
            lines.append(" | ".join(cells).rstrip())
        noun = "row" if self._num_rows == 1 else "rows"
        lines.append(f"({shown} of {self._num_rows} {noun})")
        return "\n".join(lines)

    def destroy(self) -> None:
        """Release this table's hold on its columns."""
        for handle in self._columns.values():
            handle.release()
        self._columns.clear()
        self._num_rows = 0

    def __repr__(self) -> str:
        return f"DataTable({self._schema!r}, rows={self._num_rows})"


def _format_cell(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
    if isinstance(value, date):
        return value.isoformat()
    return str(value)
