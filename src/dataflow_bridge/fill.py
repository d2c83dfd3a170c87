"""Bulk column fills from columnar host buffers.

These kernels copy whole runs of host data (for example Arrow-style buffers
with an LSB-first validity bitmap) into the columns of a ``DataTable`` built
with ``make_data_table``. Rows whose validity bit is clear are skipped and
stay absent.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Sequence

from dataflow_bridge.errors import ConversionError, DTypeMismatchError, OutOfBoundsError
from dataflow_bridge.handles import UniqueHandle
from dataflow_bridge.native.column import NativeColumn, Status
from dataflow_bridge.native.data_table import DataTable
from dataflow_bridge.schema import Schema
from dataflow_bridge.types import SLOT_DTYPES, DType

_EPOCH_DATE = date(1970, 1, 1)


def make_data_table(schema: Schema, capacity: int) -> UniqueHandle[DataTable]:
    """Allocate a data table with ``capacity`` rows, all absent."""
    data_table = DataTable(schema.native, capacity or None)
    data_table.init()
    data_table.extend(capacity)
    return UniqueHandle(data_table)


def table_extend(data_table: UniqueHandle[DataTable], num_rows: int) -> UniqueHandle[DataTable]:
    """Grow ``data_table`` to ``num_rows`` rows and hand it back."""
    data_table.get().extend(num_rows)
    return data_table


def is_not_null(nullmask: bytes, idx: int) -> bool:
    """Return whether bit ``idx`` of an LSB-first validity bitmap is set."""
    return (nullmask[idx >> 3] & (1 << (idx & 7))) != 0


def _check_range(column: NativeColumn, start: int, length: int) -> None:
    if start < 0 or length < 0:
        raise OutOfBoundsError(min(start, length), column.size())
    if start + length > column.size():
        raise OutOfBoundsError(start + length - 1, column.size())


def _check_dtype(column: NativeColumn, expected: DType) -> None:
    if column.dtype is not expected:
        raise DTypeMismatchError(f"Expected a {expected.label} column, got {column.dtype.label}")


def _valid_rows(nullmask: bytes | None, length: int) -> range | list[int]:
    if nullmask is None:
        return range(length)
    return [i for i in range(length) if is_not_null(nullmask, i)]


def fill_column_memcpy(
    column: NativeColumn,
    data: bytes,
    nullmask: bytes | None,
    start: int,
    length: int,
) -> None:
    """Copy ``length`` packed little-endian elements into rows ``start..``."""
    if column.dtype is DType.STR or column.dtype in SLOT_DTYPES:
        raise DTypeMismatchError(f"{column.dtype.label} columns cannot be filled from raw bytes")
    if column.dtype is DType.DATE:
        raise DTypeMismatchError("DTYPE_DATE columns take day counts; use fill_column_date")
    _check_range(column, start, length)
    nbytes = length * column.width
    if len(data) < nbytes:
        raise ConversionError(f"Need {nbytes} bytes for {length} rows, got {len(data)}")
    column.write_raw(start, bytes(data[:nbytes]))

    for i in range(length):
        if nullmask is None or is_not_null(nullmask, i):
            column.set_status(start + i, Status.VALID)
        else:
            column.set_status(start + i, Status.INVALID)


def fill_column_date(
    column: NativeColumn,
    days: Sequence[int],
    nullmask: bytes | None,
    start: int,
    length: int,
) -> None:
    """Fill a DATE column from day counts since 1970-01-01 (UTC calendar)."""
    _check_dtype(column, DType.DATE)
    _check_range(column, start, length)
    for i in _valid_rows(nullmask, length):
        column.set_nth(start + i, _EPOCH_DATE + timedelta(days=days[i]))


def fill_column_time(
    column: NativeColumn,
    millis: Sequence[int],
    nullmask: bytes | None,
    start: int,
    length: int,
) -> None:
    """Fill a TIME column from milliseconds since the epoch."""
    _check_dtype(column, DType.TIME)
    _check_range(column, start, length)
    for i in _valid_rows(nullmask, length):
        column.set_nth(start + i, int(millis[i]))


def fill_column_dict(
    column: NativeColumn,
    dictionary: bytes,
    offsets: Sequence[int],
    indices: Sequence[int],
    nullmask: bytes | None,
    start: int,
    length: int,
) -> None:
    """Fill a STR column from a dictionary-encoded buffer.

    ``dictionary`` holds the UTF-8 entries back to back; entry ``k`` spans
    ``offsets[k]:offsets[k + 1]``. Every entry is interned into the column's
    vocab, even if no row references it, and row ``i`` takes entry
    ``indices[i]``.
    """
    _check_dtype(column, DType.STR)
    _check_range(column, start, length)
    entries = [
        dictionary[offsets[k] : offsets[k + 1]].decode("utf-8")
        for k in range(len(offsets) - 1)
    ]
    for entry in entries:
        column.vocab.get_interned(entry)
    for i in _valid_rows(nullmask, length):
        entry_idx = indices[i]
        if entry_idx < 0 or entry_idx >= len(entries):
            raise OutOfBoundsError(entry_idx, len(entries))
        column.set_nth(start + i, entries[entry_idx])
