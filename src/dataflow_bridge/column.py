"""Host-facing read-only column accessor."""

from __future__ import annotations

import threading
from typing import Any, Callable

from dataflow_bridge.errors import (
    DTypeMismatchError,
    HandleReleasedError,
    InvariantViolation,
    OutOfBoundsError,
)
from dataflow_bridge.handles import WeakHandle
from dataflow_bridge.native.column import NativeColumn, Status, millis_to_time, unpack_date
from dataflow_bridge.types import DType, Scalar


def _identity(column: NativeColumn, raw: Any) -> Any:
    return raw


def _uninterned(column: NativeColumn, raw: int) -> str:
    return column.unintern(raw)


def _slot_object(column: NativeColumn, raw: int) -> Any:
    return column.get_object(raw)


# One decoder per storable tag; sentinels have none.
_DECODERS: dict[DType, Callable[[NativeColumn, Any], Any]] = {
    DType.INT64: _identity,
    DType.INT32: _identity,
    DType.INT16: _identity,
    DType.INT8: _identity,
    DType.UINT64: _identity,
    DType.UINT32: _identity,
    DType.UINT16: _identity,
    DType.UINT8: _identity,
    DType.FLOAT64: _identity,
    DType.FLOAT32: _identity,
    DType.BOOL: lambda column, raw: bool(raw),
    DType.TIME: lambda column, raw: millis_to_time(raw),
    DType.DATE: lambda column, raw: unpack_date(raw),
    DType.ENUM: _identity,
    DType.OID: _identity,
    DType.OBJECT: _slot_object,
    DType.F64PAIR: lambda column, raw: tuple(raw),
    DType.USER_FIXED: _slot_object,
    DType.STR: _uninterned,
    DType.USER_VLEN: _slot_object,
}


class Column:
    """Read accessor over one engine column.

    The column is referenced weakly: it stays readable only while the table
    that produced it is alive. Reads are serialized with processing through
    the owning node's lock.
    """

    def __init__(self, name: str, column: WeakHandle[NativeColumn], lock: threading.RLock) -> None:
        self.name = name
        self._column = column
        self._lock = lock

    def _native(self) -> NativeColumn:
        column = self._column.get()
        if column.destroyed:
            raise HandleReleasedError(f"Column '{self.name}' belongs to a destroyed table")
        if column.dtype.is_sentinel:
            raise InvariantViolation(
                f"Column '{self.name}' reports sentinel type {column.dtype.label}"
            )
        return column

    def size(self) -> int:
        with self._lock:
            return self._native().size()

    def dtype(self) -> DType:
        return self._native().dtype

    def get_dtype(self) -> str:
        """Return the type label, e.g. ``DTYPE_INT64``."""
        return self.dtype().label

    def read(self, idx: int) -> Scalar:
        """Read one cell, decoded according to the column's type."""
        with self._lock:
            column = self._native()
            _check_bounds(idx, column.size())
            return _read_cell(column, idx)

    def _read_typed(self, idx: int, expected: DType) -> Any:
        dtype = self.dtype()
        if dtype is not expected:
            raise DTypeMismatchError(
                f"Column '{self.name}' is {dtype.label}, not {expected.label}"
            )
        return self.read(idx).value

    # Width-specific accessors; each returns None for an absent cell.

    def get_u32(self, idx: int) -> int | None:
        return self._read_typed(idx, DType.UINT32)

    def get_u64(self, idx: int) -> int | None:
        return self._read_typed(idx, DType.UINT64)

    def get_i32(self, idx: int) -> int | None:
        return self._read_typed(idx, DType.INT32)

    def get_i64(self, idx: int) -> int | None:
        return self._read_typed(idx, DType.INT64)

    def get_f32(self, idx: int) -> float | None:
        return self._read_typed(idx, DType.FLOAT32)

    def get_f64(self, idx: int) -> float | None:
        return self._read_typed(idx, DType.FLOAT64)

    def to_list(self) -> list[Any]:
        """Return every value in row order, None for absent cells."""
        with self._lock:
            column = self._native()
            return [_read_cell(column, i).value for i in range(column.size())]

    def vocab_strings(self) -> list[str]:
        """Return a STR column's interned strings in interning order."""
        with self._lock:
            column = self._native()
            if column.dtype is not DType.STR:
                raise DTypeMismatchError(f"Column '{self.name}' is {column.dtype.label}, not DTYPE_STR")
            return column.vocab.strings()

    def raw_data(self) -> bytes:
        """Return a copy of the packed element bytes for the column's rows."""
        with self._lock:
            return bytes(self._native().raw_data())

    def raw_status(self) -> bytes:
        """Return a copy of the per-row status bytes."""
        with self._lock:
            return bytes(self._native().raw_status())

    def __len__(self) -> int:
        return self.size()

    def __repr__(self) -> str:
        try:
            return f"Column({self.name!r}, {self.get_dtype()}, size={self.size()})"
        except HandleReleasedError:
            return f"Column({self.name!r}, released)"


def _check_bounds(idx: int, size: int) -> None:
    if isinstance(idx, bool) or not isinstance(idx, int):
        raise TypeError(f"Column index must be an int, got {type(idx).__name__}")
    if idx < 0 or idx >= size:
        raise OutOfBoundsError(idx, size)


def _read_cell(column: NativeColumn, idx: int) -> Scalar:
    dtype = column.dtype
    if column.get_nth_status(idx) is not Status.VALID:
        return Scalar.absent(dtype)
    decoder = _DECODERS.get(dtype)
    if decoder is None:
        raise InvariantViolation(f"No reader for {dtype.label}")
    return Scalar(dtype=dtype, value=decoder(column, column.get_nth(idx)))
