"""Typed column storage for the reference engine.

Elements are packed little-endian into a ``bytearray`` using the tag's
struct format, with one status byte per row. STR cells hold an index into
the column's ``Vocab``; OBJECT, USER_FIXED and USER_VLEN cells hold an index
into a per-column object slot list.
"""

from __future__ import annotations

import struct
from datetime import date, datetime, timedelta, timezone
from enum import IntEnum
from typing import Any

from dataflow_bridge.config import get_settings
from dataflow_bridge.errors import InvariantViolation
from dataflow_bridge.native.vocab import Vocab
from dataflow_bridge.types import SLOT_DTYPES, DType

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class Status(IntEnum):
    """Per-cell validity, stored as one byte."""

    INVALID = 0
    VALID = 1
    CLEAR = 2


def pack_date(value: date) -> int:
    """Pack a date as ``(year << 16) | (month0 << 8) | day``."""
    return (value.year << 16) | ((value.month - 1) << 8) | value.day


def unpack_date(packed: int) -> date:
    return date(packed >> 16, ((packed >> 8) & 0xFF) + 1, packed & 0xFF)


def time_to_millis(value: datetime) -> int:
    """Milliseconds since the epoch; naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    delta = value - EPOCH
    return (delta.days * 86_400 + delta.seconds) * 1000 + delta.microseconds // 1000


def millis_to_time(millis: int) -> datetime:
    return EPOCH + timedelta(milliseconds=millis)


class NativeColumn:
    """Contiguous typed vector with per-row status."""

    def __init__(self, dtype: DType, capacity: int | None = None) -> None:
        if dtype.is_sentinel:
            raise InvariantViolation(f"Cannot allocate a column of type {dtype.label}")
        self.dtype = dtype
        self._struct = struct.Struct(dtype.struct_format)
        self._width = self._struct.size
        self._size = 0
        capacity = capacity or get_settings().initial_capacity
        self._data = bytearray(capacity * self._width)
        self._status = bytearray(capacity)
        self._vocab: Vocab | None = Vocab() if dtype is DType.STR else None
        self._objects: list[Any] = []
        self._free_slots: list[int] = []
        self._destroyed = False

    # -- sizing -----------------------------------------------------------

    def size(self) -> int:
        return self._size

    @property
    def capacity(self) -> int:
        return len(self._status)

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def reserve(self, capacity: int) -> None:
        """Grow storage to hold at least ``capacity`` rows."""
        if capacity <= self.capacity:
            return
        new_capacity = max(self.capacity, 1)
        while new_capacity < capacity:
            new_capacity *= get_settings().growth_factor
        self._data.extend(bytes((new_capacity - self.capacity) * self._width))
        self._status.extend(bytes(new_capacity - len(self._status)))

    def extend(self, num_rows: int) -> None:
        """Set the logical size to ``num_rows``; new rows start INVALID."""
        if num_rows > self._size:
            self.reserve(num_rows)
        self.set_size(num_rows)

    def set_size(self, num_rows: int) -> None:
        if num_rows < self._size:
            if self.dtype in SLOT_DTYPES:
                for idx in range(num_rows, self._size):
                    self._free_slot(idx)
            # Dropped rows must not resurface as valid if the column regrows
            start = num_rows * self._width
            self._data[start : self._size * self._width] = bytes((self._size - num_rows) * self._width)
            self._status[num_rows : self._size] = bytes(self._size - num_rows)
        self._size = num_rows

    # -- raw access -------------------------------------------------------

    def get_nth(self, idx: int) -> Any:
        """Return the stored representation at ``idx``.

        Not checked against the logical size: any row within capacity is
        readable, so callers must bounds-check first.
        """
        values = self._struct.unpack_from(self._data, idx * self._width)
        if self.dtype is DType.F64PAIR:
            return values
        return values[0]

    def get_nth_status(self, idx: int) -> Status:
        return Status(self._status[idx])

    def raw_data(self) -> memoryview:
        return memoryview(self._data)[: self._size * self._width].toreadonly()

    def raw_status(self) -> memoryview:
        return memoryview(self._status)[: self._size].toreadonly()

    def write_raw(self, start: int, data: bytes) -> None:
        """Copy packed elements into rows starting at ``start``."""
        offset = start * self._width
        self._data[offset : offset + len(data)] = data

    def set_status(self, idx: int, status: Status) -> None:
        self._status[idx] = status

    def valid_raw_fill(self) -> None:
        """Mark every row valid."""
        self._status[: self._size] = bytes([Status.VALID]) * self._size

    @property
    def width(self) -> int:
        return self._width

    # -- typed access -----------------------------------------------------

    def set_nth(self, idx: int, value: Any) -> None:
        """Encode ``value`` for this column's type and store it as valid."""
        if idx < 0 or idx >= self._size:
            raise IndexError(f"Row {idx} out of range [0, {self._size})")
        if self.dtype in SLOT_DTYPES:
            self._store_object(idx, value)
            return
        try:
            packed = self._struct.pack(*self._encode(value))
        except struct.error as e:
            raise ValueError(f"Cannot store {value!r} in a {self.dtype.label} column: {e}") from None
        offset = idx * self._width
        self._data[offset : offset + self._width] = packed
        self._status[idx] = Status.VALID

    def clear_nth(self, idx: int) -> None:
        """Mark ``idx`` as holding no value."""
        if idx < 0 or idx >= self._size:
            raise IndexError(f"Row {idx} out of range [0, {self._size})")
        if self.dtype in SLOT_DTYPES:
            self._free_slot(idx)
        offset = idx * self._width
        self._data[offset : offset + self._width] = bytes(self._width)
        self._status[idx] = Status.INVALID

    def get_value(self, idx: int) -> Any:
        """Decode the value at ``idx``, None when the cell is not valid."""
        if self._status[idx] != Status.VALID:
            return None
        raw = self.get_nth(idx)
        dtype = self.dtype
        if dtype is DType.STR:
            return self.unintern(raw)
        if dtype is DType.DATE:
            return unpack_date(raw)
        if dtype is DType.TIME:
            return millis_to_time(raw)
        if dtype in SLOT_DTYPES:
            return self.get_object(raw)
        return raw

    def _encode(self, value: Any) -> tuple[Any, ...]:
        dtype = self.dtype
        if dtype is DType.STR:
            return (self.vocab.get_interned(str(value)),)
        if dtype is DType.DATE:
            if isinstance(value, datetime):
                value = value.date()
            return (pack_date(value) if isinstance(value, date) else int(value),)
        if dtype is DType.TIME:
            return (time_to_millis(value) if isinstance(value, datetime) else int(value),)
        if dtype is DType.BOOL:
            return (bool(value),)
        if dtype is DType.F64PAIR:
            first, second = value
            return (float(first), float(second))
        if dtype.is_float:
            return (float(value),)
        if isinstance(value, bool) or not isinstance(value, int):
            value = int(value)
        return (value,)

    # -- side tables ------------------------------------------------------

    @property
    def vocab(self) -> Vocab:
        if self._vocab is None:
            raise TypeError(f"{self.dtype.label} column has no vocab")
        return self._vocab

    def unintern(self, index: int) -> str:
        return self.vocab.unintern(index)

    def get_object(self, slot: int) -> Any:
        return self._objects[slot]

    @property
    def object_slots(self) -> int:
        """Return the number of object slots currently holding a cell's value."""
        return len(self._objects) - len(self._free_slots)

    def _store_object(self, idx: int, value: Any) -> None:
        # A valid cell keeps its slot; otherwise reuse a freed one
        if self._status[idx] == Status.VALID:
            slot = self.get_nth(idx)
        elif self._free_slots:
            slot = self._free_slots.pop()
        else:
            slot = len(self._objects)
            self._objects.append(None)
        self._objects[slot] = value
        self._struct.pack_into(self._data, idx * self._width, slot)
        self._status[idx] = Status.VALID

    def _free_slot(self, idx: int) -> None:
        if self._status[idx] != Status.VALID:
            return
        slot = self.get_nth(idx)
        self._objects[slot] = None
        self._free_slots.append(slot)

    def destroy(self) -> None:
        """Free storage; the column must not be read afterwards."""
        self._data = bytearray()
        self._status = bytearray()
        self._objects = []
        self._free_slots = []
        self._size = 0
        self._destroyed = True

    def __repr__(self) -> str:
        return f"NativeColumn({self.dtype.label}, size={self._size})"
