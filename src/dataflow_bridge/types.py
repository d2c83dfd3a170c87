"""Value type tags shared by the engine and the bridge."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from dataflow_bridge.errors import InvariantViolation


class DType(Enum):
    """Closed set of column storage kinds, numbered as the engine numbers them."""

    NONE = 0
    INT64 = 1
    INT32 = 2
    INT16 = 3
    INT8 = 4
    UINT64 = 5
    UINT32 = 6
    UINT16 = 7
    UINT8 = 8
    FLOAT64 = 9
    FLOAT32 = 10
    BOOL = 11
    TIME = 12
    DATE = 13
    ENUM = 14
    OID = 15
    OBJECT = 16
    F64PAIR = 17
    USER_FIXED = 18
    STR = 19
    USER_VLEN = 20
    LAST_VLEN = 21
    LAST = 22

    @property
    def label(self) -> str:
        """Return the host-visible label, e.g. ``DTYPE_INT64``."""
        return f"DTYPE_{self.name}"

    @property
    def is_sentinel(self) -> bool:
        """Return whether this tag is a non-data marker."""
        return self in _SENTINELS

    @property
    def is_integer(self) -> bool:
        return self in INTEGER_DTYPES

    @property
    def is_float(self) -> bool:
        return self in (DType.FLOAT64, DType.FLOAT32)

    @property
    def size_bytes(self) -> int:
        """Return the storage width of one element of this type."""
        if self.is_sentinel:
            raise InvariantViolation(f"{self.label} has no storage width")
        return _SIZES[self]

    @property
    def struct_format(self) -> str:
        """Return the little-endian struct format for one element."""
        if self.is_sentinel:
            raise InvariantViolation(f"{self.label} has no storage format")
        return _FORMATS[self]

    @classmethod
    def from_label(cls, label: str) -> DType:
        """Look up a tag by name, accepting ``int64``, ``INT64`` or ``DTYPE_INT64``."""
        key = label.strip().upper()
        if key.startswith("DTYPE_"):
            key = key[len("DTYPE_"):]
        key = _ALIASES.get(key, key)
        try:
            return cls[key]
        except KeyError:
            raise KeyError(f"Unknown dtype '{label}'") from None


_SENTINELS = frozenset({DType.NONE, DType.LAST_VLEN, DType.LAST})

INTEGER_DTYPES = frozenset({
    DType.INT64,
    DType.INT32,
    DType.INT16,
    DType.INT8,
    DType.UINT64,
    DType.UINT32,
    DType.UINT16,
    DType.UINT8,
})

# Types whose cells hold a slot index into a side table rather than the value
SLOT_DTYPES = frozenset({DType.OBJECT, DType.USER_FIXED, DType.USER_VLEN})

_SIZES: dict[DType, int] = {
    DType.INT64: 8,
    DType.INT32: 4,
    DType.INT16: 2,
    DType.INT8: 1,
    DType.UINT64: 8,
    DType.UINT32: 4,
    DType.UINT16: 2,
    DType.UINT8: 1,
    DType.FLOAT64: 8,
    DType.FLOAT32: 4,
    DType.BOOL: 1,
    DType.TIME: 8,  # milliseconds since the epoch
    DType.DATE: 4,  # packed (year << 16) | (month << 8) | day
    DType.ENUM: 4,
    DType.OID: 8,
    DType.OBJECT: 8,
    DType.F64PAIR: 16,
    DType.USER_FIXED: 8,
    DType.STR: 8,  # vocab index
    DType.USER_VLEN: 8,
}

_FORMATS: dict[DType, str] = {
    DType.INT64: "<q",
    DType.INT32: "<i",
    DType.INT16: "<h",
    DType.INT8: "<b",
    DType.UINT64: "<Q",
    DType.UINT32: "<I",
    DType.UINT16: "<H",
    DType.UINT8: "<B",
    DType.FLOAT64: "<d",
    DType.FLOAT32: "<f",
    DType.BOOL: "<?",
    DType.TIME: "<q",
    DType.DATE: "<I",
    DType.ENUM: "<I",
    DType.OID: "<Q",
    DType.OBJECT: "<Q",
    DType.F64PAIR: "<dd",
    DType.USER_FIXED: "<Q",
    DType.STR: "<Q",
    DType.USER_VLEN: "<Q",
}

_ALIASES = {
    "STRING": "STR",
    "BOOLEAN": "BOOL",
    "DATETIME": "TIME",
    "FLOAT": "FLOAT64",
    "INTEGER": "INT64",
}

# Mapping from lower-case names to tags, excluding sentinels
DTYPE_NAMES: dict[str, DType] = {
    dt.name.lower(): dt for dt in DType if not dt.is_sentinel
}


@dataclass(frozen=True)
class Scalar:
    """Result of a scalar read: the column's tag plus the decoded value.

    ``value`` is an ``int`` for integer tags, ``float`` for float tags,
    ``bool``, ``datetime.date`` for DATE, ``datetime.datetime`` (UTC) for
    TIME, ``str`` for STR, a ``(float, float)`` pair for F64PAIR and the
    stored object for OBJECT/USER_FIXED/USER_VLEN. Absent cells carry
    ``None`` and ``is_absent`` is True.
    """

    dtype: DType
    value: Any
    is_absent: bool = False

    @classmethod
    def absent(cls, dtype: DType) -> Scalar:
        return cls(dtype=dtype, value=None, is_absent=True)
