"""Engine-side schema: ordered column names with their type tags."""

from __future__ import annotations

from typing import Iterable

from dataflow_bridge.types import DType


class TableSchema:
    """Ordered (name, dtype) pairs with name lookup."""

    def __init__(self, columns: Iterable[str], types: Iterable[DType]) -> None:
        self._columns = list(columns)
        self._types = list(types)
        if len(self._columns) != len(self._types):
            raise ValueError(
                f"Schema has {len(self._columns)} columns but {len(self._types)} types"
            )
        self._positions: dict[str, int] = {}
        for i, name in enumerate(self._columns):
            if name in self._positions:
                raise ValueError(f"Duplicate column '{name}' in schema")
            self._positions[name] = i

    def columns(self) -> list[str]:
        return list(self._columns)

    def types(self) -> list[DType]:
        return list(self._types)

    def has_column(self, name: str) -> bool:
        return name in self._positions

    def get_colidx(self, name: str) -> int:
        if name not in self._positions:
            raise KeyError(f"Column '{name}' not in schema")
        return self._positions[name]

    def get_dtype(self, name: str) -> DType:
        return self._types[self.get_colidx(name)]

    def add_column(self, name: str, dtype: DType) -> None:
        if name in self._positions:
            raise ValueError(f"Duplicate column '{name}' in schema")
        self._positions[name] = len(self._columns)
        self._columns.append(name)
        self._types.append(dtype)

    def copy(self) -> TableSchema:
        return TableSchema(self._columns, self._types)

    def __len__(self) -> int:
        return len(self._columns)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TableSchema):
            return NotImplemented
        return self._columns == other._columns and self._types == other._types

    def __repr__(self) -> str:
        pairs = ", ".join(f"{n}: {t.name.lower()}" for n, t in zip(self._columns, self._types))
        return f"TableSchema({pairs})"
