"""Host-facing schema snapshot."""

from __future__ import annotations

from typing import Iterator, Sequence

from dataflow_bridge.errors import ColumnNotFoundError, ConstructionError
from dataflow_bridge.handles import UniqueHandle
from dataflow_bridge.native.schema import TableSchema
from dataflow_bridge.types import DType


class Schema:
    """Ordered (name, dtype) pairs describing a table's columns.

    A schema is a snapshot: it owns its own copy of the engine schema, so it
    does not follow later changes to the table it came from.
    """

    def __init__(self, schema: UniqueHandle[TableSchema]) -> None:
        self._schema = schema

    @classmethod
    def from_native(cls, schema: TableSchema) -> Schema:
        return cls(UniqueHandle(schema.copy()))

    @classmethod
    def from_pairs(cls, names: Sequence[str], types: Sequence[DType]) -> Schema:
        """Build a schema from parallel name and type sequences.

        Raises:
            ConstructionError: If the lengths differ, a name repeats or a type
                is a sentinel.
        """
        validate_columns(names, types)
        return cls(UniqueHandle(TableSchema(names, types)))

    @property
    def native(self) -> TableSchema:
        return self._schema.get()

    def columns(self) -> list[str]:
        return self._schema.get().columns()

    def types(self) -> list[DType]:
        return self._schema.get().types()

    def dtype_of(self, name: str) -> DType:
        schema = self._schema.get()
        if not schema.has_column(name):
            raise ColumnNotFoundError(name)
        return schema.get_dtype(name)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self._schema.get().has_column(name)

    def __iter__(self) -> Iterator[tuple[str, DType]]:
        return iter(zip(self.columns(), self.types()))

    def __len__(self) -> int:
        return len(self._schema.get())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Schema):
            return NotImplemented
        return self.columns() == other.columns() and self.types() == other.types()

    def __repr__(self) -> str:
        pairs = ", ".join(f"{name}: {dtype.name.lower()}" for name, dtype in self)
        return f"Schema({pairs})"


def validate_columns(names: Sequence[str], types: Sequence[DType]) -> None:
    """Check a column configuration, raising ``ConstructionError`` on any defect."""
    if isinstance(names, str):
        raise ConstructionError("Column names must be a sequence of strings, not a string")
    if len(names) != len(types):
        raise ConstructionError(
            f"Got {len(names)} column names but {len(types)} types"
        )
    if not names:
        raise ConstructionError("A table needs at least one column")
    seen: set[str] = set()
    for name, dtype in zip(names, types):
        if not isinstance(name, str) or not name:
            raise ConstructionError(f"Invalid column name {name!r}")
        if name in seen:
            raise ConstructionError(f"Duplicate column name '{name}'")
        seen.add(name)
        if not isinstance(dtype, DType):
            raise ConstructionError(f"Column '{name}' has non-DType type {dtype!r}")
        if dtype.is_sentinel:
            raise ConstructionError(f"Column '{name}' cannot have sentinel type {dtype.label}")
