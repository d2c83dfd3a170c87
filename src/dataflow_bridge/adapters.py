"""Ingestion adapters that turn serialized datasets into a schema and rows.

Each adapter derives a ``Schema`` from its source and returns column data
ready for ``Table.update``. None of the formats has a parser behind it yet,
so every adapter currently raises ``UnimplementedError``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from dataflow_bridge.errors import UnimplementedError
from dataflow_bridge.schema import Schema

ColumnData = dict[str, list[Any]]


class DatasetAdapter(ABC):
    """Converts one serialized format into ``(Schema, column data)``."""

    format_name: str = ""

    @abstractmethod
    def load(self, source: Any) -> tuple[Schema, ColumnData]:
        """Parse ``source`` and return its schema and columns."""

    def _unimplemented(self) -> UnimplementedError:
        return UnimplementedError(f"{self.format_name} ingestion is not implemented")


class CsvAdapter(DatasetAdapter):
    format_name = "csv"

    def load(self, source: str) -> tuple[Schema, ColumnData]:
        raise self._unimplemented()


class ArrowAdapter(DatasetAdapter):
    format_name = "arrow"

    def load(self, source: bytes) -> tuple[Schema, ColumnData]:
        raise self._unimplemented()


class JsonAdapter(DatasetAdapter):
    format_name = "json"

    def load(self, source: str) -> tuple[Schema, ColumnData]:
        raise self._unimplemented()


ADAPTERS: dict[str, type[DatasetAdapter]] = {
    adapter.format_name: adapter for adapter in (CsvAdapter, ArrowAdapter, JsonAdapter)
}


def get_adapter(format_name: str) -> DatasetAdapter:
    """Return an adapter instance for ``format_name``."""
    adapter = ADAPTERS.get(format_name.lower())
    if adapter is None:
        raise KeyError(f"No adapter for format '{format_name}'")
    return adapter()
