"""Host-facing table handle."""

from __future__ import annotations

import logging
import weakref
from typing import TYPE_CHECKING, Any, Iterable, Mapping, Sequence, Union

from dataflow_bridge.column import Column
from dataflow_bridge.config import MAX_LIMIT, get_settings
from dataflow_bridge.errors import (
    ColumnNotFoundError,
    ConstructionError,
    ConversionError,
    HandleReleasedError,
    PortNotFoundError,
    TableNotProcessedError,
)
from dataflow_bridge.handles import SharedHandle, UniqueHandle
from dataflow_bridge.native.column import Status
from dataflow_bridge.native.data_table import DataTable
from dataflow_bridge.native.gnode import GNode
from dataflow_bridge.native.pool import NativePool
from dataflow_bridge.native.schema import TableSchema
from dataflow_bridge.native.table import NativeTable
from dataflow_bridge.schema import Schema, validate_columns
from dataflow_bridge.types import DType

if TYPE_CHECKING:
    from dataflow_bridge.pool import Pool

logger = logging.getLogger(__name__)

RowData = Union[Mapping[str, Sequence[Any]], Sequence[Mapping[str, Any]]]

# Marks a cell a row-form update left out, as opposed to an explicit None
_OMITTED = object()


class Table:
    """Shared handle to an engine table and its computation node.

    Columns become readable after the first ``process()``. Writes go through
    ports: ``update``/``remove`` queue input and ``process`` applies it.
    Closing the last handle to a table, or dropping every reference to it,
    destroys its node and storage.
    """

    def __init__(self, table: SharedHandle[NativeTable]) -> None:
        self._table: SharedHandle[NativeTable] | None = table
        # Dropping the last reference without close() still releases the handle
        self._finalizer = weakref.finalize(self, table.release)

    # -- construction -----------------------------------------------------

    @classmethod
    def new(
        cls,
        column_names: Sequence[str],
        types: Sequence[DType | str],
        limit: int | None,
        index: str,
        *,
        pool: Pool | None = None,
    ) -> Table:
        """Create an empty table.

        Args:
            column_names: Unique column names, in order.
            types: One type per column; ``DType`` members or their names.
            limit: Maximum row count, or None for the configured default.
            index: Name of the column whose value keys each row.
            pool: Pool to register the table's node with. A private pool is
                used when omitted.

        Raises:
            ConstructionError: If the configuration is malformed. No engine
                object is created in that case.
        """
        dtypes = _coerce_types(types)
        validate_columns(column_names, dtypes)
        if not isinstance(index, str) or index not in column_names:
            raise ConstructionError(f"Index column {index!r} is not one of {list(column_names)}")
        return cls._create(column_names, dtypes, _check_limit(limit), index, pool)

    @classmethod
    def _create(
        cls,
        column_names: Sequence[str],
        dtypes: list[DType],
        limit: int,
        index: str | None,
        pool: Pool | None,
        data_table: DataTable | None = None,
    ) -> Table:
        native_pool = pool.native if pool is not None else NativePool()
        native = NativeTable(native_pool, list(column_names), dtypes, limit, index)
        native.init(data_table)
        logger.debug(
            "Created table with columns %s (limit=%d, index=%s) in pool %d",
            list(column_names), limit, index, native_pool.pool_id,
        )
        return cls(SharedHandle.make(native))

    @classmethod
    def from_data_table(
        cls,
        data_table: UniqueHandle[DataTable],
        index: str | None = None,
        *,
        pool: Pool | None = None,
    ) -> Table:
        """Create a table that takes ownership of a filled ``DataTable``.

        Without an index the row position keys each row. The table is
        processed once, so its rows are readable immediately.
        """
        schema = data_table.get().get_schema()
        validate_columns(schema.columns(), schema.types())
        if index is not None and not schema.has_column(index):
            raise ConstructionError(f"Index column {index!r} is not one of {schema.columns()}")
        owned = data_table.release()
        try:
            table = cls._create(
                schema.columns(), schema.types(), get_settings().default_limit, index, pool, owned
            )
            try:
                table.process()
            except Exception:
                table.close()
                raise
        finally:
            owned.destroy()
        return table

    @classmethod
    def from_definition(cls, text: str, *, pool: Pool | None = None) -> Table:
        """Create a table from a ``table name (col: type, ...)`` declaration."""
        from dataflow_bridge.parsing import TableDefinitionParser

        definition = TableDefinitionParser().parse(text)
        return cls.new(
            definition.column_names,
            definition.types,
            definition.limit,
            definition.index,
            pool=pool,
        )

    @classmethod
    def from_csv(cls, csv: str, *, pool: Pool | None = None) -> Table:
        return cls._from_adapter("csv", csv, pool)

    @classmethod
    def from_arrow(cls, data: bytes, *, pool: Pool | None = None) -> Table:
        return cls._from_adapter("arrow", data, pool)

    @classmethod
    def from_json(cls, json: str, *, pool: Pool | None = None) -> Table:
        return cls._from_adapter("json", json, pool)

    @classmethod
    def _from_adapter(cls, format_name: str, source: Any, pool: Pool | None) -> Table:
        from dataflow_bridge.adapters import get_adapter

        schema, columns = get_adapter(format_name).load(source)
        table = cls._create(
            schema.columns(), schema.types(), get_settings().default_limit, None, pool
        )
        table.update(columns)
        table.process()
        return table

    # -- handle management ------------------------------------------------

    @property
    def _native(self) -> NativeTable:
        if self._table is None:
            raise HandleReleasedError("Table handle was closed")
        return self._table.get()

    @property
    def _gnode(self) -> GNode:
        return self._native.gnode

    @property
    def closed(self) -> bool:
        return self._table is None

    def clone(self) -> Table:
        """Return another handle to the same table."""
        if self._table is None:
            raise HandleReleasedError("Table handle was closed")
        return Table(self._table.clone())

    def close(self) -> None:
        """Drop this handle; the last handle closed destroys the table."""
        self._table = None
        self._finalizer()

    def __enter__(self) -> Table:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    # -- reads ------------------------------------------------------------

    def size(self) -> int:
        """Return the row count as of the last ``process()``."""
        gnode = self._gnode
        with gnode.lock:
            return gnode.get_table().num_rows()

    def schema(self) -> Schema:
        return Schema.from_native(self._native.get_schema())

    def columns(self) -> list[str]:
        return self.schema().columns()

    @property
    def index(self) -> str | None:
        return self._native.index

    @property
    def limit(self) -> int:
        return self._native.limit

    def get_column(self, name: str) -> Column:
        """Return a read accessor for ``name``.

        Raises:
            ColumnNotFoundError: If the table has no such column.
            TableNotProcessedError: If the table was never processed.
        """
        native = self._native
        if not native.get_schema().has_column(name):
            raise ColumnNotFoundError(name)
        gnode = native.gnode
        with gnode.lock:
            if not gnode.is_processed:
                raise TableNotProcessedError("Call process() before reading columns")
            handle = gnode.get_table().get_column_sptr(name)
            return Column(name, handle.downgrade(), gnode.lock)

    def get_column_dtype(self, name: str) -> str:
        """Return the type label of column ``name``."""
        schema = self._native.get_schema()
        if not schema.has_column(name):
            raise ColumnNotFoundError(name)
        return schema.get_dtype(name).label

    def pretty_print(self, num_rows: int | None = None) -> str:
        """Render up to ``num_rows`` rows for diagnostics; not a stable format."""
        if num_rows is None:
            num_rows = get_settings().pretty_print_rows
        gnode = self._gnode
        with gnode.lock:
            return gnode.get_table().pprint(num_rows)

    # -- processing and input ---------------------------------------------

    @property
    def is_processed(self) -> bool:
        return self._gnode.is_processed

    @property
    def process_count(self) -> int:
        """Number of processing steps that applied input."""
        return self._gnode.process_count

    def process(self) -> None:
        """Apply all pending input; a no-op when nothing is pending."""
        self._gnode.process_all()

    def make_port(self) -> int:
        """Allocate a new input port and return its id."""
        return self._native.make_port()

    def update(self, data: RowData, port_id: int = 0) -> None:
        """Queue rows on ``port_id`` to be applied by the next ``process()``.

        Args:
            data: Either a mapping of column name to values, or a list of
                row mappings. None clears a cell. A column a row omits keeps
                its stored value, and is absent in a newly inserted row.
            port_id: Port to queue on.
        """
        gnode = self._gnode
        batch = _build_batch(gnode.get_schema(), gnode.index, data)
        with gnode.lock:
            if not gnode.has_port(port_id):
                raise PortNotFoundError(port_id)
            if batch.num_rows():
                gnode.send(port_id, batch)

    def remove(self, keys: Iterable[Any], port_id: int = 0) -> None:
        """Queue deletion of the rows with the given index keys."""
        gnode = self._gnode
        with gnode.lock:
            if not gnode.has_port(port_id):
                raise PortNotFoundError(port_id)
            gnode.send_removals(port_id, list(keys))

    def __repr__(self) -> str:
        if self._table is None:
            return "Table(closed)"
        return f"Table({self.schema()!r}, size={self.size()})"


def _coerce_types(types: Sequence[DType | str]) -> list[DType]:
    dtypes = []
    for dtype in types:
        if isinstance(dtype, str):
            try:
                dtype = DType.from_label(dtype)
            except KeyError as e:
                raise ConstructionError(str(e.args[0])) from None
        dtypes.append(dtype)
    return dtypes


def _check_limit(limit: int | None) -> int:
    if limit is None:
        return get_settings().default_limit
    if isinstance(limit, bool) or not isinstance(limit, int):
        raise ConstructionError(f"Limit must be an int, got {limit!r}")
    if limit <= 0 or limit > MAX_LIMIT:
        raise ConstructionError(f"Limit {limit} outside (0, {MAX_LIMIT}]")
    return limit


def _build_batch(schema: TableSchema, index: str | None, data: RowData) -> DataTable:
    """Convert host rows into a ``DataTable`` holding only the given columns."""
    if isinstance(data, Mapping):
        columns = {name: list(values) for name, values in data.items()}
    else:
        rows = list(data)
        names: list[str] = []
        for row in rows:
            names.extend(n for n in row if n not in names)
        columns = {name: [row.get(name, _OMITTED) for row in rows] for name in names}

    for name in columns:
        if not schema.has_column(name):
            raise ColumnNotFoundError(name)
    lengths = {len(values) for values in columns.values()}
    if len(lengths) > 1:
        raise ConversionError(f"Columns have different lengths: {sorted(lengths)}")
    num_rows = lengths.pop() if lengths else 0
    if index is not None and num_rows:
        keys = columns.get(index)
        if keys is None or any(key is None or key is _OMITTED for key in keys):
            raise ConversionError(f"Every row needs a value for index column '{index}'")

    names = [n for n in schema.columns() if n in columns]
    batch = DataTable(TableSchema(names, [schema.get_dtype(n) for n in names]))
    batch.init()
    batch.extend(num_rows)
    for name in names:
        column = batch.get_column(name)
        for row, value in enumerate(columns[name]):
            if value is _OMITTED:
                continue
            if value is None:
                column.set_status(row, Status.CLEAR)
                continue
            try:
                column.set_nth(row, value)
            except (TypeError, ValueError) as e:
                raise ConversionError(f"Column '{name}' row {row}: {e}") from None
    return batch
