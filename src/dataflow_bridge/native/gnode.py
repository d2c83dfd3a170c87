"""Computation node: queues input on ports and materializes it on ``process``."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from dataflow_bridge.handles import SharedHandle
from dataflow_bridge.native.column import Status
from dataflow_bridge.native.data_table import DataTable
from dataflow_bridge.native.schema import TableSchema

logger = logging.getLogger(__name__)


class Op(Enum):
    INSERT = "insert"
    DELETE = "delete"


@dataclass
class PendingBatch:
    """One unit of input waiting on a port."""

    op: Op
    data: DataTable | None = None
    keys: list[Any] = field(default_factory=list)


class GNode:
    """One dataflow node and its backing ``DataTable``.

    Rows are keyed by the index column (or by arrival order when there is no
    index). Inserting an existing key updates that row in place; a new key
    appends a row, or takes over the slot of the oldest surviving key once
    ``limit`` rows exist. In a batch, VALID cells are written, CLEAR cells
    are cleared and INVALID cells leave the stored value alone.
    """

    def __init__(self, schema: TableSchema, limit: int, index: str | None = None) -> None:
        if index is not None and not schema.has_column(index):
            raise KeyError(f"Index column '{index}' not in schema")
        self.node_id: int | None = None
        self._schema = schema.copy()
        self._limit = limit
        self._index = index
        table = DataTable(self._schema)
        table.init()
        self._table: SharedHandle[DataTable] | None = SharedHandle.make(table)
        self._ports: dict[int, list[PendingBatch]] = {}
        self._next_port_id = 0
        self._row_keys: list[Any] = []
        self._key_rows: dict[Any, int] = {}
        self._next_implicit_key = 0
        # Keys in slot allocation order; the first one owns the oldest slot
        self._arrivals: dict[Any, None] = {}
        self._process_count = 0
        self._processed = False
        self.lock = threading.RLock()
        self.make_input_port()

    # -- ports ------------------------------------------------------------

    def make_input_port(self) -> int:
        """Allocate a new port id; ids are never reused by this node."""
        with self.lock:
            port_id = self._next_port_id
            self._next_port_id += 1
            self._ports[port_id] = []
        logger.debug("Node %s opened port %d", self.node_id, port_id)
        return port_id

    def port_ids(self) -> list[int]:
        return list(self._ports)

    def has_port(self, port_id: int) -> bool:
        return port_id in self._ports

    def _pending(self, port_id: int) -> list[PendingBatch]:
        if port_id not in self._ports:
            raise KeyError(port_id)
        return self._ports[port_id]

    def send(self, port_id: int, data: DataTable) -> None:
        """Queue rows for insertion/update on a port."""
        with self.lock:
            self._pending(port_id).append(PendingBatch(Op.INSERT, data=data))

    def send_removals(self, port_id: int, keys: list[Any]) -> None:
        """Queue row deletion by key on a port."""
        with self.lock:
            self._pending(port_id).append(PendingBatch(Op.DELETE, keys=list(keys)))

    def has_pending(self) -> bool:
        return any(self._ports.values())

    # -- processing -------------------------------------------------------

    @property
    def process_count(self) -> int:
        return self._process_count

    @property
    def is_processed(self) -> bool:
        return self._processed

    def process(self, port_id: int) -> bool:
        """Apply everything queued on ``port_id``; return whether anything was."""
        with self.lock:
            batches = self._pending(port_id)
            self._processed = True
            if not batches:
                return False
            self._ports[port_id] = []
            for batch in batches:
                if batch.op is Op.INSERT:
                    self._apply_insert(batch.data)  # type: ignore[arg-type]
                else:
                    self._apply_delete(batch.keys)
            self._process_count += 1
        logger.debug(
            "Node %s processed %d batch(es) on port %d, %d rows",
            self.node_id, len(batches), port_id, self.get_table().num_rows(),
        )
        return True

    def process_all(self) -> bool:
        """Process every port in id order; return whether any had input."""
        with self.lock:
            results = [self.process(port_id) for port_id in sorted(self._ports)]
        return any(results)

    def _apply_insert(self, batch: DataTable) -> None:
        state = self.get_table()
        names = [n for n in batch.get_schema().columns() if self._schema.has_column(n)]
        key_column = batch.get_column(self._index) if self._index is not None else None

        for src_row in range(batch.num_rows()):
            if key_column is not None:
                key = key_column.get_value(src_row)
            else:
                key = self._next_implicit_key
                self._next_implicit_key += 1
            existing = self._key_rows.get(key)

            if existing is not None:
                dst_row = existing
            else:
                dst_row = self._allocate_row(state, key)
                # A reused slot must not leak values for columns this batch omits
                for name in self._schema.columns():
                    state.get_column(name).clear_nth(dst_row)

            for name in names:
                source = batch.get_column(name)
                status = source.get_nth_status(src_row)
                if status is Status.VALID:
                    state.get_column(name).set_nth(dst_row, source.get_value(src_row))
                elif status is Status.CLEAR:
                    state.get_column(name).clear_nth(dst_row)

    def _allocate_row(self, state: DataTable, key: Any) -> int:
        num_rows = state.num_rows()
        if num_rows < self._limit:
            state.extend(num_rows + 1)
            self._row_keys.append(key)
            self._key_rows[key] = num_rows
            self._arrivals[key] = None
            return num_rows

        evicted = next(iter(self._arrivals))
        del self._arrivals[evicted]
        row = self._key_rows.pop(evicted)
        self._row_keys[row] = key
        self._key_rows[key] = row
        self._arrivals[key] = None
        return row

    def _apply_delete(self, keys: list[Any]) -> None:
        doomed = {self._key_rows[k] for k in keys if k in self._key_rows}
        if not doomed:
            return
        state = self.get_table()
        kept = [row for row in range(state.num_rows()) if row not in doomed]
        for dst_row, src_row in enumerate(kept):
            if dst_row != src_row:
                state.copy_row(src_row, dst_row)
        state.set_size(len(kept))
        self._row_keys = [self._row_keys[row] for row in kept]
        self._key_rows = {key: row for row, key in enumerate(self._row_keys)}
        for key in keys:
            self._arrivals.pop(key, None)

    # -- accessors --------------------------------------------------------

    def get_schema(self) -> TableSchema:
        return self._schema

    @property
    def index(self) -> str | None:
        return self._index

    @property
    def limit(self) -> int:
        return self._limit

    def get_table(self) -> DataTable:
        if self._table is None:
            raise RuntimeError("Node was destroyed")
        return self._table.get()

    def get_table_sptr(self) -> SharedHandle[DataTable]:
        """Return a new holder of the backing table."""
        if self._table is None:
            raise RuntimeError("Node was destroyed")
        return self._table.clone()

    @property
    def destroyed(self) -> bool:
        return self._table is None

    def destroy(self) -> None:
        with self.lock:
            if self._table is not None:
                self._table.release()
                self._table = None
            self._ports.clear()
        logger.debug("Node %s destroyed", self.node_id)
