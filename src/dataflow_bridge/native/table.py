"""Engine-side table: configuration plus the node that holds its data."""

from __future__ import annotations

from dataflow_bridge.handles import SharedHandle
from dataflow_bridge.native.data_table import DataTable
from dataflow_bridge.native.gnode import GNode
from dataflow_bridge.native.pool import NativePool
from dataflow_bridge.native.schema import TableSchema
from dataflow_bridge.types import DType


class NativeTable:
    """Owns one ``GNode`` through a shared handle."""

    def __init__(
        self,
        pool: NativePool,
        columns: list[str],
        dtypes: list[DType],
        limit: int,
        index: str | None,
    ) -> None:
        self._schema = TableSchema(columns, dtypes)
        self._limit = limit
        self._index = index
        gnode = GNode(self._schema, limit, index)
        pool.register_gnode(gnode)
        self._gnode: SharedHandle[GNode] | None = SharedHandle.make(gnode)

    def init(self, data_table: DataTable | None = None, port_id: int = 0) -> None:
        """Queue initial rows, if any, on ``port_id``."""
        if data_table is not None and data_table.num_rows():
            self.gnode.send(port_id, data_table)

    @property
    def gnode(self) -> GNode:
        if self._gnode is None:
            raise RuntimeError("Table was destroyed")
        return self._gnode.get()

    def get_gnode(self) -> SharedHandle[GNode]:
        """Return a new holder of the node."""
        if self._gnode is None:
            raise RuntimeError("Table was destroyed")
        return self._gnode.clone()

    def size(self) -> int:
        return self.gnode.get_table().num_rows()

    def get_schema(self) -> TableSchema:
        return self._schema.copy()

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def index(self) -> str | None:
        return self._index

    def make_port(self) -> int:
        return self.gnode.make_input_port()

    def destroy(self) -> None:
        if self._gnode is not None:
            self._gnode.release()
            self._gnode = None
