"""Reference columnar engine the bridge drives through a fixed contract."""

from dataflow_bridge.native.column import NativeColumn, Status
from dataflow_bridge.native.data_table import DataTable
from dataflow_bridge.native.gnode import GNode, Op
from dataflow_bridge.native.pool import NativePool
from dataflow_bridge.native.schema import TableSchema
from dataflow_bridge.native.table import NativeTable
from dataflow_bridge.native.vocab import Vocab

__all__ = [
    "DataTable",
    "GNode",
    "NativeColumn",
    "NativePool",
    "NativeTable",
    "Op",
    "Status",
    "TableSchema",
    "Vocab",
]
