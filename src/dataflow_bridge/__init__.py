"""Dataflow Bridge - typed host handles over a reference-counted columnar engine."""

import logging

from dataflow_bridge.adapters import DatasetAdapter, get_adapter
from dataflow_bridge.column import Column
from dataflow_bridge.errors import (
    BridgeError,
    ColumnNotFoundError,
    ConstructionError,
    ConversionError,
    DTypeMismatchError,
    HandleReleasedError,
    InvariantViolation,
    OutOfBoundsError,
    PortNotFoundError,
    TableNotProcessedError,
    UnimplementedError,
)
from dataflow_bridge.handles import SharedHandle, UniqueHandle, WeakHandle
from dataflow_bridge.pool import Pool
from dataflow_bridge.schema import Schema
from dataflow_bridge.table import Table
from dataflow_bridge.types import DType, Scalar

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Main API
    "Pool",
    "Table",
    "Column",
    "Schema",
    "DType",
    "Scalar",
    # Ownership
    "UniqueHandle",
    "SharedHandle",
    "WeakHandle",
    # Ingestion
    "DatasetAdapter",
    "get_adapter",
    # Errors
    "BridgeError",
    "ColumnNotFoundError",
    "ConstructionError",
    "ConversionError",
    "DTypeMismatchError",
    "HandleReleasedError",
    "InvariantViolation",
    "OutOfBoundsError",
    "PortNotFoundError",
    "TableNotProcessedError",
    "UnimplementedError",
]

__version__ = "0.1.0"
