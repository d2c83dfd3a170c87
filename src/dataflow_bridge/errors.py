"""Exception hierarchy for the dataflow bridge.

Every error subclasses both ``BridgeError`` and the builtin exception that
host code would naturally catch for the same condition.
"""

from __future__ import annotations


class BridgeError(Exception):
    """Base class for all bridge errors."""


class ConstructionError(BridgeError, ValueError):
    """Malformed table or schema configuration."""


class ColumnNotFoundError(BridgeError, KeyError):
    """Column name lookup miss."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Column '{self.name}' not found"


class PortNotFoundError(BridgeError, KeyError):
    """Port id was never allocated on the node."""

    def __init__(self, port_id: int) -> None:
        super().__init__(port_id)
        self.port_id = port_id

    def __str__(self) -> str:
        return f"Port {self.port_id} not found"


class ConversionError(BridgeError, ValueError):
    """Host value cannot be stored in a column of the target type."""


class OutOfBoundsError(BridgeError, IndexError):
    """Positional read outside [0, size)."""

    def __init__(self, index: int, size: int) -> None:
        super().__init__(f"Index {index} out of range [0, {size})")
        self.index = index
        self.size = size


class DTypeMismatchError(BridgeError, TypeError):
    """Width-specific accessor used on a column of another type."""


class TableNotProcessedError(BridgeError, RuntimeError):
    """Column read before the table's node was processed."""


class HandleReleasedError(BridgeError, RuntimeError):
    """Handle used after its object was released or destroyed."""


class InvariantViolation(BridgeError, AssertionError):
    """Upstream corruption, such as a live column reporting a sentinel type."""


class UnimplementedError(BridgeError, NotImplementedError):
    """Feature not backed by an implementation yet."""
