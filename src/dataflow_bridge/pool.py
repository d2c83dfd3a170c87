"""Host-facing engine context."""

from __future__ import annotations

import logging
from typing import Any, Sequence

from dataflow_bridge.handles import UniqueHandle
from dataflow_bridge.native.pool import NativePool
from dataflow_bridge.table import Table
from dataflow_bridge.types import DType

logger = logging.getLogger(__name__)


class Pool:
    """Exclusively owned engine context that tables are created in.

    Tables made through a pool are independent shared handles: closing the
    pool releases only the pool's own resources, and every table it made
    stays usable until its own last handle is closed.
    """

    def __init__(self, pool: UniqueHandle[NativePool]) -> None:
        self._pool = pool

    @classmethod
    def create(cls) -> Pool:
        native = NativePool()
        logger.debug("Created pool %d", native.pool_id)
        return cls(UniqueHandle(native))

    @property
    def native(self) -> NativePool:
        return self._pool.get()

    @property
    def closed(self) -> bool:
        return not self._pool.is_valid

    @property
    def table_count(self) -> int:
        """Return how many tables made by this pool are still alive."""
        return self._pool.get().live_node_count()

    def make_table(
        self,
        column_names: Sequence[str],
        types: Sequence[DType | str],
        limit: int | None,
        index: str,
    ) -> Table:
        return Table.new(column_names, types, limit, index, pool=self)

    def close(self) -> None:
        self._pool.reset()

    def __enter__(self) -> Pool:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
