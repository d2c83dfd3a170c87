"""Process-wide engine context that nodes are registered with."""

from __future__ import annotations

import itertools
import logging
import weakref

from dataflow_bridge.native.gnode import GNode

logger = logging.getLogger(__name__)


class NativePool:
    """Allocates node ids and tracks live nodes without owning them."""

    _pool_ids = itertools.count()

    def __init__(self) -> None:
        self.pool_id = next(self._pool_ids)
        self._node_ids = itertools.count()
        self._nodes: weakref.WeakSet[GNode] = weakref.WeakSet()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def register_gnode(self, gnode: GNode) -> int:
        if self._closed:
            raise RuntimeError(f"Pool {self.pool_id} is closed")
        node_id = next(self._node_ids)
        gnode.node_id = node_id
        self._nodes.add(gnode)
        return node_id

    def live_node_count(self) -> int:
        return sum(1 for node in self._nodes if not node.destroyed)

    def destroy(self) -> None:
        """Drop the pool's bookkeeping; registered nodes stay alive."""
        logger.debug("Pool %d released with %d live node(s)", self.pool_id, self.live_node_count())
        self._nodes = weakref.WeakSet()
        self._closed = True
