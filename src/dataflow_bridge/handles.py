"""Ownership handles for engine objects crossing into host code.

Two ownership categories exist:

- ``UniqueHandle``: one owner; the object is destroyed when the owner resets
  it or leaves its ``with`` block. Ownership moves out with ``release()``.
- ``SharedHandle``: reference counted; every ``clone()`` is another holder and
  the object is destroyed when the last holder calls ``release()``.

``WeakHandle`` is the explicit non-owning back-reference to a shared object.
Destroying an object calls its deleter, by default the object's ``destroy()``
method when it has one.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Generic, TypeVar

from dataflow_bridge.errors import HandleReleasedError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Deleter = Callable[[Any], None]


def default_deleter(obj: Any) -> None:
    """Call ``obj.destroy()`` when the object defines it."""
    destroy = getattr(obj, "destroy", None)
    if callable(destroy):
        destroy()


class UniqueHandle(Generic[T]):
    """Exclusive owner of an engine object."""

    def __init__(self, obj: T, deleter: Deleter | None = None) -> None:
        self._obj: T | None = obj
        self._deleter = deleter or default_deleter

    @property
    def is_valid(self) -> bool:
        return self._obj is not None

    def get(self) -> T:
        """Borrow the owned object."""
        if self._obj is None:
            raise HandleReleasedError("Unique handle is empty")
        return self._obj

    def release(self) -> T:
        """Move the object out; the handle becomes empty and will not destroy it."""
        obj = self.get()
        self._obj = None
        return obj

    def reset(self) -> None:
        """Destroy the owned object, if any."""
        obj, self._obj = self._obj, None
        if obj is not None:
            logger.debug("Destroying uniquely owned %s", type(obj).__name__)
            self._deleter(obj)

    def __copy__(self) -> UniqueHandle[T]:
        raise TypeError("UniqueHandle cannot be duplicated; use release() to move ownership")

    def __deepcopy__(self, memo: dict[int, Any]) -> UniqueHandle[T]:
        return self.__copy__()

    def __enter__(self) -> UniqueHandle[T]:
        return self

    def __exit__(self, *args: Any) -> None:
        self.reset()

    def __repr__(self) -> str:
        target = type(self._obj).__name__ if self._obj is not None else "empty"
        return f"UniqueHandle({target})"


class _ControlBlock:
    """Strong count and deleter shared by every handle to one object."""

    def __init__(self, obj: Any, deleter: Deleter) -> None:
        self.obj: Any = obj
        self.strong = 1
        self.deleter = deleter
        self.lock = threading.Lock()

    def acquire(self) -> bool:
        with self.lock:
            if self.strong == 0:
                return False
            self.strong += 1
            return True

    def drop(self) -> None:
        with self.lock:
            self.strong -= 1
            if self.strong > 0:
                return
            obj, self.obj = self.obj, None
        logger.debug("Last shared holder released, destroying %s", type(obj).__name__)
        self.deleter(obj)


class SharedHandle(Generic[T]):
    """Reference-counted holder of an engine object."""

    def __init__(self, block: _ControlBlock) -> None:
        # Callers pass a block whose count already includes this holder.
        self._block: _ControlBlock | None = block

    @classmethod
    def make(cls, obj: T, deleter: Deleter | None = None) -> SharedHandle[T]:
        """Take shared ownership of a freshly created object."""
        return cls(_ControlBlock(obj, deleter or default_deleter))

    def _live_block(self) -> _ControlBlock:
        if self._block is None:
            raise HandleReleasedError("Shared handle was released")
        return self._block

    @property
    def is_valid(self) -> bool:
        return self._block is not None

    @property
    def use_count(self) -> int:
        """Return the number of live holders, 0 for a released handle."""
        if self._block is None:
            return 0
        return self._block.strong

    def get(self) -> T:
        """Borrow the shared object."""
        return self._live_block().obj

    def clone(self) -> SharedHandle[T]:
        """Return another holder of the same object."""
        block = self._live_block()
        if not block.acquire():
            raise HandleReleasedError("Shared object was already destroyed")
        return SharedHandle(block)

    def downgrade(self) -> WeakHandle[T]:
        """Return a non-owning reference to the same object."""
        return WeakHandle(self._live_block())

    def release(self) -> None:
        """Drop this holder. Releasing twice is a no-op."""
        block, self._block = self._block, None
        if block is not None:
            block.drop()

    def __copy__(self) -> SharedHandle[T]:
        return self.clone()

    def __enter__(self) -> SharedHandle[T]:
        return self

    def __exit__(self, *args: Any) -> None:
        self.release()

    def __repr__(self) -> str:
        if self._block is None:
            return "SharedHandle(released)"
        return f"SharedHandle({type(self._block.obj).__name__}, use_count={self._block.strong})"


class WeakHandle(Generic[T]):
    """Non-owning reference to a shared object; never keeps it alive."""

    def __init__(self, block: _ControlBlock) -> None:
        self._block = block

    @property
    def expired(self) -> bool:
        return self._block.strong == 0

    def upgrade(self) -> SharedHandle[T] | None:
        """Return a new holder, or None when the object is gone."""
        if not self._block.acquire():
            return None
        return SharedHandle(self._block)

    def get(self) -> T:
        """Borrow the object without taking ownership."""
        obj = self._block.obj
        if obj is None:
            raise HandleReleasedError("Referenced object was destroyed")
        return obj

    def __repr__(self) -> str:
        return f"WeakHandle(expired={self.expired})"
