"""String interning for STR columns."""

from __future__ import annotations


class Vocab:
    """Interns strings to dense indices in first-seen order."""

    def __init__(self) -> None:
        self._strings: list[str] = []
        self._indices: dict[str, int] = {}

    @property
    def vlenidx(self) -> int:
        """Return the number of interned strings."""
        return len(self._strings)

    def get_interned(self, value: str) -> int:
        """Return the index for ``value``, interning it on first sight."""
        index = self._indices.get(value)
        if index is None:
            index = len(self._strings)
            self._strings.append(value)
            self._indices[value] = index
        return index

    def unintern(self, index: int) -> str:
        if index < 0 or index >= len(self._strings):
            raise IndexError(f"Vocab index {index} out of range [0, {len(self._strings)})")
        return self._strings[index]

    def strings(self) -> list[str]:
        return list(self._strings)

    def __contains__(self, value: str) -> bool:
        return value in self._indices
