"""Bounded trend history."""

from __future__ import annotations

from typing import Generic, Iterator, TypeVar

T = TypeVar("T")


class BoundedHistory(Generic[T]):
    """Sequence that keeps only the most recent ``maxlen`` items.

    Appending past capacity evicts from the front, oldest first.
    """

    def __init__(self, maxlen: int, items: tuple[T, ...] = ()) -> None:
        if maxlen < 1:
            raise ValueError(f"maxlen must be at least 1, got {maxlen}.")
        self.maxlen = maxlen
        self._items: list[T] = list(items)[-maxlen:]

    def append(self, item: T) -> None:
        self._items.append(item)
        overflow = len(self._items) - self.maxlen
        if overflow > 0:
            del self._items[:overflow]

    def snapshot(self) -> tuple[T, ...]:
        return tuple(self._items)

    @property
    def latest(self) -> T | None:
        return self._items[-1] if self._items else None

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(tuple(self._items))

    def __repr__(self) -> str:
        return f"BoundedHistory(maxlen={self.maxlen}, len={len(self._items)})"
