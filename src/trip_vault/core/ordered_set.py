from __future__ import annotations

from collections.abc import Iterable, Iterator


class OrderedCappedSet:
    """Insertion-ordered set that silently ignores additions once full.

    Entries keep the position of their first occurrence, so folding the same
    inputs in the same order always yields the same list.
    """

    def __init__(self, max_size: int | None = None, items: Iterable[str] = ()):
        self._max_size = max_size
        self._items: dict[str, None] = {}
        self.update(items)

    def add(self, item: str) -> bool:
        if item in self._items:
            return False
        if self._max_size is not None and len(self._items) >= self._max_size:
            return False
        self._items[item] = None
        return True

    def update(self, items: Iterable[str]) -> None:
        for item in items:
            self.add(item)

    def __contains__(self, item: object) -> bool:
        return item in self._items

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def to_list(self) -> list[str]:
        return list(self._items)
