"""Lazy k-subset enumeration over candidate source chains."""

from __future__ import annotations

import itertools
import math
from typing import Generic, Iterator, Sequence, Tuple, TypeVar

T = TypeVar("T")


class Combinations(Generic[T]):
    """Every ``size``-subset of ``items``, each in the items' original order.

    Iterating twice yields the same sequence again. The multi-chain
    allocation relies on the preserved order: the last member of a subset
    absorbs whatever the earlier members did not cover.
    """

    def __init__(self, items: Sequence[T], size: int) -> None:
        if size < 1:
            raise ValueError("combination size must be at least 1")
        self._items: Tuple[T, ...] = tuple(items)
        self.size = size

    def __iter__(self) -> Iterator[Tuple[T, ...]]:
        return itertools.combinations(self._items, self.size)

    def __len__(self) -> int:
        return math.comb(len(self._items), self.size)


def iter_combination_groups(items: Sequence[T], min_size: int, max_size: int) -> Iterator[Tuple[T, ...]]:
    """Yield subsets of every size from ``min_size`` to ``max_size`` inclusive."""
    for size in range(min_size, max_size + 1):
        if size > len(items):
            break
        yield from Combinations(items, size)


__all__ = ["Combinations", "iter_combination_groups"]
