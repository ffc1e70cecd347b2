"""Exact bounded top-K selection used by nearest-neighbour and analogy scans.

Candidates arrive in row order. The selector keeps at most ``k`` of them:

1. While fewer than ``k`` are held, every candidate is appended; when the list
   reaches ``k`` it is sorted ascending by score once.
2. Afterwards a candidate whose score is ``<=`` the current minimum is
   rejected, so ties with the worst kept candidate never enter. Otherwise it
   replaces the minimum and the list is re-sorted ascending.
3. :meth:`TopKSelector.ranked` sorts the survivors descending.

All sorts are stable. Among equal scores, a newly admitted candidate therefore
ranks ahead of older ones still in the list; if the list never fills, ties
keep row order.
"""

from __future__ import annotations

import math
import sys
from operator import itemgetter
from typing import List, Tuple, Union

__all__ = ["TopKSelector", "clamp_top_k"]

_score = itemgetter(1)


def clamp_top_k(top_k: Union[int, float]) -> int:
    """Truncate ``top_k`` toward zero and clamp it to at least one.

    Examples:
        >>> clamp_top_k(3.9), clamp_top_k(0), clamp_top_k(-2)
        (3, 1, 1)
    """
    if isinstance(top_k, float):
        if math.isnan(top_k):
            return 1
        if math.isinf(top_k):
            return sys.maxsize if top_k > 0 else 1
    return max(1, int(top_k))


class TopKSelector:
    """Keep the ``k`` highest-scoring ``(row, score)`` pairs seen so far.

    Examples:
        >>> selector = TopKSelector(2)
        >>> for row, score in enumerate([0.1, 0.9, 0.5, 0.9]):
        ...     _ = selector.offer(row, score)
        >>> selector.ranked()
        [(3, 0.9), (1, 0.9)]
    """

    __slots__ = ("k", "_best")

    def __init__(self, k: int) -> None:
        if k < 1:
            raise ValueError("k must be positive")
        self.k = k
        self._best: List[Tuple[int, float]] = []

    def __len__(self) -> int:
        return len(self._best)

    def offer(self, row: int, score: float) -> bool:
        """Consider a candidate; return ``True`` when it was kept."""
        best = self._best
        if len(best) < self.k:
            best.append((row, score))
            if len(best) == self.k:
                best.sort(key=_score)
            return True
        if score <= best[0][1]:
            return False
        best[0] = (row, score)
        best.sort(key=_score)
        return True

    def ranked(self) -> List[Tuple[int, float]]:
        """Return the kept candidates ordered by descending score."""
        return sorted(self._best, key=_score, reverse=True)
