# === NAVMAP v1 ===
# {
#   "module": "WordVectors.VectorSearch.store",
#   "purpose": "Read-only word vector store with exact similarity, nearest and analogy search",
#   "sections": [
#     {"id": "similarity", "name": "similarity", "anchor": "function-similarity", "kind": "function"},
#     {"id": "l2-normalize", "name": "l2_normalize", "anchor": "function-l2-normalize", "kind": "function"},
#     {"id": "wordvectorstore", "name": "WordVectorStore", "anchor": "class-wordvectorstore", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Exact dot-product search over an :class:`~WordVectors.VectorSearch.table.EmbeddingTable`.

Every query is an exhaustive scan: the corpus matrix is scored in row blocks
(one float64 matrix-vector product per block, so memory stays bounded for
large vocabularies) and the scores are fed in row order through
:class:`~WordVectors.VectorSearch.topk.TopKSelector`. There is no index and no
approximation.

``similarity`` and ``nearest`` rank by the raw dot product. Only ``analogy``
normalises, and only its query vector. Unknown words are never an error:
lookups return ``None`` and searches return ``[]``.

The store holds no mutable state, so a single instance can serve concurrent
readers.
"""

from __future__ import annotations

import math
from typing import Collection, Iterator, List, Optional, Tuple, Union

import numpy as np
from numpy.typing import NDArray

from .table import EmbeddingTable
from .topk import TopKSelector, clamp_top_k
from .types import ScoredWord

__all__ = ["DEFAULT_BLOCK_ROWS", "WordVectorStore", "l2_normalize", "similarity"]

DEFAULT_BLOCK_ROWS = 65_536


def _dot(a: NDArray[np.float32], b: NDArray[np.float32]) -> float:
    return float(np.dot(a.astype(np.float64), b.astype(np.float64)))


def similarity(table: EmbeddingTable, a: str, b: str) -> Optional[float]:
    """Raw dot product of the rows for ``a`` and ``b``.

    Args:
        table: Loaded embedding table.
        a: First word.
        b: Second word.

    Returns:
        The dot product, or ``None`` when either word is unknown or the
        product is not finite.
    """
    row_a = table.index.get(a)
    row_b = table.index.get(b)
    if row_a is None or row_b is None:
        return None
    score = _dot(table.row(row_a), table.row(row_b))
    if not math.isfinite(score):
        return None
    return score


def l2_normalize(vector: NDArray[np.float32]) -> NDArray[np.float32]:
    """Return an L2-normalised float32 copy of ``vector``.

    A zero or non-finite norm yields an unnormalised copy instead of an error.

    Examples:
        >>> l2_normalize(np.array([3.0, 4.0], dtype=np.float32)).tolist()
        [0.6000000238418579, 0.800000011920929]
        >>> l2_normalize(np.zeros(2, dtype=np.float32)).tolist()
        [0.0, 0.0]
    """
    wide = vector.astype(np.float64)
    norm = math.sqrt(float(np.dot(wide, wide)))
    if not math.isfinite(norm) or norm == 0:
        return np.array(vector, dtype=np.float32, copy=True)
    return (wide / norm).astype(np.float32)


class WordVectorStore:
    """Read-only query surface over a validated embedding table.

    Args:
        table: Table produced by the ingestion pipeline.
        block_rows: Rows scored per matrix-vector product during scans.

    Examples:
        >>> table = EmbeddingTable(2, ("a", "b", "c"), np.array([1, 0, 0, 1, 1, 1], dtype=np.float32))
        >>> store = WordVectorStore(table)
        >>> store.similarity("a", "c")
        1.0
        >>> [hit.word for hit in store.nearest("c", 2)]
        ['a', 'b']
    """

    def __init__(self, table: EmbeddingTable, *, block_rows: int = DEFAULT_BLOCK_ROWS) -> None:
        if block_rows <= 0:
            raise ValueError("block_rows must be positive")
        self._table = table
        self._block_rows = block_rows

    @property
    def table(self) -> EmbeddingTable:
        return self._table

    @property
    def dim(self) -> int:
        return self._table.dim

    @property
    def words(self) -> Tuple[str, ...]:
        return self._table.words

    def __len__(self) -> int:
        return len(self._table)

    def __contains__(self, word: object) -> bool:
        return word in self._table.index

    def has(self, word: str) -> bool:
        return word in self._table.index

    def vector_of(self, word: str) -> Optional[NDArray[np.float32]]:
        """Zero-copy, read-only view of ``word``'s row, or ``None`` if unknown.

        The view shares the store's buffer and must not outlive the store.
        """
        row = self._table.index.get(word)
        if row is None:
            return None
        return self._table.row(row)

    def similarity(self, a: str, b: str) -> Optional[float]:
        return similarity(self._table, a, b)

    def nearest(self, word: str, top_k: Union[int, float]) -> List[ScoredWord]:
        """Highest dot-product neighbours of ``word``, excluding ``word`` itself.

        Args:
            word: Query word.
            top_k: Result budget; truncated toward zero, at least 1.

        Returns:
            Up to ``top_k`` results sorted by descending score; empty when
            ``word`` is unknown.
        """
        query = self.vector_of(word)
        if query is None:
            return []
        return self.nearest_by_vector(query, top_k, exclude=(word,))

    def analogy(self, a: str, b: str, c: str, top_k: Union[int, float]) -> List[ScoredWord]:
        """Complete ``a : b :: c : ?`` using the normalised query ``b - a + c``.

        Args:
            a: Source of the relation.
            b: Target of the relation.
            c: Word the relation is applied to.
            top_k: Result budget; truncated toward zero, at least 1.

        Returns:
            Up to ``top_k`` words ranked by dot product against the query,
            never including ``a``, ``b`` or ``c``; empty when any of them is
            unknown.
        """
        va = self.vector_of(a)
        vb = self.vector_of(b)
        vc = self.vector_of(c)
        if va is None or vb is None or vc is None:
            return []
        query = vb - va + vc
        return self.nearest_by_vector(l2_normalize(query), top_k, exclude=(a, b, c))

    def nearest_by_vector(
        self,
        query: NDArray[np.floating],
        top_k: Union[int, float],
        exclude: Collection[str] = (),
    ) -> List[ScoredWord]:
        """Exhaustive top-K scan of the whole table against ``query``.

        Args:
            query: Vector with ``dim`` components.
            top_k: Result budget; truncated toward zero, at least 1.
            exclude: Words that must never appear in the result.

        Returns:
            Ranked :class:`ScoredWord` list, best first.

        Raises:
            ValueError: If ``query`` does not have ``dim`` components.
        """
        query = np.asarray(query, dtype=np.float64).reshape(-1)
        if query.shape[0] != self.dim:
            raise ValueError(f"query has {query.shape[0]} components, expected {self.dim}")
        excluded = frozenset(exclude)
        words = self._table.words
        selector = TopKSelector(clamp_top_k(top_k))
        for row, score in self._iter_scores(query):
            if words[row] in excluded:
                continue
            selector.offer(row, score)
        return [ScoredWord(words[row], score) for row, score in selector.ranked()]

    def _iter_scores(self, query: NDArray[np.float64]) -> Iterator[Tuple[int, float]]:
        matrix = self._table.matrix
        total = matrix.shape[0]
        for start in range(0, total, self._block_rows):
            block = matrix[start : start + self._block_rows]
            scores = block.astype(np.float64) @ query
            yield from enumerate(scores.tolist(), start)
