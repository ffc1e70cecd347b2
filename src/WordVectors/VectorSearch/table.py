"""
Immutable embedding table: word list, word→row index, and flat float32 buffer.

The table is the hand-off shape between ingestion and search. It is built
exactly once, after the vector bytes have been assembled, and refuses to exist
in an inconsistent state: a buffer whose length is not ``len(words) * dim``
raises :class:`~WordVectors.errors.ShapeMismatch` during construction.

Key Features:
- Zero-copy row views (``row``) and a ``(n, dim)`` matrix view (``matrix``)
- Read-only buffer: arrays handed in as writeable are copied and frozen
- Duplicate words resolve to their *last* row; earlier rows stay in the buffer
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Mapping, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

from ..errors import InvalidVocabulary, ShapeMismatch

__all__ = ["FLOAT32_BYTES", "VECTOR_DTYPE", "EmbeddingTable", "build_index"]

#: Width of one vector component in the binary artifact
FLOAT32_BYTES = 4

#: On-disk/wire encoding of vector components
VECTOR_DTYPE = np.dtype("<f4")


def build_index(words: Sequence[str]) -> Dict[str, int]:
    """Map each word to its row; later duplicates overwrite earlier ones.

    Examples:
        >>> build_index(["a", "b", "a"])
        {'a': 2, 'b': 1}
    """
    index: Dict[str, int] = {}
    for row, word in enumerate(words):
        index[word] = row
    return index


def _freeze_buffer(vectors: NDArray[np.float32]) -> NDArray[np.float32]:
    buffer = np.asarray(vectors)
    if buffer.dtype != np.float32:
        buffer = buffer.astype(np.float32)
    buffer = buffer.reshape(-1)
    if buffer.flags.writeable or not buffer.flags.c_contiguous:
        buffer = np.ascontiguousarray(buffer).copy()
        buffer.flags.writeable = False
    return buffer


@dataclass(frozen=True, eq=False)
class EmbeddingTable:
    """Validated, read-only word-embedding table.

    Attributes:
        dim: Components per word vector.
        words: Ordered words; ``words[i]`` owns row ``i``.
        vectors: Flat row-major float32 buffer of ``len(words) * dim`` values.
        index: Read-only mapping ``word -> row`` built once from ``words``.

    Examples:
        >>> table = EmbeddingTable(2, ("cat", "dog"), np.arange(4, dtype=np.float32))
        >>> table.row(table.index["dog"]).tolist()
        [2.0, 3.0]
    """

    dim: int
    words: Tuple[str, ...]
    vectors: NDArray[np.float32]
    index: Mapping[str, int] = field(init=False)

    def __post_init__(self) -> None:
        if isinstance(self.dim, bool) or not isinstance(self.dim, int) or self.dim <= 0:
            raise InvalidVocabulary(f"dim must be a positive integer, got {self.dim!r}")
        words = tuple(self.words)
        vectors = _freeze_buffer(self.vectors)
        expected = len(words) * self.dim
        if vectors.size != expected:
            raise ShapeMismatch(
                f"vector length mismatch (expected {expected}, got {vectors.size})",
                expected=expected,
                actual=int(vectors.size),
            )
        object.__setattr__(self, "words", words)
        object.__setattr__(self, "vectors", vectors)
        object.__setattr__(self, "index", MappingProxyType(build_index(words)))

    def __len__(self) -> int:
        return len(self.words)

    @property
    def matrix(self) -> NDArray[np.float32]:
        """``(len(words), dim)`` view over the shared buffer."""
        return self.vectors.reshape(len(self.words), self.dim)

    def row(self, row: int) -> NDArray[np.float32]:
        """Zero-copy view of row ``row``; valid as long as the table is alive."""
        start = row * self.dim
        return self.vectors[start : start + self.dim]
