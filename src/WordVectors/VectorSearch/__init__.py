"""
WordVectors.VectorSearch serves exact queries over a loaded embedding table.

- ``table`` holds the immutable ``EmbeddingTable`` (words, word→row index,
  flat float32 buffer) and enforces its shape invariant.
- ``topk`` implements the bounded, improvement-only top-K selection.
- ``store`` exposes ``WordVectorStore`` with membership, zero-copy vector
  lookup, raw dot-product similarity, nearest neighbours and analogies.
"""

from __future__ import annotations

__all__ = (
    "EmbeddingTable",
    "ScoredWord",
    "TopKSelector",
    "WordVectorStore",
    "l2_normalize",
    "similarity",
)

from .store import WordVectorStore, l2_normalize, similarity
from .table import EmbeddingTable
from .topk import TopKSelector
from .types import ScoredWord
