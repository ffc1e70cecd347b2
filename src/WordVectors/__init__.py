# === NAVMAP v1 ===
# {
#   "module": "WordVectors",
#   "purpose": "Word vector loading and exact similarity search facade",
#   "sections": [
#     {"id": "load-word-vectors", "name": "load_word_vectors", "anchor": "function-load-word-vectors", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""
WordVectors loads a fixed-dimensionality word-embedding table and answers
exact nearest-neighbour and analogy queries over it.

Two subpackages, used in dependency order:

- ``Ingestion`` fetches the JSON vocabulary and one or more binary vector
  parts (HTTP or local files), validates alignment and shape, and produces an
  immutable ``EmbeddingTable`` while reporting progress.
- ``VectorSearch`` wraps the table in a read-only ``WordVectorStore``.

Example:
    >>> from WordVectors import load_word_vectors
    >>> store = load_word_vectors("vocab.json", ["vectors.f32"])  # doctest: +SKIP
    >>> store.nearest("cat", 5)  # doctest: +SKIP
"""

from __future__ import annotations

from typing import Optional, Sequence, Union

__version__ = "0.1.0"

# --- Globals ---

__all__ = (
    "EmbeddingTable",
    "LoaderSettings",
    "ProgressChannel",
    "ScoredWord",
    "VectorSource",
    "WordVectorStore",
    "WordVectorsError",
    "__version__",
    "load_word_vectors",
)


# --- Re-exports ---

from .errors import WordVectorsError
from .Ingestion import EmbeddingLoader, ProgressChannel, Transport, VectorSource
from .Ingestion.progress import ProgressCallback
from .Ingestion.types import VectorSourceLike
from .settings import LoaderSettings
from .VectorSearch import EmbeddingTable, ScoredWord, WordVectorStore


def load_word_vectors(
    vocabulary_source: Optional[str] = None,
    vector_sources: Optional[Sequence[VectorSourceLike]] = None,
    on_progress: Union[ProgressCallback, ProgressChannel, None] = None,
    *,
    transport: Optional[Transport] = None,
    settings: Optional[LoaderSettings] = None,
) -> WordVectorStore:
    """Load an embedding table and wrap it in a :class:`WordVectorStore`.

    Args:
        vocabulary_source: Vocabulary location; defaults to
            ``settings.vocabulary_location``.
        vector_sources: Ordered vector parts; defaults to
            ``settings.vector_locations``.
        on_progress: Optional ``callback(ratio)`` or :class:`ProgressChannel`.
        transport: Transport override (HTTP client, test fake, ...).
        settings: Loader settings; read from the environment when omitted.

    Returns:
        Store ready for concurrent read-only queries.
    """
    settings = settings or LoaderSettings()
    vocabulary_source = vocabulary_source or settings.vocabulary_location
    if vector_sources is None:
        vector_sources = settings.vector_locations
    with EmbeddingLoader(transport, settings=settings) as loader:
        table = loader.load(vocabulary_source, vector_sources, on_progress)
    return WordVectorStore(table, block_rows=settings.search_block_rows)
