# === NAVMAP v1 ===
# {
#   "module": "WordVectors.Ingestion",
#   "purpose": "Embedding ingestion public API facade",
#   "sections": []
# }
# === /NAVMAP ===

"""
WordVectors.Ingestion turns the two-artifact layout (JSON vocabulary plus a
little-endian float32 blob, optionally split into ordered parts) into a
validated :class:`~WordVectors.VectorSearch.table.EmbeddingTable`.

Modules:

- ``vocabulary`` parses and validates the ``dim``/word-list descriptor.
- ``transport`` defines the ``Transport``/``SourceResponse`` contract and the
  HTTP (``httpx``) and filesystem implementations.
- ``network`` builds the ``httpx.Client`` used for HTTP downloads.
- ``progress`` aggregates per-part byte counters into one ratio and offers a
  fan-in ``ProgressChannel``.
- ``pipeline`` runs the fetch → sniff → align → concatenate → shape-check
  sequence with concurrent part downloads and first-failure cancellation.
"""

from __future__ import annotations

# --- Globals ---

__all__ = (
    "ChunkProgress",
    "DefaultTransport",
    "EmbeddingLoader",
    "FileTransport",
    "HttpTransport",
    "ProgressChannel",
    "ProgressEvent",
    "SourceResponse",
    "Transport",
    "VectorSource",
    "VocabularyDescriptor",
    "assemble_table",
    "load_embeddings",
    "parse_vocabulary",
)


# --- Re-exports ---

from .pipeline import EmbeddingLoader, assemble_table, load_embeddings
from .progress import ProgressChannel, ProgressEvent
from .transport import DefaultTransport, FileTransport, HttpTransport, SourceResponse, Transport
from .types import ChunkProgress, VectorSource, VocabularyDescriptor
from .vocabulary import parse_vocabulary
