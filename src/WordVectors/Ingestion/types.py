"""
Typed structures exchanged by the ingestion pipeline.

- ``VocabularyDescriptor``: the parsed JSON side-channel (``dim`` + ordered
  word list) that defines the table shape.
- ``VectorSource``: a caller-specified vector part location and its delivery
  mode.
- ``ChunkProgress``: per-part byte counters maintained while parts stream in.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple, Union

__all__ = ["ChunkProgress", "VectorSource", "VectorSourceLike", "VocabularyDescriptor", "coerce_source"]


@dataclass(frozen=True, slots=True)
class VocabularyDescriptor:
    """Shape of the embedding table as declared by the vocabulary artifact.

    Attributes:
        dim: Number of float32 components per word (positive).
        words: Ordered words; position ``i`` owns row ``i`` of the vector blob.

    Examples:
        >>> VocabularyDescriptor(dim=2, words=("cat", "dog")).expected_floats
        4
    """

    dim: int
    words: Tuple[str, ...]

    @property
    def expected_floats(self) -> int:
        return len(self.words) * self.dim


@dataclass(frozen=True, slots=True)
class VectorSource:
    """One ordered part of the binary vector artifact.

    Attributes:
        location: URL, path, or transport-relative name of the part.
        streaming: Read the part chunk by chunk (with per-chunk progress) when
            the transport supports it; otherwise read it as a single buffer.
    """

    location: str
    streaming: bool = True


VectorSourceLike = Union[str, VectorSource]


def coerce_source(source: VectorSourceLike) -> VectorSource:
    """Return ``source`` as a :class:`VectorSource`, wrapping bare locations."""

    if isinstance(source, VectorSource):
        return source
    return VectorSource(location=str(source))


@dataclass(slots=True)
class ChunkProgress:
    """Byte counters for a single vector part.

    ``total_bytes`` is ``None`` when the transport did not announce a length.
    """

    loaded_bytes: int = 0
    total_bytes: Optional[int] = None
    done: bool = False

    def fraction(self) -> float:
        """Completion of this part in ``[0, 1]``."""
        if self.total_bytes is None:
            return 1.0 if self.done else 0.0
        if self.total_bytes <= 0:
            return 1.0 if self.done else 0.0
        return min(self.loaded_bytes / self.total_bytes, 1.0)
