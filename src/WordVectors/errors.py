"""Exception hierarchy shared across embedding ingestion and search.

Loading a word-vector table touches a small JSON vocabulary, one or more
binary vector parts, and a validation pass that stitches them together.  This
module groups the failure modes of that pipeline into a hierarchy so callers
can react to the broad category (any :class:`EmbeddingLoadError`) while still
being able to inspect the specific failure (status code, observed byte count,
expected vs. actual float count).

Query-time operations never raise these errors; unknown words are reported by
``None`` or an empty result instead.
"""

from __future__ import annotations

from typing import Optional

__all__ = [
    "WordVectorsError",
    "ConfigError",
    "EmbeddingLoadError",
    "TransportFailure",
    "UnexpectedContentType",
    "AlignmentError",
    "ShapeMismatch",
    "InvalidVocabulary",
    "LoadCancelled",
]


class WordVectorsError(RuntimeError):
    """Base exception for configuration, ingestion, or search failures."""


class ConfigError(WordVectorsError):
    """Raised when settings files or values are invalid."""


class EmbeddingLoadError(WordVectorsError):
    """Base class for failures raised while assembling an embedding table."""

    def __init__(self, message: str, *, source: Optional[str] = None) -> None:
        super().__init__(message)
        self.source = source


class TransportFailure(EmbeddingLoadError):
    """Raised when the vocabulary or a vector part cannot be fetched."""

    def __init__(
        self,
        message: str,
        *,
        source: Optional[str] = None,
        status_code: Optional[int] = None,
        reason: Optional[str] = None,
    ) -> None:
        super().__init__(message, source=source)
        self.status_code = status_code
        self.reason = reason


class UnexpectedContentType(EmbeddingLoadError):
    """Raised when a vector part is served as markup instead of binary data.

    This almost always means a deployment is missing the binary parts and the
    server answered with an HTML fallback page.
    """

    def __init__(
        self,
        message: str,
        *,
        source: Optional[str] = None,
        content_type: Optional[str] = None,
    ) -> None:
        super().__init__(message, source=source)
        self.content_type = content_type


class AlignmentError(EmbeddingLoadError):
    """Raised when the combined vector byte length is not float32 aligned."""

    def __init__(self, message: str, *, total_bytes: int) -> None:
        super().__init__(message)
        self.total_bytes = total_bytes


class ShapeMismatch(EmbeddingLoadError):
    """Raised when the decoded float count disagrees with ``len(words) * dim``."""

    def __init__(self, message: str, *, expected: int, actual: int) -> None:
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class InvalidVocabulary(EmbeddingLoadError):
    """Raised when the vocabulary descriptor has a bad ``dim`` or word list."""


class LoadCancelled(EmbeddingLoadError):
    """Raised inside a fetch worker once a sibling fetch has already failed."""
