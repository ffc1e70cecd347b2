# === NAVMAP v1 ===
# {
#   "module": "WordVectors.Ingestion.pipeline",
#   "purpose": "Fetch, validate, and assemble vocabulary and vector parts into an EmbeddingTable",
#   "sections": [
#     {"id": "assemble-table", "name": "assemble_table", "anchor": "function-assemble-table", "kind": "function"},
#     {"id": "embeddingloader", "name": "EmbeddingLoader", "anchor": "class-embeddingloader", "kind": "class"},
#     {"id": "load-embeddings", "name": "load_embeddings", "anchor": "function-load-embeddings", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""
Embedding Ingestion Pipeline

Loads the two-artifact layout (JSON vocabulary + little-endian float32 vector
blob, optionally split into ordered parts) into an immutable
:class:`~WordVectors.VectorSearch.table.EmbeddingTable`.

Stages, in order:

1. Report progress ``0.0``.
2. Fetch and validate the vocabulary (``dim`` and word list).
3. Fetch every vector part concurrently. Each part is checked for a success
   status and a non-markup content type before its bytes are accepted, then
   streamed chunk by chunk (or read whole) into its own buffer.
4. Check that the combined length is float32 aligned, concatenate the parts
   in caller order, and decode them.
5. Build the table, which enforces ``len(words) * dim`` floats.
6. Report progress ``1.0``.

Any failure aborts the load. The first failure is raised at once without
waiting for sibling fetches; those stop at their next chunk, their bytes are
dropped, and their progress is muted. No partial table is ever returned.
"""

from __future__ import annotations

import logging
import time
from concurrent import futures
from typing import List, Optional, Sequence, Union

import numpy as np

from ..errors import (
    AlignmentError,
    EmbeddingLoadError,
    LoadCancelled,
    TransportFailure,
    UnexpectedContentType,
)
from ..settings import LoaderSettings
from ..VectorSearch.table import FLOAT32_BYTES, VECTOR_DTYPE, EmbeddingTable
from .cancellation import CancellationToken
from .progress import (
    NullProgressTracker,
    ProgressCallback,
    ProgressChannel,
    ProgressTracker,
    create_progress_tracker,
)
from .transport import DefaultTransport, SourceResponse, Transport
from .types import VectorSource, VectorSourceLike, VocabularyDescriptor, coerce_source
from .vocabulary import parse_vocabulary_bytes

__all__ = [
    "MARKUP_CONTENT_TYPES",
    "EmbeddingLoader",
    "assemble_table",
    "is_markup_content_type",
    "load_embeddings",
]

logger = logging.getLogger(__name__)

#: Content types that indicate an error/fallback page instead of binary data
MARKUP_CONTENT_TYPES = frozenset({"text/html", "application/xhtml+xml"})

Tracker = Union[ProgressTracker, NullProgressTracker]


def is_markup_content_type(content_type: Optional[str]) -> bool:
    """Return ``True`` when ``content_type`` names an HTML/XHTML payload.

    Examples:
        >>> is_markup_content_type("text/html; charset=utf-8")
        True
        >>> is_markup_content_type("application/octet-stream")
        False
    """
    if not content_type:
        return False
    mime = content_type.split(";", 1)[0].strip().lower()
    return mime in MARKUP_CONTENT_TYPES


def _ensure_success(response: SourceResponse, label: str) -> None:
    if not response.ok:
        raise TransportFailure(
            f"failed to fetch {label} ({response.status_code} {response.reason})",
            source=response.location,
            status_code=response.status_code,
            reason=response.reason,
        )


def assemble_table(
    vocabulary: VocabularyDescriptor, parts: Sequence[Union[bytes, bytearray]]
) -> EmbeddingTable:
    """Concatenate vector parts in order and build the table.

    Args:
        vocabulary: Validated vocabulary descriptor.
        parts: Raw bytes of each part, in caller order. Part boundaries need
            not fall on row or float boundaries.

    Returns:
        :class:`EmbeddingTable` backed by the merged, read-only buffer.

    Raises:
        AlignmentError: If the combined length is not a multiple of 4.
        ShapeMismatch: If the float count differs from ``len(words) * dim``.

    Examples:
        >>> vocab = VocabularyDescriptor(dim=1, words=("a", "b"))
        >>> blob = np.array([1.5, -2.0], dtype="<f4").tobytes()
        >>> assemble_table(vocab, [blob[:3], blob[3:]]).vectors.tolist()
        [1.5, -2.0]
    """
    total_bytes = sum(len(part) for part in parts)
    if total_bytes % FLOAT32_BYTES != 0:
        raise AlignmentError(
            f"vector chunks are not float32-aligned ({total_bytes} bytes total)",
            total_bytes=total_bytes,
        )
    merged = b"".join(parts)
    vectors = np.frombuffer(merged, dtype=VECTOR_DTYPE).astype(np.float32, copy=False)
    return EmbeddingTable(vocabulary.dim, vocabulary.words, vectors)


class EmbeddingLoader:
    """Load embedding tables through a :class:`~WordVectors.Ingestion.transport.Transport`.

    Attributes:
        settings: Loader settings (chunk size, fetch fan-out).
        transport: Transport used for every artifact. When none is supplied a
            :class:`DefaultTransport` is created and closed by :meth:`close`.

    Examples:
        >>> with EmbeddingLoader() as loader:  # doctest: +SKIP
        ...     table = loader.load("vocab.json", ["vectors.f32.part0", "vectors.f32.part1"])
    """

    def __init__(
        self,
        transport: Optional[Transport] = None,
        *,
        settings: Optional[LoaderSettings] = None,
    ) -> None:
        self.settings = settings or LoaderSettings()
        self._owns_transport = transport is None
        self.transport: Transport = (
            transport if transport is not None else DefaultTransport(settings=self.settings)
        )

    def __enter__(self) -> "EmbeddingLoader":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_transport:
            close = getattr(self.transport, "close", None)
            if callable(close):
                close()

    # --- Public API ---

    def fetch_vocabulary(self, location: str) -> VocabularyDescriptor:
        """Fetch and validate the vocabulary descriptor at ``location``.

        Raises:
            TransportFailure: If the transport reports a failure status.
            InvalidVocabulary: If the payload is not a valid descriptor.
        """
        with self.transport.open(location) as response:
            _ensure_success(response, location)
            raw = response.read()
        return parse_vocabulary_bytes(raw, source=location)

    def load(
        self,
        vocabulary_source: str,
        vector_sources: Sequence[VectorSourceLike],
        on_progress: Union[ProgressCallback, ProgressChannel, None] = None,
    ) -> EmbeddingTable:
        """Run the full pipeline and return the validated table.

        Args:
            vocabulary_source: Location of the JSON vocabulary.
            vector_sources: Ordered vector parts; strings are treated as
                streaming :class:`VectorSource` locations.
            on_progress: Optional ``callback(ratio)`` or
                :class:`ProgressChannel`.

        Returns:
            Immutable :class:`EmbeddingTable`.

        Raises:
            EmbeddingLoadError: Subclass describing the first failure.
            TypeError: If ``vector_sources`` is a bare string.
            ValueError: If ``vector_sources`` is empty.
        """
        if isinstance(vector_sources, (str, bytes)):
            raise TypeError("vector_sources must be a sequence of locations, not a single string")
        sources = [coerce_source(source) for source in vector_sources]
        if not sources:
            raise ValueError("at least one vector source is required")

        tracker = create_progress_tracker(len(sources), on_progress)
        started = time.perf_counter()
        try:
            tracker.begin()
            vocabulary = self.fetch_vocabulary(vocabulary_source)
            parts = self._fetch_parts(sources, tracker)
            table = assemble_table(vocabulary, parts)
            tracker.complete()
        except EmbeddingLoadError as exc:
            logger.error(
                "embedding load failed",
                extra={
                    "stage": "ingest",
                    "error": str(exc),
                    "error_type": exc.__class__.__name__,
                    "source": exc.source,
                },
            )
            raise
        finally:
            tracker.close()

        logger.info(
            "embedding table loaded",
            extra={
                "stage": "ingest",
                "words": len(table.words),
                "dim": table.dim,
                "parts": len(sources),
                "bytes": int(table.vectors.nbytes),
                "elapsed_ms": round((time.perf_counter() - started) * 1000, 2),
            },
        )
        return table

    # --- Internals ---

    def _fetch_parts(
        self, sources: List[VectorSource], tracker: Tracker
    ) -> List[Union[bytes, bytearray]]:
        token = CancellationToken()
        workers = min(self.settings.max_concurrent_fetches, len(sources))
        if workers <= 1:
            return [
                self._fetch_part(index, source, tracker, token)
                for index, source in enumerate(sources)
            ]

        executor = futures.ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="wordvec-fetch"
        )
        aborted = False
        try:
            positions = {
                executor.submit(self._fetch_part, index, source, tracker, token): index
                for index, source in enumerate(sources)
            }
            pending = set(positions)
            while pending:
                done, pending = futures.wait(pending, return_when=futures.FIRST_EXCEPTION)
                failed = sorted(
                    (future for future in done if future.exception() is not None),
                    key=positions.__getitem__,
                )
                if failed:
                    aborted = True
                    token.cancel()
                    tracker.mute()
                    for future in pending:
                        future.cancel()
                    raise failed[0].exception()  # type: ignore[misc]
            ordered = sorted(positions, key=positions.__getitem__)
            return [future.result() for future in ordered]
        finally:
            # Siblings stalled before their first chunk drain in the background.
            executor.shutdown(wait=not aborted, cancel_futures=True)

    def _fetch_part(
        self,
        index: int,
        source: VectorSource,
        tracker: Tracker,
        token: CancellationToken,
    ) -> Union[bytes, bytearray]:
        if token.is_cancelled():
            raise LoadCancelled(
                f"load cancelled before fetching {source.location}", source=source.location
            )
        started = time.perf_counter()
        with self.transport.open(source.location) as response:
            _ensure_success(response, source.location)
            if is_markup_content_type(response.content_type):
                raise UnexpectedContentType(
                    f"{source.location} request returned HTML ({response.url}); "
                    "expected binary float32 vector data",
                    source=source.location,
                    content_type=response.content_type,
                )
            tracker.start(index, response.content_length)
            if source.streaming and response.streaming:
                buffer = bytearray()
                for chunk in response.iter_chunks(self.settings.chunk_size_bytes):
                    if token.is_cancelled():
                        raise LoadCancelled(
                            f"load cancelled while fetching {source.location}",
                            source=source.location,
                        )
                    if not chunk:
                        continue
                    buffer += chunk
                    tracker.advance(index, len(chunk))
                data: Union[bytes, bytearray] = buffer
            else:
                data = response.read()
                tracker.advance(index, len(data))
            tracker.finish(index)

        logger.debug(
            "vector part fetched",
            extra={
                "stage": "fetch",
                "source": source.location,
                "part": index,
                "bytes": len(data),
                "elapsed_ms": round((time.perf_counter() - started) * 1000, 2),
            },
        )
        return data


def load_embeddings(
    vocabulary_source: str,
    vector_sources: Sequence[VectorSourceLike],
    on_progress: Union[ProgressCallback, ProgressChannel, None] = None,
    *,
    transport: Optional[Transport] = None,
    settings: Optional[LoaderSettings] = None,
) -> EmbeddingTable:
    """Functional wrapper around :meth:`EmbeddingLoader.load`."""

    with EmbeddingLoader(transport, settings=settings) as loader:
        return loader.load(vocabulary_source, vector_sources, on_progress)
