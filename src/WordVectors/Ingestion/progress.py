# === NAVMAP v1 ===
# {
#   "module": "WordVectors.Ingestion.progress",
#   "purpose": "Aggregate per-part byte counters into a single progress ratio",
#   "sections": [
#     {"id": "progressevent", "name": "ProgressEvent", "anchor": "class-progressevent", "kind": "class"},
#     {"id": "progresschannel", "name": "ProgressChannel", "anchor": "class-progresschannel", "kind": "class"},
#     {"id": "progresstracker", "name": "ProgressTracker", "anchor": "class-progresstracker", "kind": "class"},
#     {"id": "create-progress-tracker", "name": "create_progress_tracker", "anchor": "function-create-progress-tracker", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Progress aggregation for multi-part vector downloads.

Every vector part owns one :class:`~WordVectors.Ingestion.types.ChunkProgress`
slot. After each chunk the tracker recomputes a single ratio:

- when every part has announced its length, ``sum(loaded) / sum(total)``
  clamped to ``[0, 1]``;
- otherwise the unweighted mean of per-part completion, where a finished part
  of unknown length counts as ``1.0`` and an unfinished one as ``0.0``.

The ratio ``0.0`` is emitted before any I/O and ``1.0`` exactly once, when the
whole load (including validation) has succeeded. Chunk updates that would
already read ``1.0`` are held back so consumers can treat ``1.0`` as "table
ready".

Consumers either pass a plain ``callback(ratio)`` or a :class:`ProgressChannel`
which fans the events of all concurrent fetches into one iterable stream.
"""

from __future__ import annotations

import queue
import threading
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional, Union

from .types import ChunkProgress

__all__ = [
    "NullProgressTracker",
    "ProgressCallback",
    "ProgressChannel",
    "ProgressEvent",
    "ProgressTracker",
    "aggregate_ratio",
    "create_progress_tracker",
]

ProgressCallback = Callable[[float], None]


@dataclass(frozen=True, slots=True)
class ProgressEvent:
    """One aggregated progress update.

    Attributes:
        ratio: Aggregated completion in ``[0, 1]``.
        source_index: Part whose chunk triggered the update; ``None`` for the
            initial and final events.
        loaded_bytes: Bytes received across all parts so far.
        total_bytes: Sum of announced part lengths, ``None`` if any is unknown.
    """

    ratio: float
    source_index: Optional[int]
    loaded_bytes: int
    total_bytes: Optional[int]


class ProgressChannel:
    """Queue-backed fan-in of progress events.

    Pass the channel wherever a progress callback is accepted and iterate it
    from another thread; iteration ends once the pipeline closes the channel
    at the end of the load (successful or not).

    Examples:
        >>> channel = ProgressChannel()
        >>> channel.publish(ProgressEvent(0.0, None, 0, None))
        >>> channel.close()
        >>> [event.ratio for event in channel]
        [0.0]
    """

    _CLOSED = object()

    def __init__(self, maxsize: int = 0) -> None:
        self._queue: "queue.Queue[object]" = queue.Queue(maxsize=maxsize)
        self._closed = threading.Event()

    def publish(self, event: ProgressEvent) -> None:
        if self._closed.is_set():
            return
        self._queue.put(event)

    def __call__(self, ratio: float) -> None:
        self.publish(ProgressEvent(ratio, None, 0, None))

    def close(self) -> None:
        if not self._closed.is_set():
            self._closed.set()
            self._queue.put(self._CLOSED)

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def __iter__(self) -> Iterator[ProgressEvent]:
        while True:
            item = self._queue.get()
            if item is self._CLOSED:
                return
            yield item  # type: ignore[misc]


def aggregate_ratio(slots: List[ChunkProgress]) -> float:
    """Combine per-part counters into one ratio in ``[0, 1]``.

    Examples:
        >>> aggregate_ratio([ChunkProgress(5, 10), ChunkProgress(10, 30)])
        0.375
        >>> aggregate_ratio([ChunkProgress(5, 10), ChunkProgress(7, None, done=True)])
        0.75
    """
    if not slots:
        return 0.0
    if all(slot.total_bytes is not None for slot in slots):
        total = sum(slot.total_bytes for slot in slots)  # type: ignore[misc]
        if total <= 0:
            return 1.0 if all(slot.done for slot in slots) else 0.0
        loaded = sum(slot.loaded_bytes for slot in slots)
        return min(max(loaded / total, 0.0), 1.0)
    return sum(slot.fraction() for slot in slots) / len(slots)


class ProgressTracker:
    """Thread-safe per-part progress bookkeeping for one load.

    Slot updates and the aggregate read happen under one lock, and the sink is
    invoked while holding it, so emitted events are serialised even though
    parts stream concurrently.
    """

    def __init__(self, source_count: int, sink: Callable[[ProgressEvent], None]) -> None:
        self._slots = [ChunkProgress() for _ in range(source_count)]
        self._sink = sink
        self._lock = threading.Lock()
        self._completed = False
        self._muted = False

    def _event(self, ratio: float, source_index: Optional[int]) -> ProgressEvent:
        totals = [slot.total_bytes for slot in self._slots]
        total = None if any(value is None for value in totals) else sum(totals)  # type: ignore[arg-type]
        loaded = sum(slot.loaded_bytes for slot in self._slots)
        return ProgressEvent(ratio, source_index, loaded, total)

    def _emit_partial(self, source_index: int) -> None:
        ratio = aggregate_ratio(self._slots)
        if ratio < 1.0 and not self._muted:
            self._sink(self._event(ratio, source_index))

    def begin(self) -> None:
        with self._lock:
            self._sink(self._event(0.0, None))

    def start(self, index: int, total_bytes: Optional[int]) -> None:
        with self._lock:
            slot = self._slots[index]
            slot.total_bytes = total_bytes
            slot.loaded_bytes = 0
            slot.done = False

    def advance(self, index: int, nbytes: int) -> None:
        with self._lock:
            self._slots[index].loaded_bytes += nbytes
            self._emit_partial(index)

    def finish(self, index: int) -> None:
        with self._lock:
            self._slots[index].done = True
            self._emit_partial(index)

    def complete(self) -> None:
        with self._lock:
            if self._completed or self._muted:
                return
            self._completed = True
            self._sink(self._event(1.0, None))

    def mute(self) -> None:
        """Stop emitting; fetches still draining after a failure stay silent."""
        with self._lock:
            self._muted = True

    def ratio(self) -> float:
        with self._lock:
            return aggregate_ratio(self._slots)

    def close(self) -> None:
        """Release the sink; closes a :class:`ProgressChannel` sink."""
        owner = getattr(self._sink, "__self__", None)
        if isinstance(owner, ProgressChannel):
            owner.close()


class NullProgressTracker:
    """Tracker used when no progress consumer is attached."""

    def begin(self) -> None:
        pass

    def start(self, index: int, total_bytes: Optional[int]) -> None:
        pass

    def advance(self, index: int, nbytes: int) -> None:
        pass

    def finish(self, index: int) -> None:
        pass

    def complete(self) -> None:
        pass

    def mute(self) -> None:
        pass

    def ratio(self) -> float:
        return 0.0

    def close(self) -> None:
        pass


def create_progress_tracker(
    source_count: int,
    on_progress: Union[ProgressCallback, ProgressChannel, None],
) -> Union[ProgressTracker, NullProgressTracker]:
    """Return a tracker feeding ``on_progress``, or a no-op tracker when absent."""

    if on_progress is None:
        return NullProgressTracker()
    if isinstance(on_progress, ProgressChannel):
        return ProgressTracker(source_count, on_progress.publish)
    callback = on_progress

    def _sink(event: ProgressEvent) -> None:
        callback(event.ratio)

    return ProgressTracker(source_count, _sink)
