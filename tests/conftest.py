"""
Pytest Configuration

Adds ``src`` to ``sys.path`` and provides shared fixtures for ingestion and
search tests:

- ``memory_transport``: factory for an in-memory transport whose sources can
  throttle, stall until an event fires, hide their length, or fail.
- ``make_vocabulary`` / ``make_blob`` / ``write_artifacts``: helpers for
  building artifacts in memory or under ``tmp_path``.
- ``loader_settings``: settings isolated from ``WORDVEC_*`` environment
  variables.

Usage:
    pytest tests/
"""

from __future__ import annotations

import contextlib
import json
import os
import sys
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Sequence

import numpy as np
import pytest

ROOT = Path(__file__).resolve().parent.parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from WordVectors.settings import LoaderSettings  # noqa: E402


# --- In-memory transport ---


@dataclass
class MemorySource:
    """Scripted behaviour for one location served by :class:`MemoryTransport`."""

    payload: bytes = b""
    content_type: Optional[str] = "application/octet-stream"
    status_code: int = 200
    reason: str = "OK"
    announce_length: bool = True
    streaming: bool = True
    chunk_size: Optional[int] = None
    chunk_delay: float = 0.0
    wait_for: Optional[threading.Event] = None
    signal_done: Optional[threading.Event] = None
    chunks_served: int = 0


class MemoryResponse:
    def __init__(self, location: str, source: MemorySource) -> None:
        self.location = location
        self.url = f"memory://{location}"
        self._source = source
        self.status_code = source.status_code
        self.reason = source.reason
        self.content_type = source.content_type
        self.content_length = len(source.payload) if source.announce_length else None
        self.streaming = source.streaming

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def iter_chunks(self, chunk_size: int) -> Iterator[bytes]:
        source = self._source
        if source.wait_for is not None:
            source.wait_for.wait(timeout=5)
        size = source.chunk_size or chunk_size
        for start in range(0, len(source.payload), size):
            if source.chunk_delay:
                time.sleep(source.chunk_delay)
            source.chunks_served += 1
            yield source.payload[start : start + size]
        if source.signal_done is not None:
            source.signal_done.set()

    def read(self) -> bytes:
        source = self._source
        if source.wait_for is not None:
            source.wait_for.wait(timeout=5)
        source.chunks_served += 1
        if source.signal_done is not None:
            source.signal_done.set()
        return source.payload


@dataclass
class MemoryTransport:
    """Transport serving :class:`MemorySource` entries; unknown locations are 404."""

    sources: Dict[str, MemorySource]
    opened: List[str] = field(default_factory=list)
    closed: List[str] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    @contextlib.contextmanager
    def open(self, location: str) -> Iterator[MemoryResponse]:
        with self._lock:
            self.opened.append(location)
        source = self.sources.get(location)
        if source is None:
            source = MemorySource(status_code=404, reason="Not Found", content_type="text/html")
        try:
            yield MemoryResponse(location, source)
        finally:
            with self._lock:
                self.closed.append(location)


def vocabulary_bytes(dim: object, words: Sequence[object], key: str = "words") -> bytes:
    return json.dumps({"dim": dim, key: list(words)}).encode("utf-8")


def float_blob(values: Sequence[float]) -> bytes:
    return np.asarray(values, dtype="<f4").tobytes()


# --- Fixtures ---


@pytest.fixture
def loader_settings(monkeypatch) -> Callable[..., LoaderSettings]:
    """Return a factory for settings unaffected by ``WORDVEC_*`` variables."""

    for name in list(os.environ):
        if name.upper().startswith("WORDVEC_"):
            monkeypatch.delenv(name, raising=False)

    def factory(**overrides) -> LoaderSettings:
        return LoaderSettings(**overrides)

    return factory


@pytest.fixture
def memory_transport() -> Callable[[Dict[str, MemorySource]], MemoryTransport]:
    def factory(sources: Dict[str, MemorySource]) -> MemoryTransport:
        return MemoryTransport(dict(sources))

    return factory


@pytest.fixture
def memory_source() -> type:
    return MemorySource


@pytest.fixture
def make_vocabulary() -> Callable[..., bytes]:
    return vocabulary_bytes


@pytest.fixture
def make_blob() -> Callable[[Sequence[float]], bytes]:
    return float_blob


@pytest.fixture
def write_artifacts(tmp_path) -> Callable[..., Dict[str, object]]:
    """Write a vocabulary and vector parts under ``tmp_path``.

    Returns a mapping with the absolute ``vocab`` path and the ``parts`` list.
    """

    def factory(dim: int, words: Sequence[str], values: Sequence[float], splits: Sequence[int] = ()):
        vocab_path = tmp_path / "vocab.json"
        vocab_path.write_bytes(vocabulary_bytes(dim, words))
        blob = float_blob(values)
        bounds = [0, *splits, len(blob)]
        parts = []
        for index, (start, stop) in enumerate(zip(bounds, bounds[1:])):
            part_path = tmp_path / f"vectors.f32.part{index}"
            part_path.write_bytes(blob[start:stop])
            parts.append(str(part_path))
        return {"vocab": str(vocab_path), "parts": parts}

    return factory
