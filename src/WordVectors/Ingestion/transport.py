# === NAVMAP v1 ===
# {
#   "module": "WordVectors.Ingestion.transport",
#   "purpose": "Transport contract plus HTTP and filesystem implementations",
#   "sections": [
#     {"id": "contract", "name": "SourceResponse / Transport", "anchor": "CON", "kind": "api"},
#     {"id": "http", "name": "HttpTransport", "anchor": "HTT", "kind": "class"},
#     {"id": "file", "name": "FileTransport", "anchor": "FIL", "kind": "class"},
#     {"id": "default", "name": "DefaultTransport", "anchor": "DEF", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Transport contract used by the ingestion pipeline.

The pipeline never talks to HTTPX or the filesystem directly.  It asks a
:class:`Transport` to ``open`` a location and receives a
:class:`SourceResponse` that reports:

- a success/failure status (``status_code``, ``reason``, ``ok``),
- the total byte length when known in advance (``content_length``),
- a content classification (``content_type``) used to reject markup pages
  substituted for binary parts,
- the payload, either progressively (``iter_chunks``) or as one buffer
  (``read``).

``HttpTransport`` streams through an ``httpx.Client``; ``FileTransport``
reads local files and maps missing/unreadable files onto 404/403 statuses so
both transports fail the same way.  ``DefaultTransport`` routes ``http(s)://``
locations (or everything, when a ``base_url`` is configured) to HTTP and the
rest to the filesystem.
"""

from __future__ import annotations

import contextlib
import logging
import mimetypes
import os
import threading
from pathlib import Path
from typing import BinaryIO, ContextManager, Iterator, Optional, Protocol, runtime_checkable
from urllib.parse import urljoin, urlparse

import httpx

from ..errors import TransportFailure
from ..settings import LoaderSettings
from .network import create_http_client

__all__ = [
    "DefaultTransport",
    "FileSourceResponse",
    "FileTransport",
    "HttpSourceResponse",
    "HttpTransport",
    "SourceResponse",
    "Transport",
    "is_remote",
]

logger = logging.getLogger(__name__)

_FILE_READ_SIZE = 1 << 20


@runtime_checkable
class SourceResponse(Protocol):
    """Opened source as seen by the pipeline."""

    location: str
    url: str
    status_code: int
    reason: str
    content_type: Optional[str]
    content_length: Optional[int]
    streaming: bool

    @property
    def ok(self) -> bool: ...

    def iter_chunks(self, chunk_size: int) -> Iterator[bytes]: ...

    def read(self) -> bytes: ...


class Transport(Protocol):
    """Anything that can open a location and yield a :class:`SourceResponse`."""

    def open(self, location: str) -> ContextManager[SourceResponse]: ...


def is_remote(location: str) -> bool:
    """Return ``True`` for ``http://`` and ``https://`` locations."""

    return urlparse(location).scheme in {"http", "https"}


# --- HTTP ---


class HttpSourceResponse:
    """:class:`SourceResponse` backed by a streamed ``httpx.Response``."""

    streaming = True

    def __init__(self, location: str, response: httpx.Response) -> None:
        self.location = location
        self._response = response
        self.url = str(response.url)
        self.status_code = response.status_code
        self.reason = response.reason_phrase
        self.content_type = response.headers.get("Content-Type")
        self.content_length = self._declared_length(response)

    @staticmethod
    def _declared_length(response: httpx.Response) -> Optional[int]:
        # Content-Length counts encoded bytes; iter_bytes yields decoded ones.
        if response.headers.get("Content-Encoding", "identity").lower() != "identity":
            return None
        header = response.headers.get("Content-Length")
        if not header:
            return None
        try:
            length = int(header)
        except ValueError:
            return None
        return length if length >= 0 else None

    @property
    def ok(self) -> bool:
        return self._response.is_success

    def iter_chunks(self, chunk_size: int) -> Iterator[bytes]:
        return self._response.iter_bytes(chunk_size=chunk_size)

    def read(self) -> bytes:
        return self._response.read()


class HttpTransport:
    """Stream artifacts over HTTP(S).

    Args:
        client: Optional pre-built ``httpx.Client`` (tests pass one backed by
            ``httpx.MockTransport``). When omitted a client is created from
            ``settings`` and closed by :meth:`close`.
        base_url: Base URL relative locations are resolved against; defaults
            to ``settings.base_url``.
        settings: Loader settings for client construction.

    Examples:
        >>> transport = HttpTransport(base_url="https://example.org/model/")
        >>> transport.resolve("vocab.json")
        'https://example.org/model/vocab.json'
        >>> transport.close()
    """

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        *,
        base_url: Optional[str] = None,
        settings: Optional[LoaderSettings] = None,
    ) -> None:
        settings = settings or LoaderSettings()
        self._owns_client = client is None
        self._client = client if client is not None else create_http_client(settings)
        self._base_url = base_url if base_url is not None else settings.base_url

    def resolve(self, location: str) -> str:
        if self._base_url and not is_remote(location):
            return urljoin(self._base_url, location)
        return location

    @contextlib.contextmanager
    def open(self, location: str) -> Iterator[HttpSourceResponse]:
        url = self.resolve(location)
        try:
            with self._client.stream("GET", url) as response:
                logger.debug(
                    "http response received",
                    extra={
                        "stage": "transport",
                        "source": location,
                        "status_code": response.status_code,
                        "content_type": response.headers.get("Content-Type"),
                    },
                )
                yield HttpSourceResponse(location, response)
        except httpx.HTTPError as exc:
            raise TransportFailure(
                f"failed to fetch {location} ({exc.__class__.__name__}: {exc})",
                source=location,
            ) from exc

    def close(self) -> None:
        if self._owns_client:
            self._client.close()


# --- Filesystem ---


class FileSourceResponse:
    """:class:`SourceResponse` for a local file (or a missing one)."""

    streaming = True

    def __init__(
        self,
        location: str,
        path: Path,
        handle: Optional[BinaryIO],
        *,
        status_code: int = 200,
        reason: str = "OK",
    ) -> None:
        self.location = location
        self.url = path.as_uri() if path.is_absolute() else str(path)
        self._handle = handle
        self.status_code = status_code
        self.reason = reason
        self.content_type = mimetypes.guess_type(path.name)[0]
        self.content_length = os.fstat(handle.fileno()).st_size if handle is not None else None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def iter_chunks(self, chunk_size: int) -> Iterator[bytes]:
        if self._handle is None:
            return
        while True:
            chunk = self._handle.read(chunk_size)
            if not chunk:
                return
            yield chunk

    def read(self) -> bytes:
        if self._handle is None:
            return b""
        return self._handle.read()


class FileTransport:
    """Read artifacts from the local filesystem.

    Args:
        root: Directory relative locations are resolved against (defaults to
            the working directory).
    """

    def __init__(self, root: Optional[Path] = None) -> None:
        self._root = root

    def resolve(self, location: str) -> Path:
        path = Path(location).expanduser()
        if self._root is not None and not path.is_absolute():
            path = self._root / path
        return path

    @contextlib.contextmanager
    def open(self, location: str) -> Iterator[FileSourceResponse]:
        path = self.resolve(location)
        status: Optional[tuple[int, str]] = None
        try:
            handle = path.open("rb")
        except (FileNotFoundError, IsADirectoryError):
            status = (404, "Not Found")
        except PermissionError:
            status = (403, "Forbidden")
        except OSError as exc:
            raise TransportFailure(f"failed to read {location} ({exc})", source=location) from exc

        if status is not None:
            yield FileSourceResponse(location, path, None, status_code=status[0], reason=status[1])
            return
        with handle:
            try:
                yield FileSourceResponse(location, path, handle)
            except OSError as exc:
                raise TransportFailure(f"failed to read {location} ({exc})", source=location) from exc


# --- Routing ---


class DefaultTransport:
    """Route remote locations to HTTP and everything else to the filesystem.

    The HTTP client is created lazily, so purely local loads never build one.
    When ``settings.base_url`` is set every location is fetched over HTTP.
    """

    def __init__(
        self,
        *,
        settings: Optional[LoaderSettings] = None,
        root: Optional[Path] = None,
    ) -> None:
        self._settings = settings or LoaderSettings()
        self._files = FileTransport(root)
        self._http: Optional[HttpTransport] = None
        self._lock = threading.Lock()

    def _http_transport(self) -> HttpTransport:
        # Parts are opened from worker threads; build the client only once.
        with self._lock:
            if self._http is None:
                self._http = HttpTransport(settings=self._settings)
            return self._http

    def open(self, location: str) -> ContextManager[SourceResponse]:
        if self._settings.base_url or is_remote(location):
            return self._http_transport().open(location)
        return self._files.open(location)

    def close(self) -> None:
        with self._lock:
            if self._http is not None:
                self._http.close()
                self._http = None
