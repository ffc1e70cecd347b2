"""Cooperative cancellation shared by the concurrent part fetches of one load.

When one vector part fails, the remaining fetches must stop so their bytes are
discarded promptly.  Workers poll :class:`CancellationToken` between chunks
instead of being interrupted, which keeps transport cleanup (closing HTTP
streams and file handles) on the normal ``with`` exit path.
"""

from __future__ import annotations

import threading

__all__ = ["CancellationToken"]


class CancellationToken:
    """Thread-safe cancellation flag.

    Examples:
        >>> token = CancellationToken()
        >>> token.is_cancelled()
        False
        >>> token.cancel()
        >>> token.is_cancelled()
        True
    """

    def __init__(self) -> None:
        self._is_cancelled = threading.Event()

    def cancel(self) -> None:
        """Signal that cancellation has been requested."""
        self._is_cancelled.set()

    def is_cancelled(self) -> bool:
        return self._is_cancelled.is_set()
