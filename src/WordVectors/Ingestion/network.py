# === NAVMAP v1 ===
# {
#   "module": "WordVectors.Ingestion.network",
#   "purpose": "HTTPX client factory for vocabulary and vector part downloads",
#   "sections": [
#     {
#       "id": "create-ssl-context",
#       "name": "_create_ssl_context",
#       "anchor": "function-create-ssl-context",
#       "kind": "function"
#     },
#     {
#       "id": "create-http-client",
#       "name": "create_http_client",
#       "anchor": "function-create-http-client",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""HTTPX client factory.

Builds the ``httpx.Client`` used by :class:`~WordVectors.Ingestion.transport.HttpTransport`.

Key design:
- **Per-phase timeouts** from :class:`~WordVectors.settings.LoaderSettings`;
  the pipeline itself never imposes a deadline.
- **Pool sized to the fetch fan-out** so every concurrent part download gets
  its own connection.
- **No retries**: a failed request surfaces as the first load failure.
- **Streaming**: callers use ``client.stream`` so parts are never buffered
  twice.
"""

from __future__ import annotations

import logging
import ssl

import certifi
import httpx

from ..settings import LoaderSettings

__all__ = ["WRITE_TIMEOUT", "POOL_TIMEOUT", "KEEPALIVE_EXPIRY", "create_http_client"]

logger = logging.getLogger(__name__)

#: Time allowed to send the (empty) GET request body
WRITE_TIMEOUT = 15.0

#: Time allowed to acquire a pooled connection
POOL_TIMEOUT = 5.0

#: Idle connection lifetime (seconds)
KEEPALIVE_EXPIRY = 5.0


def _create_ssl_context(verify: bool) -> ssl.SSLContext:
    """Create an SSL context backed by the certifi bundle.

    Args:
        verify: When ``False`` hostname and certificate checks are disabled
            (development only).

    Returns:
        Configured ``ssl.SSLContext`` for use with HTTPX.
    """
    if not verify:
        ctx = ssl.create_default_context()
        ctx.check_hostname = False
        ctx.verify_mode = ssl.CERT_NONE
        logger.warning("TLS verification DISABLED (development only!)")
        return ctx

    ctx = ssl.create_default_context(cafile=certifi.where())
    ctx.check_hostname = True
    ctx.verify_mode = ssl.CERT_REQUIRED
    return ctx


def create_http_client(settings: LoaderSettings) -> httpx.Client:
    """Create the HTTPX client used for artifact downloads.

    Args:
        settings: Loader settings supplying timeouts, TLS policy, and the
            concurrent fetch budget.

    Returns:
        ``httpx.Client`` that follows redirects and never retries.

    Example:
        >>> client = create_http_client(LoaderSettings())
        >>> client.follow_redirects
        True
        >>> client.close()
    """
    connections = settings.max_concurrent_fetches + 1
    client = httpx.Client(
        timeout=httpx.Timeout(
            connect=settings.connect_timeout_sec,
            read=settings.read_timeout_sec,
            write=WRITE_TIMEOUT,
            pool=POOL_TIMEOUT,
        ),
        limits=httpx.Limits(
            max_connections=connections,
            max_keepalive_connections=connections,
            keepalive_expiry=KEEPALIVE_EXPIRY,
        ),
        follow_redirects=True,
        verify=_create_ssl_context(settings.verify_tls),
    )

    logger.debug(
        "HTTPX client created",
        extra={
            "stage": "network",
            "max_connections": connections,
            "connect_timeout": settings.connect_timeout_sec,
            "read_timeout": settings.read_timeout_sec,
        },
    )
    return client
