# === NAVMAP v1 ===
# {
#   "module": "CrptKit.DocumentSubmission.network.client",
#   "purpose": "HTTPX client factory for the marking API.",
#   "sections": [
#     {
#       "id": "create-ssl-context",
#       "name": "create_ssl_context",
#       "anchor": "function-create-ssl-context",
#       "kind": "function"
#     },
#     {
#       "id": "create-http-client",
#       "name": "create_http_client",
#       "anchor": "function-create-http-client",
#       "kind": "function"
#     },
#     {
#       "id": "create-async-http-client",
#       "name": "create_async_http_client",
#       "anchor": "function-create-async-http-client",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""HTTPX client factory for the marking API.

Builds ``httpx.Client`` / ``httpx.AsyncClient`` instances from
:class:`~CrptKit.DocumentSubmission.settings.HttpSettings`:

- **Timeouts**: per-phase (connect, read, write, pool)
- **Pooling**: bounded by ``pool_max_connections``
- **TLS**: certifi bundle, verification on unless explicitly disabled
- **Redirects**: not followed; a redirect is an API rejection
- **Retries**: none; the submission contract is one call per document

Example:
    >>> from CrptKit.DocumentSubmission.network.client import create_http_client
    >>> client = create_http_client()
    >>> client.close()
"""

import logging
import ssl
from typing import Optional

import certifi
import httpx

from CrptKit.DocumentSubmission.settings import HttpSettings

logger = logging.getLogger(__name__)


# ============================================================================
# Public API
# ============================================================================


def create_ssl_context(verify: bool = True) -> ssl.SSLContext:
    """Create SSL context with secure defaults.

    Args:
        verify: When False, certificate and hostname checks are disabled.

    Returns:
        Configured ssl.SSLContext for use with HTTPX
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


def _client_options(settings: HttpSettings) -> dict:
    return {
        "timeout": httpx.Timeout(
            connect=settings.timeout_connect,
            read=settings.timeout_read,
            write=settings.timeout_write,
            pool=settings.timeout_pool,
        ),
        "limits": httpx.Limits(
            max_connections=settings.pool_max_connections,
            max_keepalive_connections=settings.pool_max_connections,
        ),
        "headers": {"User-Agent": settings.user_agent},
        "http2": settings.http2,
        "follow_redirects": False,
        "trust_env": settings.trust_env,
        "verify": create_ssl_context(settings.verify_tls),
    }


def create_http_client(
    settings: Optional[HttpSettings] = None,
    *,
    transport: Optional[httpx.BaseTransport] = None,
) -> httpx.Client:
    """Create a synchronous HTTPX client.

    Args:
        settings: HTTP settings; defaults to :class:`HttpSettings()`.
        transport: Optional low-level transport (``httpx.MockTransport`` in tests).

    Returns:
        Configured httpx.Client
    """
    settings = settings or HttpSettings()
    client = httpx.Client(transport=transport, **_client_options(settings))
    logger.debug(
        "HTTPX client created",
        extra={
            "extra_fields": {
                "http2": settings.http2,
                "max_connections": settings.pool_max_connections,
            }
        },
    )
    return client


def create_async_http_client(
    settings: Optional[HttpSettings] = None,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Create an asynchronous HTTPX client with the same policy as the sync one."""
    settings = settings or HttpSettings()
    client = httpx.AsyncClient(transport=transport, **_client_options(settings))
    logger.debug(
        "HTTPX async client created",
        extra={
            "extra_fields": {
                "http2": settings.http2,
                "max_connections": settings.pool_max_connections,
            }
        },
    )
    return client


__all__ = [
    "create_ssl_context",
    "create_http_client",
    "create_async_http_client",
]
