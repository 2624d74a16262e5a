# === NAVMAP v1 ===
# {
#   "module": "CrptKit.DocumentSubmission.network.__init__",
#   "purpose": "HTTP client factory and transport seam.",
#   "sections": []
# }
# === /NAVMAP ===

"""HTTP client factory and transport seam."""

from CrptKit.DocumentSubmission.network.client import (
    create_async_http_client,
    create_http_client,
    create_ssl_context,
)
from CrptKit.DocumentSubmission.network.transport import (
    AsyncHttpxTransport,
    AsyncTransport,
    HttpxTransport,
    Transport,
    TransportResponse,
)

__all__ = [
    # Client factory
    "create_http_client",
    "create_async_http_client",
    "create_ssl_context",
    # Transport
    "Transport",
    "AsyncTransport",
    "TransportResponse",
    "HttpxTransport",
    "AsyncHttpxTransport",
]
