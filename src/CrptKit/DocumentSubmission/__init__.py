# === NAVMAP v1 ===
# {
#   "module": "CrptKit.DocumentSubmission",
#   "purpose": "Package initialization for CrptKit.DocumentSubmission",
#   "sections": []
# }
# === /NAVMAP ===

"""Public API for submitting "introduce goods" documents to the marking API.

This facade exposes the submission clients, the rate gate that keeps them
inside the API quota, the document models, and the error hierarchy callers
react to.
"""

from __future__ import annotations

from .auth import EnvironmentTokenProvider, StaticTokenProvider, TokenProvider
from .client import SUBMIT_PATH, SUCCESS_STATUSES, AsyncSubmissionClient, SubmissionClient
from .encoding import Encoder, JsonEncoder
from .errors import (
    ApiRejectionError,
    ConfigurationError,
    EncodingError,
    NetworkError,
    ResponseFormatError,
    SubmissionError,
    ValidationError,
)
from .models import (
    Description,
    DocumentFormat,
    DocumentType,
    PreparedEnvelope,
    Product,
    ProductGroup,
    RawDocument,
    load_document,
)
from .network import AsyncHttpxTransport, HttpxTransport, TransportResponse
from .preparation import DocumentPreparer
from .ratelimit import AsyncRateGate, RateGate, TimeUnit
from .settings import DEFAULT_BASE_URL, SubmissionSettings, get_settings

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Clients
    "SubmissionClient",
    "AsyncSubmissionClient",
    "SUBMIT_PATH",
    "SUCCESS_STATUSES",
    "DEFAULT_BASE_URL",
    # Rate gate
    "RateGate",
    "AsyncRateGate",
    "TimeUnit",
    # Preparation
    "DocumentPreparer",
    "Encoder",
    "JsonEncoder",
    # Models
    "RawDocument",
    "Product",
    "Description",
    "PreparedEnvelope",
    "ProductGroup",
    "DocumentFormat",
    "DocumentType",
    "load_document",
    # Collaborators
    "HttpxTransport",
    "AsyncHttpxTransport",
    "TransportResponse",
    "TokenProvider",
    "StaticTokenProvider",
    "EnvironmentTokenProvider",
    # Settings
    "SubmissionSettings",
    "get_settings",
    # Errors
    "SubmissionError",
    "ConfigurationError",
    "ValidationError",
    "EncodingError",
    "ResponseFormatError",
    "NetworkError",
    "ApiRejectionError",
]
