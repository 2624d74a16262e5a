"""Exception hierarchy shared across document preparation, rate gating, and submission.

A submission crosses configuration, input validation, canonical encoding, and
one HTTP exchange with the marking API. This module groups those failure modes
so callers can react to the category (fix the document vs. inspect the API's
answer vs. check connectivity) without parsing messages.
"""

from __future__ import annotations

from typing import Optional

__all__ = [
    "SubmissionError",
    "ConfigurationError",
    "ValidationError",
    "EncodingError",
    "ResponseFormatError",
    "NetworkError",
    "ApiRejectionError",
]


class SubmissionError(RuntimeError):
    """Base exception for every failure raised by the submission pipeline."""


class ConfigurationError(SubmissionError):
    """Raised when constructor arguments or settings are invalid."""


class ValidationError(SubmissionError):
    """Raised when a document is malformed; no gate permit or network call was used."""

    def __init__(self, message: str, *, product_index: Optional[int] = None) -> None:
        super().__init__(message)
        self.product_index = product_index


class EncodingError(SubmissionError):
    """Raised when a document, envelope, or response body cannot be (de)serialized."""

    def __init__(self, message: str, *, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field


class ResponseFormatError(EncodingError):
    """Raised when a success response body cannot be read; the request was already sent."""


class NetworkError(SubmissionError):
    """Raised when the transport fails before an HTTP status is received."""


class ApiRejectionError(SubmissionError):
    """Raised when the API answers with a status outside the success set.

    The raw response body is kept verbatim in :attr:`detail`.
    """

    def __init__(self, detail: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code
