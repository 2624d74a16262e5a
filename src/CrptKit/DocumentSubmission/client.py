# === NAVMAP v1 ===
# {
#   "module": "CrptKit.DocumentSubmission.client",
#   "purpose": "Submission client: prepare, rate-gate, send, and classify one document.",
#   "sections": [
#     {"id": "constants", "name": "Endpoint & Status Constants", "anchor": "CON", "kind": "constants"},
#     {"id": "submissionclient", "name": "SubmissionClient", "anchor": "class-submissionclient", "kind": "class"},
#     {"id": "asyncsubmissionclient", "name": "AsyncSubmissionClient", "anchor": "class-asyncsubmissionclient", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Submission client: prepare, rate-gate, send, and classify one document.

The client is the only place where the pieces meet:

1. :class:`~CrptKit.DocumentSubmission.preparation.DocumentPreparer` validates
   and wraps the document. Failures here never touch the gate.
2. The rate gate admits the call and arms the timed release of its permit.
   From this point the permit comes back on its own whatever happens next.
3. The token provider supplies the bearer credential.
4. The transport performs exactly one ``POST``.
5. ``200``/``201``/``202`` yields the tracking id from the body's ``value``
   field; anything else raises :class:`ApiRejectionError` with the raw body.

Example:
    >>> client = SubmissionClient(
    ...     RateGate(TimeUnit.SECONDS, 5),
    ...     HttpxTransport(),
    ...     StaticTokenProvider("token"),
    ... )
    >>> tracking_id = client.submit(document, signature, ProductGroup.SHOES)
"""

from __future__ import annotations

import inspect
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Tuple, Union

from .auth import EnvironmentTokenProvider, StaticTokenProvider, TokenProvider
from .encoding import Encoder
from .errors import ApiRejectionError, ConfigurationError, EncodingError, ResponseFormatError
from .logging_config import generate_correlation_id
from .models import PreparedEnvelope, ProductGroup, RawDocument
from .network.transport import (
    AsyncHttpxTransport,
    AsyncTransport,
    HttpxTransport,
    Transport,
    TransportResponse,
)
from .preparation import DocumentPreparer
from .ratelimit.gate import AsyncRateGate, RateGate
from .settings import DEFAULT_BASE_URL, SubmissionSettings, get_settings

logger = logging.getLogger(__name__)

__all__ = [
    "SUBMIT_PATH",
    "SUCCESS_STATUSES",
    "SubmissionClient",
    "AsyncSubmissionClient",
]

# ============================================================================
# Endpoint & Status Constants
# ============================================================================

SUBMIT_PATH = "/lk/documents/send"
SUCCESS_STATUSES = frozenset({200, 201, 202})
TRACKING_ID_FIELD = "value"


def _request_headers(token: str) -> Dict[str, str]:
    return {"content-type": "application/json", "Authorization": f"Bearer {token}"}


def _resolve_token_provider(
    settings: SubmissionSettings, token_provider: Optional[Callable[[], Any]]
) -> Callable[[], Any]:
    if token_provider is not None:
        return token_provider
    if settings.token is not None:
        return StaticTokenProvider(settings.token)
    return EnvironmentTokenProvider()


class _SubmissionCore:
    """State and response handling shared by the sync and async clients."""

    def __init__(
        self,
        token_provider: Callable[[], Any],
        *,
        base_url: str,
        preparer: Optional[DocumentPreparer],
        encoder: Optional[Encoder],
    ) -> None:
        if token_provider is None or not callable(token_provider):
            raise ConfigurationError("token_provider must be a zero-argument callable")
        if not base_url:
            raise ConfigurationError("base_url must not be empty")
        if preparer is not None and encoder is not None:
            raise ConfigurationError("pass either preparer or encoder, not both")
        self._token_provider = token_provider
        self._base_url = base_url.rstrip("/")
        self._preparer = preparer or DocumentPreparer(encoder)

    @property
    def submit_url(self) -> str:
        return f"{self._base_url}{SUBMIT_PATH}"

    def _build_request(
        self,
        document: RawDocument,
        signature: str,
        product_group: Union[ProductGroup, str],
    ) -> Tuple[PreparedEnvelope, bytes]:
        envelope = self._preparer.prepare(document, signature, product_group)
        return envelope, self._preparer.encode_envelope(envelope)

    def _classify(self, response: TransportResponse, log_extra: Mapping[str, Any]) -> str:
        """Turn a response into a tracking id or an :class:`ApiRejectionError`."""
        if response.status_code not in SUCCESS_STATUSES:
            logger.warning(
                "Submission rejected by API",
                extra={"extra_fields": {**log_extra, "status": response.status_code}},
            )
            raise ApiRejectionError(response.text, status_code=response.status_code)

        try:
            body = self._preparer.decode(response.content)
        except EncodingError as exc:
            raise ResponseFormatError(
                f"Success response (status {response.status_code}) is not JSON: {exc}",
                field=TRACKING_ID_FIELD,
            ) from exc
        if not isinstance(body, Mapping) or body.get(TRACKING_ID_FIELD) is None:
            raise ResponseFormatError(
                f"Success response (status {response.status_code}) has no "
                f"'{TRACKING_ID_FIELD}' field: {response.text[:200]!r}",
                field=TRACKING_ID_FIELD,
            )
        value = body[TRACKING_ID_FIELD]
        # Non-string ids keep their JSON spelling ("true", not "True").
        if isinstance(value, str):
            tracking_id = value
        else:
            tracking_id = self._preparer.encoder.encode(value).decode("utf-8")
        logger.info(
            "Document submitted",
            extra={
                "extra_fields": {
                    **log_extra,
                    "status": response.status_code,
                    "tracking_id": tracking_id,
                }
            },
        )
        return tracking_id


# ============================================================================
# SubmissionClient
# ============================================================================


class SubmissionClient(_SubmissionCore):
    """Thread-safe client submitting documents through a :class:`RateGate`.

    One instance may be shared by any number of threads; the gate is the only
    synchronization point.

    Attributes:
        _rate_gate: Admission gate shared by every caller of this client
        _transport: Performs the single HTTP exchange per submission
        _token_provider: Supplies the bearer token for each request
    """

    def __init__(
        self,
        rate_gate: RateGate,
        transport: Transport,
        token_provider: TokenProvider | Callable[[], str],
        *,
        base_url: str = DEFAULT_BASE_URL,
        preparer: Optional[DocumentPreparer] = None,
        encoder: Optional[Encoder] = None,
    ) -> None:
        """Initialize SubmissionClient.

        Args:
            rate_gate: Gate admitting at most N submissions per window.
            transport: HTTP transport used for the POST.
            token_provider: Zero-argument callable returning a bearer token.
            base_url: API root, without the submission path.
            preparer: Custom preparer; mutually exclusive with ``encoder``.
            encoder: Custom encoder for documents, envelope, and responses.

        Raises:
            ConfigurationError: If a collaborator is missing.
        """
        if rate_gate is None:
            raise ConfigurationError("rate_gate must not be null")
        if transport is None:
            raise ConfigurationError("transport must not be null")
        super().__init__(token_provider, base_url=base_url, preparer=preparer, encoder=encoder)
        self._rate_gate = rate_gate
        self._transport = transport
        self._owned: list = []

    @classmethod
    def from_settings(
        cls,
        settings: Optional[SubmissionSettings] = None,
        *,
        token_provider: Optional[Callable[[], str]] = None,
        transport: Optional[Transport] = None,
    ) -> "SubmissionClient":
        """Build a client, its gate, and (unless given) its transport from settings.

        The token provider defaults to the configured static token, falling
        back to the ``CRPT_TOKEN`` environment variable read per call.
        """
        settings = settings or get_settings()
        gate = RateGate(settings.time_unit, settings.request_limit, settings.time_delay)
        owned: list = [gate]
        if transport is None:
            transport = HttpxTransport(settings=settings.http)
            owned.append(transport)
        client = cls(
            gate,
            transport,
            _resolve_token_provider(settings, token_provider),
            base_url=settings.base_url,
        )
        client._owned = owned
        return client

    @property
    def rate_gate(self) -> RateGate:
        return self._rate_gate

    def submit(
        self,
        document: RawDocument,
        signature: str,
        product_group: Union[ProductGroup, str],
    ) -> str:
        """Submit one document and return the API's tracking id.

        Args:
            document: Document to introduce into circulation.
            signature: Detached signature of the document.
            product_group: Product group the document belongs to.

        Returns:
            Tracking identifier from the response's ``value`` field.

        Raises:
            ValidationError: The document is malformed (no permit used).
            EncodingError: The document could not be serialized.
            ResponseFormatError: A success response carried no readable
                ``value``; the document was sent.
            NetworkError: The request did not complete.
            ApiRejectionError: The API answered outside 200/201/202.
        """
        envelope, body = self._build_request(document, signature, product_group)
        log_extra = {
            "correlation_id": generate_correlation_id(),
            "doc_id": document.doc_id,
            "product_group": envelope.product_group,
        }

        started = time.monotonic()
        self._rate_gate.acquire()
        log_extra["gate_wait_ms"] = int((time.monotonic() - started) * 1000)

        token = self._token_provider()
        response = self._transport.send(
            "POST",
            self.submit_url,
            headers=_request_headers(token),
            params={"pg": envelope.product_group},
            body=body,
        )
        return self._classify(response, log_extra)

    def close(self) -> None:
        """Close the gate and transport created by :meth:`from_settings`."""
        for resource in reversed(self._owned):
            resource.close()
        self._owned = []

    def __enter__(self) -> "SubmissionClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


# ============================================================================
# AsyncSubmissionClient
# ============================================================================


class AsyncSubmissionClient(_SubmissionCore):
    """asyncio flavour of :class:`SubmissionClient`.

    The token provider may be a plain callable or return an awaitable.
    """

    def __init__(
        self,
        rate_gate: AsyncRateGate,
        transport: AsyncTransport,
        token_provider: Callable[[], Union[str, Awaitable[str]]],
        *,
        base_url: str = DEFAULT_BASE_URL,
        preparer: Optional[DocumentPreparer] = None,
        encoder: Optional[Encoder] = None,
    ) -> None:
        if rate_gate is None:
            raise ConfigurationError("rate_gate must not be null")
        if transport is None:
            raise ConfigurationError("transport must not be null")
        super().__init__(token_provider, base_url=base_url, preparer=preparer, encoder=encoder)
        self._rate_gate = rate_gate
        self._transport = transport
        self._owns_gate = False
        self._owned_transport: Optional[AsyncHttpxTransport] = None

    @classmethod
    def from_settings(
        cls,
        settings: Optional[SubmissionSettings] = None,
        *,
        token_provider: Optional[Callable[[], Union[str, Awaitable[str]]]] = None,
        transport: Optional[AsyncTransport] = None,
    ) -> "AsyncSubmissionClient":
        settings = settings or get_settings()
        gate = AsyncRateGate(settings.time_unit, settings.request_limit, settings.time_delay)
        owned_transport = None
        if transport is None:
            transport = owned_transport = AsyncHttpxTransport(settings=settings.http)
        client = cls(
            gate,
            transport,
            _resolve_token_provider(settings, token_provider),
            base_url=settings.base_url,
        )
        client._owns_gate = True
        client._owned_transport = owned_transport
        return client

    @property
    def rate_gate(self) -> AsyncRateGate:
        return self._rate_gate

    async def submit(
        self,
        document: RawDocument,
        signature: str,
        product_group: Union[ProductGroup, str],
    ) -> str:
        """Submit one document; see :meth:`SubmissionClient.submit`.

        Raises:
            asyncio.CancelledError: Propagated unchanged; a permit taken before
                cancellation is still released by its timer.
        """
        envelope, body = self._build_request(document, signature, product_group)
        log_extra = {
            "correlation_id": generate_correlation_id(),
            "doc_id": document.doc_id,
            "product_group": envelope.product_group,
        }

        started = time.monotonic()
        await self._rate_gate.acquire()
        log_extra["gate_wait_ms"] = int((time.monotonic() - started) * 1000)

        token = self._token_provider()
        if inspect.isawaitable(token):
            token = await token
        response = await self._transport.send(
            "POST",
            self.submit_url,
            headers=_request_headers(token),
            params={"pg": envelope.product_group},
            body=body,
        )
        return self._classify(response, log_extra)

    async def aclose(self) -> None:
        if self._owned_transport is not None:
            await self._owned_transport.aclose()
            self._owned_transport = None
        if self._owns_gate:
            self._rate_gate.close()
            self._owns_gate = False

    async def __aenter__(self) -> "AsyncSubmissionClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
