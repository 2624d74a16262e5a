"""Transport seam between the submission client and HTTPX.

The client only needs "send one request, get a status and a body back". The
protocols below pin that down; :class:`HttpxTransport` and
:class:`AsyncHttpxTransport` implement it on top of HTTPX and translate
connection-level failures into :class:`~CrptKit.DocumentSubmission.errors.NetworkError`.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Mapping, Optional, Protocol, runtime_checkable

import httpx

from ..errors import NetworkError
from ..settings import HttpSettings
from .client import create_async_http_client, create_http_client

logger = logging.getLogger(__name__)

__all__ = [
    "TransportResponse",
    "Transport",
    "AsyncTransport",
    "HttpxTransport",
    "AsyncHttpxTransport",
]


@dataclass(frozen=True)
class TransportResponse:
    """Status code and decoded body of one HTTP exchange."""

    status_code: int
    text: str
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def content(self) -> bytes:
        return self.text.encode("utf-8")


@runtime_checkable
class Transport(Protocol):
    def send(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str],
        params: Optional[Mapping[str, str]] = None,
        body: bytes = b"",
    ) -> TransportResponse: ...


@runtime_checkable
class AsyncTransport(Protocol):
    async def send(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str],
        params: Optional[Mapping[str, str]] = None,
        body: bytes = b"",
    ) -> TransportResponse: ...


def _to_response(response: httpx.Response) -> TransportResponse:
    return TransportResponse(
        status_code=response.status_code,
        text=response.text,
        headers=dict(response.headers),
    )


def _network_error(method: str, url: str, exc: httpx.TransportError) -> NetworkError:
    logger.error(
        "HTTP request failed",
        extra={
            "extra_fields": {
                "method": method,
                "url": url,
                "error": f"{type(exc).__name__}: {exc}",
            }
        },
    )
    return NetworkError(f"{method} {url} failed: {type(exc).__name__}: {exc}")


class HttpxTransport:
    """Blocking transport backed by ``httpx.Client``.

    A client passed in by the caller stays open on :meth:`close`; a client
    built from settings is owned and closed here.
    """

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        *,
        settings: Optional[HttpSettings] = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or create_http_client(settings)

    def send(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str],
        params: Optional[Mapping[str, str]] = None,
        body: bytes = b"",
    ) -> TransportResponse:
        """Perform one request.

        Raises:
            NetworkError: Connection, timeout, or protocol failure.
        """
        started = time.monotonic()
        try:
            response = self._client.request(
                method, url, headers=dict(headers), params=params, content=body
            )
        except httpx.TransportError as exc:
            raise _network_error(method, url, exc) from exc
        logger.debug(
            "HTTP request completed",
            extra={
                "extra_fields": {
                    "method": method,
                    "url": url,
                    "status": response.status_code,
                    "elapsed_ms": int((time.monotonic() - started) * 1000),
                }
            },
        )
        return _to_response(response)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()


class AsyncHttpxTransport:
    """Non-blocking transport backed by ``httpx.AsyncClient``."""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        *,
        settings: Optional[HttpSettings] = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or create_async_http_client(settings)

    async def send(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str],
        params: Optional[Mapping[str, str]] = None,
        body: bytes = b"",
    ) -> TransportResponse:
        """Perform one request; cancellation propagates unchanged.

        Raises:
            NetworkError: Connection, timeout, or protocol failure.
        """
        started = time.monotonic()
        try:
            response = await self._client.request(
                method, url, headers=dict(headers), params=params, content=body
            )
        except httpx.TransportError as exc:
            raise _network_error(method, url, exc) from exc
        logger.debug(
            "HTTP request completed",
            extra={
                "extra_fields": {
                    "method": method,
                    "url": url,
                    "status": response.status_code,
                    "elapsed_ms": int((time.monotonic() - started) * 1000),
                }
            },
        )
        return _to_response(response)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
