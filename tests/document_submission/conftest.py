"""Shared fixtures for the document_submission test suite."""

from __future__ import annotations

import threading
from datetime import date, datetime
from typing import Callable, List, Mapping, Optional

import httpx
import pytest

from CrptKit.DocumentSubmission.models import Description, Product, RawDocument
from CrptKit.DocumentSubmission.network.transport import TransportResponse
from CrptKit.DocumentSubmission.settings import reset_settings


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch):
    """Keep CRPT_* variables from the developer's shell out of every test."""
    import os

    for key in list(os.environ):
        if key.upper().startswith("CRPT_"):
            monkeypatch.delenv(key, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def sample_document() -> RawDocument:
    return RawDocument(
        description=Description(participant_inn="7700000000"),
        doc_id="doc-1",
        doc_status="DRAFT",
        doc_type="LP_INTRODUCE_GOODS",
        import_request=True,
        owner_inn="7700000001",
        participant_inn="7700000000",
        producer_inn="7700000002",
        production_date=datetime(2024, 3, 1, 12, 30, 0),
        production_type="OWN_PRODUCTION",
        reg_date=date(2024, 3, 2),
        reg_number="R-42",
        products=[
            Product(
                certificate_document="CONFORMITY_CERTIFICATE",
                certificate_document_date=datetime(2024, 2, 1, 0, 0, 0),
                certificate_document_number="C-1",
                owner_inn="7700000001",
                producer_inn="7700000002",
                production_date=datetime(2024, 3, 1, 12, 30, 0),
                tnved_code="6401100000",
                uit_code="010463003407001221SxMGorvNuq6Wk91fgh",
            ),
            Product(tnved_code="6401100000", uitu_code="046300340700122"),
        ],
    )


@pytest.fixture
def invalid_document() -> RawDocument:
    return RawDocument(
        doc_id="doc-bad",
        products=[Product(uit_code="ok"), Product(tnved_code="6401100000")],
    )


class RecordingTransport:
    """Transport double returning canned responses and recording requests."""

    def __init__(
        self,
        status_code: int = 201,
        text: str = '{"value":"abc123"}',
        error: Optional[BaseException] = None,
    ) -> None:
        self.status_code = status_code
        self.text = text
        self.error = error
        self.calls: List[dict] = []
        self._lock = threading.Lock()

    def send(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str],
        params: Optional[Mapping[str, str]] = None,
        body: bytes = b"",
    ) -> TransportResponse:
        with self._lock:
            self.calls.append(
                {"method": method, "url": url, "headers": dict(headers), "params": params, "body": body}
            )
        if self.error is not None:
            raise self.error
        return TransportResponse(status_code=self.status_code, text=self.text)


class AsyncRecordingTransport(RecordingTransport):
    async def send(self, method, url, *, headers, params=None, body=b""):  # type: ignore[override]
        return RecordingTransport.send(
            self, method, url, headers=headers, params=params, body=body
        )


@pytest.fixture
def recording_transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def mock_http_client() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.Client]:
    """Factory building an ``httpx.Client`` over a ``MockTransport`` handler."""
    clients: List[httpx.Client] = []

    def _factory(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.Client:
        client = httpx.Client(transport=httpx.MockTransport(handler))
        clients.append(client)
        return client

    yield _factory
    for client in clients:
        client.close()


@pytest.fixture
def make_transport() -> Callable[..., RecordingTransport]:
    """Factory for :class:`RecordingTransport` with custom canned responses."""
    return RecordingTransport


@pytest.fixture
def make_async_transport() -> Callable[..., AsyncRecordingTransport]:
    return AsyncRecordingTransport
