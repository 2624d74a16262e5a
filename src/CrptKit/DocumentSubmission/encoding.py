"""Canonical JSON encoder used for documents, envelopes, and response bodies.

The pipeline never calls ``json`` directly; it goes through an :class:`Encoder`
so tests (or a caller with stricter canonicalization needs) can substitute
their own implementation.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping, Protocol, runtime_checkable

from pydantic import BaseModel
from pydantic_core import PydanticSerializationError

from .errors import EncodingError

logger = logging.getLogger(__name__)

__all__ = ["Encoder", "JsonEncoder"]


@runtime_checkable
class Encoder(Protocol):
    """Serialize structured values to bytes and back."""

    def encode(self, value: Any) -> bytes:
        """Return the canonical byte representation of ``value``."""
        ...

    def decode(self, data: bytes) -> Any:
        """Parse bytes produced by :meth:`encode` (or by the remote API)."""
        ...


class JsonEncoder:
    """Compact UTF-8 JSON encoder.

    pydantic models are dumped with wire aliases in JSON mode, keeping
    declaration order, so the same document always yields the same bytes.
    """

    def __init__(self, *, ensure_ascii: bool = False) -> None:
        self._ensure_ascii = ensure_ascii

    def encode(self, value: Any) -> bytes:
        """Encode a model or JSON-compatible value.

        Raises:
            EncodingError: If the value holds something JSON cannot represent.
        """
        try:
            if isinstance(value, BaseModel):
                value = value.model_dump(mode="json", by_alias=True)
            elif not isinstance(value, (Mapping, list, tuple, str, int, float, bool, type(None))):
                raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
            text = json.dumps(value, ensure_ascii=self._ensure_ascii, separators=(",", ":"))
            return text.encode("utf-8")
        except PydanticSerializationError as exc:
            logger.error("Model serialization failed", extra={"extra_fields": {"error": str(exc)}})
            raise EncodingError(f"Cannot encode {type(value).__name__}: {exc}") from exc
        except (TypeError, ValueError) as exc:
            logger.error("JSON encoding failed", extra={"extra_fields": {"error": str(exc)}})
            raise EncodingError(f"Cannot encode value: {exc}") from exc

    def decode(self, data: bytes) -> Any:
        """Decode UTF-8 JSON bytes into plain Python structures.

        Raises:
            EncodingError: If the payload is not valid UTF-8 JSON.
        """
        if isinstance(data, str):
            data = data.encode("utf-8")
        try:
            return json.loads(data.decode("utf-8"))
        except UnicodeDecodeError as exc:
            raise EncodingError(f"Payload is not valid UTF-8: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise EncodingError(
                f"Payload is not valid JSON (line {exc.lineno}, column {exc.colno}): {exc.msg}"
            ) from exc
