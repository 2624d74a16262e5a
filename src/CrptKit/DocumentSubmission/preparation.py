"""Turn a caller's document into the envelope the marking API accepts.

Preparation is a pure transform: it validates the products, encodes the
document through the :class:`~CrptKit.DocumentSubmission.encoding.Encoder`,
base64-wraps the bytes, and fills the fixed envelope tags. It never touches
the rate gate or the network, so a rejected document costs no quota.
"""

from __future__ import annotations

import base64
import logging
from typing import Any, Optional

from .encoding import Encoder, JsonEncoder
from .errors import ValidationError
from .models import (
    DOCUMENT_FORMAT_WIRE,
    DOCUMENT_TYPE_WIRE,
    PRODUCT_GROUP_WIRE,
    DocumentFormat,
    DocumentType,
    PreparedEnvelope,
    ProductGroup,
    RawDocument,
)

logger = logging.getLogger(__name__)

__all__ = ["DocumentPreparer", "validate_products"]

# Only manual-format "introduce goods" documents are supported.
ENVELOPE_FORMAT = DocumentFormat.MANUAL
ENVELOPE_TYPE = DocumentType.LP_INTRODUCE_GOODS


def validate_products(document: RawDocument) -> None:
    """Ensure every product carries ``uit_code`` or ``uitu_code``.

    Raises:
        ValidationError: On the first product with neither code; the error's
            ``product_index`` points at it.
    """
    for index, product in enumerate(document.products):
        if not product.has_identifying_code():
            raise ValidationError(
                f"Malformed document: product #{index} must have uit_code or uitu_code",
                product_index=index,
            )


class DocumentPreparer:
    """Build :class:`PreparedEnvelope` instances from raw documents."""

    def __init__(self, encoder: Optional[Encoder] = None) -> None:
        self._encoder = encoder or JsonEncoder()

    @property
    def encoder(self) -> Encoder:
        return self._encoder

    def prepare(
        self,
        document: RawDocument,
        signature: str,
        product_group: ProductGroup | str,
    ) -> PreparedEnvelope:
        """Validate and wrap ``document`` for submission.

        Args:
            document: Document to submit; left unmodified.
            signature: Detached signature, passed through verbatim.
            product_group: Target product group (member, name, or wire name).

        Returns:
            A frozen envelope ready for the transport.

        Raises:
            ValidationError: Missing document/signature, unknown product group,
                or a product without identifying codes.
            EncodingError: The encoder could not serialize the document.
        """
        if document is None:
            raise ValidationError("document must not be null")
        if not isinstance(document, RawDocument):
            raise ValidationError(f"document must be a RawDocument, got {type(document).__name__}")
        if signature is None:
            raise ValidationError("signature must not be null")
        group = ProductGroup.coerce(product_group)

        validate_products(document)

        payload = self._encoder.encode(document)
        envelope = PreparedEnvelope(
            document_format=DOCUMENT_FORMAT_WIRE[ENVELOPE_FORMAT],
            product_document=base64.b64encode(payload).decode("ascii"),
            product_group=PRODUCT_GROUP_WIRE[group],
            signature=signature,
            type=DOCUMENT_TYPE_WIRE[ENVELOPE_TYPE],
        )
        logger.debug(
            "Document prepared",
            extra={
                "extra_fields": {
                    "doc_id": document.doc_id,
                    "product_group": envelope.product_group,
                    "products": len(document.products),
                    "payload_bytes": len(payload),
                }
            },
        )
        return envelope

    def encode_envelope(self, envelope: PreparedEnvelope) -> bytes:
        """Canonical request body for ``envelope``."""
        return self._encoder.encode(envelope)

    def decode(self, data: bytes) -> Any:
        return self._encoder.decode(data)
