# === NAVMAP v1 ===
# {
#   "module": "CrptKit.DocumentSubmission.models",
#   "purpose": "Document, product, and envelope models plus wire lookup tables.",
#   "sections": [
#     {"id": "enums", "name": "Enumerations & Wire Tables", "anchor": "ENM", "kind": "api"},
#     {"id": "documents", "name": "Document Models", "anchor": "DOC", "kind": "api"},
#     {"id": "envelope", "name": "PreparedEnvelope", "anchor": "ENV", "kind": "api"},
#     {"id": "loading", "name": "load_document", "anchor": "function-load-document", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Document, product, and envelope models for the marking API.

The API expects snake_case keys for almost every field, with a couple of
camelCase exceptions (``importRequest`` and ``participantInn``). Field names
below are Pythonic; the wire spelling is carried by pydantic aliases so a model
can be built from either form and always dumps with the wire keys.

Timestamps travel as ``yyyy-MM-ddTHH:mm:ssZ`` and dates as ``yyyy-MM-dd``.
Aware datetimes are converted to naive UTC and truncated to whole seconds on
input so that a document decoded from its own encoding compares equal.

Example:
    >>> doc = RawDocument(doc_id="1", products=[Product(uit_code="010463")])
    >>> doc.model_dump(by_alias=True, mode="json")["products"][0]["uit_code"]
    '010463'
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SerializerFunctionWrapHandler,
    field_serializer,
    field_validator,
    model_serializer,
)
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError

__all__ = [
    "ProductGroup",
    "DocumentFormat",
    "DocumentType",
    "PRODUCT_GROUP_WIRE",
    "DOCUMENT_FORMAT_WIRE",
    "DOCUMENT_TYPE_WIRE",
    "Description",
    "Product",
    "RawDocument",
    "PreparedEnvelope",
    "load_document",
    "format_wire_datetime",
]


# ============================================================================
# Enumerations & Wire Tables
# ============================================================================


class ProductGroup(Enum):
    """Commodity category a submission belongs to."""

    CLOTHES = "CLOTHES"
    SHOES = "SHOES"
    TOBACCO = "TOBACCO"
    PERFUMERY = "PERFUMERY"
    TIRES = "TIRES"
    ELECTRONICS = "ELECTRONICS"
    PHARMA = "PHARMA"
    MILK = "MILK"
    BICYCLE = "BICYCLE"
    WHEELCHAIRS = "WHEELCHAIRS"

    @property
    def wire_name(self) -> str:
        return PRODUCT_GROUP_WIRE[self]

    @classmethod
    def coerce(cls, value: Any) -> "ProductGroup":
        """Resolve a member, its name, or its wire spelling to a ProductGroup.

        Raises:
            ValidationError: If ``value`` names no known product group.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().upper()
            if key in cls.__members__:
                return cls[key]
        raise ValidationError(
            f"Unknown product group: {value!r}. Supported: {sorted(PRODUCT_GROUP_WIRE.values())}"
        )


class DocumentFormat(Enum):
    MANUAL = "MANUAL"
    XML = "XML"
    CSV = "CSV"


class DocumentType(Enum):
    LP_INTRODUCE_GOODS = "LP_INTRODUCE_GOODS"


# Wire contract: every enum-to-string mapping the API sees lives here.
PRODUCT_GROUP_WIRE: Dict[ProductGroup, str] = {
    ProductGroup.CLOTHES: "clothes",
    ProductGroup.SHOES: "shoes",
    ProductGroup.TOBACCO: "tobacco",
    ProductGroup.PERFUMERY: "perfumery",
    ProductGroup.TIRES: "tires",
    ProductGroup.ELECTRONICS: "electronics",
    ProductGroup.PHARMA: "pharma",
    ProductGroup.MILK: "milk",
    ProductGroup.BICYCLE: "bicycle",
    ProductGroup.WHEELCHAIRS: "wheelchairs",
}

DOCUMENT_FORMAT_WIRE: Dict[DocumentFormat, str] = {
    DocumentFormat.MANUAL: "MANUAL",
    DocumentFormat.XML: "XML",
    DocumentFormat.CSV: "CSV",
}

DOCUMENT_TYPE_WIRE: Dict[DocumentType, str] = {
    DocumentType.LP_INTRODUCE_GOODS: "LP_INTRODUCE_GOODS",
}


# ============================================================================
# Document Models
# ============================================================================


def _normalize_datetime(value: Any) -> Any:
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value.replace(microsecond=0)
    return value


def format_wire_datetime(value: datetime) -> str:
    """Render ``yyyy-MM-ddTHH:mm:ssZ`` with a four-digit year for any year 1-9999."""
    return f"{value.year:04d}-{value:%m-%dT%H:%M:%S}Z"


def _drop_absent(data: Dict[str, Any], keys: tuple[str, ...]) -> Dict[str, Any]:
    for key in keys:
        if data.get(key) is None:
            data.pop(key, None)
    return data


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class Description(_WireModel):
    """Optional free-form header block of a document."""

    participant_inn: Optional[str] = Field(default=None, alias="participantInn")


class Product(_WireModel):
    """A single marked item; identified only by its position in the document.

    At least one of ``uit_code`` / ``uitu_code`` must be present before the
    document can be submitted; the preparer enforces that rule.
    """

    certificate_document: Optional[str] = None
    certificate_document_date: Optional[datetime] = None
    certificate_document_number: Optional[str] = None
    owner_inn: Optional[str] = None
    producer_inn: Optional[str] = None
    production_date: Optional[datetime] = None
    tnved_code: Optional[str] = None
    uit_code: Optional[str] = None
    uitu_code: Optional[str] = None

    @field_validator("certificate_document_date", "production_date", mode="after")
    @classmethod
    def _normalize_timestamps(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _normalize_datetime(v)

    @field_serializer("certificate_document_date", "production_date", when_used="json")
    def _serialize_timestamps(self, v: Optional[datetime]) -> Optional[str]:
        return format_wire_datetime(v) if v is not None else None

    @model_serializer(mode="wrap")
    def _omit_absent_codes(self, handler: SerializerFunctionWrapHandler) -> Dict[str, Any]:
        return _drop_absent(handler(self), ("production_date", "uit_code", "uitu_code"))

    def has_identifying_code(self) -> bool:
        """Return True when either identifying code is non-empty."""
        return bool(self.uit_code) or bool(self.uitu_code)


class RawDocument(_WireModel):
    """Caller-owned "introduce goods" document; read-only to the pipeline."""

    description: Optional[Description] = None
    doc_id: Optional[str] = None
    doc_status: Optional[str] = None
    doc_type: Optional[str] = None
    import_request: bool = Field(default=False, alias="importRequest")
    owner_inn: Optional[str] = None
    participant_inn: Optional[str] = None
    producer_inn: Optional[str] = None
    production_date: Optional[datetime] = None
    production_type: Optional[str] = None
    reg_date: Optional[date] = None
    reg_number: Optional[str] = None
    products: List[Product] = Field(default_factory=list)

    @field_validator("production_date", mode="after")
    @classmethod
    def _normalize_timestamp(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _normalize_datetime(v)

    @field_validator("products", mode="before")
    @classmethod
    def _none_means_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_serializer("production_date", when_used="json")
    def _serialize_timestamp(self, v: Optional[datetime]) -> Optional[str]:
        return format_wire_datetime(v) if v is not None else None

    @field_serializer("reg_date", when_used="json")
    def _serialize_reg_date(self, v: Optional[date]) -> Optional[str]:
        return v.isoformat() if v is not None else None

    @model_serializer(mode="wrap")
    def _omit_absent_description(self, handler: SerializerFunctionWrapHandler) -> Dict[str, Any]:
        return _drop_absent(handler(self), ("description",))


# ============================================================================
# PreparedEnvelope
# ============================================================================


class PreparedEnvelope(BaseModel):
    """Transport-ready form of a document. Immutable once built."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    document_format: str
    product_document: str
    product_group: str
    signature: str
    type: str


def load_document(payload: Mapping[str, Any]) -> RawDocument:
    """Build a :class:`RawDocument` from decoded JSON.

    Args:
        payload: Mapping using wire keys or Python field names.

    Returns:
        Validated document model.

    Raises:
        ValidationError: If the payload does not describe a document.
    """
    if not isinstance(payload, Mapping):
        raise ValidationError(f"Document payload must be an object, got {type(payload).__name__}")
    try:
        return RawDocument.model_validate(dict(payload))
    except PydanticValidationError as exc:
        raise ValidationError(f"Malformed document: {exc.error_count()} field error(s): {exc}") from exc
