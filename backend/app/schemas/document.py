"""Document schemas: the business attribute record and its form/storage boundaries."""

import json
import logging
from datetime import date
from decimal import Decimal
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic import ValidationError as SchemaValidationError

from app.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

SEQUENCE_FIELDS = ("products", "duties", "offers")


def _error_details(exc: SchemaValidationError) -> list:
    return [
        {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
        for err in exc.errors()
    ]


def parse_sequence(value: Any) -> Optional[list]:
    """
    Lenient parse for list-valued fields sent as JSON text.

    Malformed JSON, or JSON that is not a list, degrades to an empty list
    instead of failing the request.
    """
    if value is None:
        return None
    if isinstance(value, list):
        return value
    if isinstance(value, (str, bytes)):
        if isinstance(value, str) and not value.strip():
            return []
        try:
            parsed = json.loads(value)
        except (TypeError, ValueError):
            logger.warning(f"Could not parse list field, using empty list: {str(value)[:80]!r}")
            return []
        return parsed if isinstance(parsed, list) else []
    return []


class DocumentAttributes(BaseModel):
    """
    Business fields attached to a document.

    Every member is optional. ``model_fields_set`` records which fields were
    actually supplied, which is what partial updates merge on.
    """

    model_config = ConfigDict(extra="ignore")

    # Issuer
    seller_name: Optional[str] = None
    seller_tax_id: Optional[str] = None
    seller_address: Optional[str] = None
    seller_email: Optional[str] = None
    seller_phone: Optional[str] = None
    seller_bank_account: Optional[str] = None

    # Client
    buyer_name: Optional[str] = None
    buyer_tax_id: Optional[str] = None
    buyer_address: Optional[str] = None
    buyer_email: Optional[str] = None
    buyer_phone: Optional[str] = None

    # Identification, dates and terms
    document_number: Optional[str] = None
    place_of_issue: Optional[str] = None
    issue_date: Optional[date] = None
    sale_date: Optional[date] = None
    due_date: Optional[date] = None
    valid_until: Optional[date] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    payment_method: Optional[str] = None
    currency: Optional[str] = None
    contract_subject: Optional[str] = None
    notes: Optional[str] = None

    # Amounts
    net_amount: Optional[Decimal] = None
    vat_rate: Optional[str] = None  # "23", "8", "zw" (exempt)...
    vat_amount: Optional[Decimal] = None
    gross_amount: Optional[Decimal] = None

    # Sequences
    products: Optional[List[Any]] = None
    duties: Optional[List[Any]] = None
    offers: Optional[List[Any]] = None

    @field_validator("*", mode="before")
    @classmethod
    def _blank_is_null(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("net_amount", "vat_amount", "gross_amount", mode="before")
    @classmethod
    def _decimal_comma(cls, value: Any) -> Any:
        # "1 234,50" as typed in Polish locales
        if isinstance(value, str):
            return value.replace("\u00a0", "").replace(" ", "").replace(",", ".")
        return value

    @field_validator(*SEQUENCE_FIELDS, mode="before")
    @classmethod
    def _lenient_sequence(cls, value: Any) -> Any:
        return parse_sequence(value)

    @classmethod
    def from_form(cls, form: Mapping[str, Any]) -> "DocumentAttributes":
        """Build from submitted form fields, keeping track of which were present."""
        data = {name: form[name] for name in cls.model_fields if name in form}
        try:
            return cls.model_validate(data)
        except SchemaValidationError as e:
            raise ValidationError(
                "Invalid document attributes",
                details=_error_details(e),
            )

    @classmethod
    def from_storage(cls, data: Optional[Mapping[str, Any]]) -> "DocumentAttributes":
        return cls.model_validate(dict(data or {}))

    def to_storage(self) -> dict:
        """JSON-safe dict with every field present (absent ones as null)."""
        return self.model_dump(mode="json")

    def merged_with(self, patch: "DocumentAttributes") -> "DocumentAttributes":
        """Fields present in ``patch`` override; everything else is kept."""
        updates = {name: getattr(patch, name) for name in patch.model_fields_set}
        merged = self.model_copy(update=updates)
        return self.__class__.from_storage(merged.to_storage())

    def flattened(self) -> dict:
        """Response view: like ``to_storage`` but list fields default to []."""
        data = self.to_storage()
        for name in SEQUENCE_FIELDS:
            if data.get(name) is None:
                data[name] = []
        return data


class DocumentPatch(BaseModel):
    """
    Partial update of a document, built from multipart form fields.

    Only fields present in the form end up in ``model_fields_set``.
    """

    template_id: Optional[int] = None
    name: Optional[str] = None
    type: Optional[str] = None
    logo: Optional[str] = None
    signature: Optional[str] = None
    attributes: DocumentAttributes = DocumentAttributes()

    # form key -> field; blank values for required columns count as absent
    FORM_KEYS: ClassVar[Dict[str, str]] = {"templateId": "template_id", "title": "name", "type": "type"}
    NULLABLE_FORM_KEYS: ClassVar[Tuple[str, ...]] = ("logo", "signature")

    @classmethod
    def from_form(cls, form: Mapping[str, Any]) -> "DocumentPatch":
        data: dict = {}
        for key, field in cls.FORM_KEYS.items():
            value = form.get(key)
            if isinstance(value, str) and value.strip():
                data[field] = value.strip()
        for key in cls.NULLABLE_FORM_KEYS:
            if key in form:
                value = form[key]
                data[key] = value if isinstance(value, str) and value.strip() else None

        data["attributes"] = DocumentAttributes.from_form(form)
        try:
            return cls.model_validate(data)
        except SchemaValidationError as e:
            raise ValidationError(
                "Invalid document fields",
                details=_error_details(e),
            )
