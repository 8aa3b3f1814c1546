"""Parsing and validation of entry payloads.

Request bodies use the public camelCase field names; everything past this
module works with the snake_case attribute names of :class:`Entry`.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from ..common.datetime_utils import parse_optional_datetime
from ..common.validators import is_valid_mobile, parse_id, parse_number, require_non_empty
from ..core.constants import DEFAULT_ENTRY_STATUS
from ..core.enums import CloseType, EntryCategory, EntryType
from ..core.exceptions import FieldError, ValidationError
from .model import Entry, HistoryLog, Product

logger = logging.getLogger(__name__)

TEXT_FIELDS = {
    "customerName": "customer_name",
    "mobileNumber": "mobile_number",
    "contactperson": "contact_person",
    "address": "address",
    "state": "state",
    "city": "city",
    "organization": "organization",
    "type": "type",
    "category": "category",
    "status": "status",
    "closetype": "close_type",
    "remarks": "remarks",
    "liveLocation": "live_location",
    "nextAction": "next_action",
    "firstPersonMeet": "first_person_meet",
    "secondPersonMeet": "second_person_meet",
    "thirdPersonMeet": "third_person_meet",
    "fourthPersonMeet": "fourth_person_meet",
}
DATE_FIELDS = {
    "firstdate": "first_date",
    "expectedClosingDate": "expected_closing_date",
    "followUpDate": "follow_up_date",
}
NUMBER_FIELDS = {
    "estimatedValue": "estimated_value",
    "closeamount": "close_amount",
}

PRODUCT_ERROR = (
    "All product fields (name, specification, size, quantity) are required and quantity must be a positive whole number"
)
IMPORT_REQUIRED_FIELDS = (
    "customerName",
    "mobileNumber",
    "contactperson",
    "address",
    "products",
    "organization",
    "category",
    "state",
    "city",
)


def parse_products(raw: Any) -> Tuple[Product, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise ValidationError("products must be an array")
    return tuple(Product.from_dict(p) for p in raw)


def parse_assigned_to(raw: Any) -> Tuple[int, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise ValidationError("assignedTo must be an array")
    ids: List[int] = []
    for value in raw:
        ident = parse_id(value, label="user ID")
        if ident not in ids:
            ids.append(ident)
    return tuple(ids)


def parse_entry_payload(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Translate a request body into the subset of entry fields it sets.

    Absent keys (and ``null`` for non-date fields) mean "leave unchanged";
    ``null`` or ``""`` for a date field clears it.
    """
    if not isinstance(payload, Mapping):
        raise ValidationError("Invalid data format. Object expected.")

    changes: Dict[str, Any] = {}
    for key, attr in TEXT_FIELDS.items():
        value = payload.get(key)
        if value is None:
            continue
        changes[attr] = str(value).strip()

    if changes.get("status") == "":
        del changes["status"]

    for key, attr in DATE_FIELDS.items():
        if key in payload:
            changes[attr] = parse_optional_datetime(payload[key], key)

    for key, attr in NUMBER_FIELDS.items():
        value = payload.get(key)
        if value is None or value == "":
            continue
        changes[attr] = parse_number(value, key)

    if payload.get("products") is not None:
        changes["products"] = parse_products(payload["products"])
    if payload.get("assignedTo") is not None:
        changes["assigned_to"] = parse_assigned_to(payload["assignedTo"])

    return changes


def require_complete_products(products: Sequence[Product]) -> None:
    if any(not p.is_complete for p in products):
        raise ValidationError(PRODUCT_ERROR)


def drop_incomplete_products(products: Sequence[Product]) -> Tuple[Product, ...]:
    kept = []
    for p in products:
        if not p.is_complete:
            logger.warning("Skipping invalid product: %s", p.to_dict())
            continue
        kept.append(p)
    return tuple(kept)


def validate_entry_fields(entry: Entry, *, require_location: bool = False) -> List[FieldError]:
    """Record-level rules checked before every write."""
    errors: List[FieldError] = []
    if not entry.customer_name:
        errors.append(FieldError("customerName", "Path `customerName` is required."))
    if require_location and not entry.live_location:
        errors.append(FieldError("liveLocation", "Path `liveLocation` is required."))
    if entry.mobile_number and not is_valid_mobile(entry.mobile_number):
        errors.append(FieldError("mobileNumber", "Mobile number must be 10 digits"))
    if entry.estimated_value is not None and entry.estimated_value < 0:
        errors.append(FieldError("estimatedValue", "Estimated value must be a non-negative number"))
    if entry.close_amount is not None and entry.close_amount < 0:
        errors.append(FieldError("closeamount", "Close amount must be a non-negative number"))
    if entry.close_type is not None and entry.close_type not in {c.value for c in CloseType}:
        errors.append(FieldError("closetype", f"`{entry.close_type}` is not a valid close type."))
    for idx, product in enumerate(entry.products):
        if product.quantity < 1:
            errors.append(FieldError(f"products.{idx}.quantity", "Quantity must be a whole number of at least 1"))
    return errors


def raise_for_field_errors(entry: Entry, *, require_location: bool = False) -> None:
    errors = validate_entry_fields(entry, require_location=require_location)
    if errors:
        raise ValidationError("Validation failed", errors=errors)


def validate_import_row(raw: Any, *, created_by: int, now: datetime) -> Entry:
    """Validate one bulk-import element and build the entry to insert."""
    if not isinstance(raw, Mapping):
        raise ValidationError("Each entry must be an object")

    for name in IMPORT_REQUIRED_FIELDS:
        value = raw.get(name)
        if name == "products":
            if not value:
                raise ValidationError(f"{name} is required and must be a non-empty string")
            continue
        require_non_empty(value, name)

    mobile = raw["mobileNumber"].strip()
    if not is_valid_mobile(mobile):
        raise ValidationError("Mobile number must be exactly 10 digits")

    entry_type = raw.get("type")
    if isinstance(entry_type, str):
        entry_type = entry_type.strip()
    if entry_type not in {t.value for t in EntryType}:
        raise ValidationError("Type must be either 'Partner' or 'Customer'")

    category = raw["category"].strip()
    if category not in {c.value for c in EntryCategory}:
        raise ValidationError("Category must be either 'Private' or 'Government'")

    estimated_value = None
    if raw.get("estimatedValue") not in (None, "", 0):
        try:
            estimated_value = parse_number(raw["estimatedValue"], "estimatedValue")
        except ValidationError:
            raise ValidationError("Estimated value must be a non-negative number")
        if estimated_value < 0:
            raise ValidationError("Estimated value must be a non-negative number")

    if not isinstance(raw["products"], list) or not raw["products"]:
        raise ValidationError("Products must be a non-empty array")
    products = parse_products(raw["products"])
    require_complete_products(products)

    close_amount = None
    if raw.get("closeamount") not in (None, "", 0):
        close_amount = parse_number(raw["closeamount"], "closeamount")

    def _text(key: str, default: str = "") -> str:
        value = raw.get(key)
        return str(value).strip() if value is not None else default

    entry = Entry(
        entry_id=0,
        customer_name=raw["customerName"].strip(),
        mobile_number=mobile,
        contact_person=raw["contactperson"].strip(),
        first_date=parse_optional_datetime(raw.get("firstdate"), "firstdate"),
        address=raw["address"].strip(),
        state=raw["state"].strip(),
        city=raw["city"].strip(),
        products=products,
        type=entry_type,
        organization=raw["organization"].strip(),
        category=category,
        remarks=_text("remarks"),
        created_by=created_by,
        created_at=parse_optional_datetime(raw.get("createdAt"), "createdAt") or now,
        updated_at=now,
        status=_text("status") or DEFAULT_ENTRY_STATUS,
        expected_closing_date=parse_optional_datetime(raw.get("expectedClosingDate"), "expectedClosingDate"),
        close_type=_text("closetype"),
        follow_up_date=parse_optional_datetime(raw.get("followUpDate"), "followUpDate"),
        estimated_value=estimated_value,
        close_amount=close_amount,
        next_action=_text("nextAction"),
        history=HistoryLog(),
    )
    raise_for_field_errors(entry)
    return entry
