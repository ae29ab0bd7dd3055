from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from vendascontrol.formatting import digits_only, mask_document, mask_phone
from vendascontrol.money import to_amount, to_decimal, items_total
from vendascontrol.time_utils import parse_iso_datetime, to_utc_z, now_iso

if TYPE_CHECKING:
    from vendascontrol.services.settings_service import RegistrationSettings


# Maximum price: R$ 9.999.999,99
MAX_AMOUNT = 9_999_999.99

PRODUCT_TYPES = ("piece", "service")
PAYMENT_METHODS = ("cash", "pix", "credit_card", "debit_card")
SALE_STATUSES = ("paid", "pending")
BUDGET_STATUSES = ("pending", "approved", "rejected")
SERVICE_ORDER_STATUSES = ("pending", "in_progress", "completed", "delivered")

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ValidationError(ValueError):
    """400-level input problem, with per-field messages."""
    def __init__(self, message: str, field_errors: dict[str, str] | None = None):
        super().__init__(message)
        self.field_errors = field_errors or {}


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., editing an approved budget)."""


@dataclass(frozen=True)
class ValidationResult:
    """
    Tagged outcome of an entity validator.

    ok -> value holds the normalized document fields
    not ok -> errors maps field name (dotted for nested items) to a message
    """
    entity: str
    value: dict | None = None
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors

    def unwrap(self) -> dict:
        if self.errors:
            raise ValidationError(f"Invalid {self.entity}", self.errors)
        return self.value


class _Fields:
    """Reads fields out of a payload, collecting errors instead of raising."""

    def __init__(self, payload: Any):
        self.payload = payload if isinstance(payload, dict) else {}
        self.errors: dict[str, str] = {}
        if not isinstance(payload, dict):
            self.errors["_"] = "payload must be a JSON object"

    def fail(self, key: str, message: str) -> None:
        self.errors.setdefault(key, message)

    def text(self, key: str, *, required: bool = False, min_len: int = 0, label: str | None = None) -> str | None:
        value = self.payload.get(key)
        if value is None or (isinstance(value, str) and not value.strip()):
            if required:
                self.fail(key, f"{label or key} is required")
            return None
        if not isinstance(value, str):
            self.fail(key, f"{label or key} must be a string")
            return None
        value = value.strip()
        if len(value) < min_len:
            self.fail(key, f"{label or key} must have at least {min_len} characters")
        return value

    def choice(self, key: str, choices: tuple[str, ...], default: str | None = None) -> str | None:
        value = self.payload.get(key, default)
        if value is None:
            self.fail(key, f"{key} is required")
            return None
        if value not in choices:
            self.fail(key, f"{key} must be one of: {', '.join(choices)}")
            return None
        return value

    def integer(self, key: str, *, required: bool = False, minimum: int | None = None, default: int | None = None) -> int | None:
        value = self.payload.get(key, default)
        if value is None or value == "":
            if required:
                self.fail(key, f"{key} is required")
            return default
        parsed = coerce_int(value)
        if parsed is None:
            self.fail(key, f"{key} must be an integer")
            return None
        if minimum is not None and parsed < minimum:
            self.fail(key, f"{key} must be at least {minimum}")
        return parsed

    def amount(self, key: str, *, required: bool = False, minimum: float | None = None,
               exclusive_min: bool = False, default: float | None = None) -> float | None:
        value = self.payload.get(key, default)
        if value is None or value == "":
            if required:
                self.fail(key, f"{key} is required")
            return default
        try:
            dec = to_decimal(value)
        except ValueError:
            self.fail(key, f"{key} must be a number")
            return None
        if minimum is not None:
            if exclusive_min and dec <= to_decimal(minimum):
                self.fail(key, f"{key} must be greater than {minimum}")
            elif not exclusive_min and dec < to_decimal(minimum):
                self.fail(key, f"{key} must be at least {minimum}")
        if dec > to_decimal(MAX_AMOUNT):
            self.fail(key, f"{key} exceeds maximum of {MAX_AMOUNT}")
        return to_amount(dec)

    def timestamp(self, key: str, *, required: bool = False, default: str | None = None) -> str | None:
        value = self.payload.get(key)
        if value is None or value == "":
            if required and default is None:
                self.fail(key, f"{key} is required")
            return default
        if not isinstance(value, str):
            self.fail(key, f"{key} must be an ISO-8601 datetime")
            return None
        try:
            return to_utc_z(parse_iso_datetime(value))
        except ValueError:
            self.fail(key, f"{key} must be an ISO-8601 datetime")
            return None

    def string_list(self, key: str) -> list[str] | None:
        value = self.payload.get(key)
        if value is None:
            return None
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            self.fail(key, f"{key} must be a list of strings")
            return None
        return list(value)

    def result(self, entity: str, value: dict) -> ValidationResult:
        if self.errors:
            return ValidationResult(entity=entity, errors=dict(self.errors))
        return ValidationResult(entity=entity, value={k: v for k, v in value.items() if v is not None})


def coerce_int(value: Any) -> int | None:
    """
    Strict integer coercion for JSON input.

    Accepts ints and plain digit strings; rejects bools, fractional floats,
    decimals-in-strings and scientific notation.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        stripped = value.strip()
        if not re.fullmatch(r"-?\d+", stripped):
            return None
        return int(stripped)
    return None


# ---------------------------------------------------------------------------
# Line items
# ---------------------------------------------------------------------------

def parse_line_items(raw: Any, *, allow_empty: bool = False, with_price: bool = True) -> tuple[list[dict], dict[str, str]]:
    """
    Normalize line items to {productId, quantity, unitPrice}.

    Returns (items, errors); errors use keys like "items.1.quantity".
    unitPrice is taken as given: it is the price snapshot at creation time.
    """
    errors: dict[str, str] = {}
    if raw is None:
        raw = []
    if not isinstance(raw, list):
        return [], {"items": "items must be a list"}
    if not raw and not allow_empty:
        return [], {"items": "at least one item is required"}

    items: list[dict] = []
    for index, entry in enumerate(raw):
        prefix = f"items.{index}"
        if not isinstance(entry, dict):
            errors[prefix] = "item must be an object"
            continue

        product_id = entry.get("productId")
        if not isinstance(product_id, str) or not product_id.strip():
            errors[f"{prefix}.productId"] = "select a product or service"

        quantity = coerce_int(entry.get("quantity"))
        if quantity is None:
            errors[f"{prefix}.quantity"] = "quantity must be an integer"
        elif quantity < 1:
            errors[f"{prefix}.quantity"] = "minimum 1"

        item = {"productId": product_id.strip() if isinstance(product_id, str) else product_id, "quantity": quantity}

        if with_price:
            try:
                price = to_decimal(entry.get("unitPrice"))
                if price < 0:
                    errors[f"{prefix}.unitPrice"] = "unitPrice cannot be negative"
                item["unitPrice"] = to_amount(price)
            except ValueError:
                errors[f"{prefix}.unitPrice"] = "unitPrice must be a number"

        items.append(item)

    return items, errors


# ---------------------------------------------------------------------------
# Entity validators
# ---------------------------------------------------------------------------

def validate_customer(payload: Any, settings: "RegistrationSettings | None" = None) -> ValidationResult:
    f = _Fields(payload)
    require_phone = settings.customer_phone if settings else True
    require_document = settings.customer_document if settings else True
    require_address = settings.customer_address if settings else True

    name = f.text("name", required=True, min_len=2)

    email = f.text("email", required=True)
    if email and not _EMAIL_RE.match(email):
        f.fail("email", "invalid e-mail")

    phone = f.text("phone", required=require_phone)
    if phone and len(digits_only(phone)) < 10:
        f.fail("phone", "phone must have at least 10 digits")

    document = f.text("document", required=require_document)
    if document and len(digits_only(document)) < 11:
        f.fail("document", "document (CPF/CNPJ) must have at least 11 digits")

    address = f.text("address", required=require_address, min_len=5 if require_address else 0)

    return f.result("customer", {
        "name": name,
        "email": email.lower() if email else None,
        "phone": mask_phone(phone) if phone else "",
        "document": mask_document(document) if document else "",
        "address": address or "",
    })


def validate_product(payload: Any, settings: "RegistrationSettings | None" = None) -> ValidationResult:
    f = _Fields(payload)
    require_description = settings.product_description if settings else True
    require_quantity = settings.product_quantity if settings else True

    name = f.text("name", required=True, min_len=2)
    description = f.text("description", required=require_description, min_len=5 if require_description else 0)
    price = f.amount("price", required=True, minimum=0, exclusive_min=True)
    cost = f.amount("cost", minimum=0, default=0.0)
    product_type = f.choice("type", PRODUCT_TYPES)

    quantity = None
    if product_type == "piece":
        quantity = f.integer("quantity", required=require_quantity, minimum=0, default=0)

    return f.result("product", {
        "name": name,
        "description": description or "",
        "price": price,
        "cost": cost,
        "type": product_type,
        # service items carry no stock
        "quantity": quantity,
        "link": f.text("link"),
        "imageUrl": f.text("imageUrl"),
    })


def _items(f: _Fields, *, allow_empty: bool = False) -> list[dict]:
    items, errors = parse_line_items(f.payload.get("items"), allow_empty=allow_empty)
    for key, message in errors.items():
        f.fail(key, message)
    return items


def validate_budget(payload: Any) -> ValidationResult:
    f = _Fields(payload)
    customer_id = f.text("customerId", required=True)
    items = _items(f)
    valid_until = f.timestamp("validUntil", required=True)

    value = {
        "customerId": customer_id,
        "items": items,
        "validUntil": valid_until,
        "itemDescription": f.text("itemDescription"),
        "model": f.text("model"),
        "problemDescription": f.text("problemDescription"),
        "solutionDescription": f.text("solutionDescription"),
        "serialNumber": f.text("serialNumber"),
        "imageUrls": f.string_list("imageUrls"),
    }
    if not f.errors:
        value["totalAmount"] = to_amount(items_total(items))
    return f.result("budget", value)


def validate_sale(payload: Any) -> ValidationResult:
    """Direct sale form: customer, items and payment terms."""
    f = _Fields(payload)
    customer_id = f.text("customerId", required=True)
    items = _items(f)
    payment_method = f.choice("paymentMethod", PAYMENT_METHODS, default="cash")
    status = f.choice("status", SALE_STATUSES, default="pending")
    down_payment = f.amount("downPayment", minimum=0, default=0.0)
    payment_date = f.timestamp("paymentDate")

    if not f.errors and down_payment and to_decimal(down_payment) > items_total(items):
        f.fail("downPayment", "down payment cannot exceed the sale total")

    return f.result("sale", {
        "customerId": customer_id,
        "items": items,
        "paymentMethod": payment_method,
        "status": status,
        "downPayment": down_payment,
        "paymentDate": payment_date,
    })


def validate_sale_payment(payload: Any, total_amount: float) -> ValidationResult:
    """Payment fields of an existing sale; items stay immutable."""
    f = _Fields(payload)
    payment_method = f.choice("paymentMethod", PAYMENT_METHODS)
    status = f.choice("status", SALE_STATUSES)
    down_payment = f.amount("downPayment", minimum=0, default=0.0)
    payment_date = f.timestamp("paymentDate")

    if down_payment and to_decimal(down_payment) > to_decimal(total_amount):
        f.fail("downPayment", "down payment cannot exceed the sale total")

    return f.result("sale", {
        "paymentMethod": payment_method,
        "status": status,
        "downPayment": down_payment,
        "paymentDate": payment_date,
    })


def validate_service_order(payload: Any) -> ValidationResult:
    f = _Fields(payload)
    customer_id = f.text("customerId", required=True)
    items = _items(f, allow_empty=True)
    status = f.choice("status", SERVICE_ORDER_STATUSES, default="pending")
    entry_date = f.timestamp("entryDate", default=now_iso())
    exit_date = f.timestamp("exitDate")

    # completing an order stamps its exit date
    if status == "completed" and not exit_date:
        exit_date = now_iso()

    value = {
        "customerId": customer_id,
        "items": items,
        "status": status,
        "entryDate": entry_date,
        "exitDate": exit_date,
        "itemDescription": f.text("itemDescription", required=True),
        "problemDescription": f.text("problemDescription", required=True),
        "serialNumber": f.text("serialNumber"),
    }
    if not f.errors:
        value["totalAmount"] = to_amount(items_total(items))
    return f.result("service order", value)


def validate_discard(payload: Any) -> ValidationResult:
    f = _Fields(payload)
    components, errors = parse_line_items(f.payload.get("items"), allow_empty=True, with_price=False)
    for key, message in errors.items():
        f.fail(key, message)

    return f.result("discard", {
        "description": f.text("description", required=True, min_len=1),
        "model": f.text("model"),
        "serialNumber": f.text("serialNumber"),
        "imageUrls": f.string_list("imageUrls"),
        "items": components or None,
        "discardDate": f.timestamp("discardDate", default=now_iso()),
    })


def validate_company(payload: Any) -> ValidationResult:
    f = _Fields(payload)
    name = f.text("name", required=True, min_len=2)
    email = f.text("email")
    if email and not _EMAIL_RE.match(email):
        f.fail("email", "invalid e-mail")
    phone = f.text("phone")
    document = f.text("document")
    return f.result("company", {
        "name": name,
        "logo": f.text("logo"),
        "document": mask_document(document) if document else None,
        "phone": mask_phone(phone) if phone else None,
        "email": email,
        "address": f.text("address"),
    })


def validate_registration_settings(payload: Any) -> ValidationResult:
    f = _Fields(payload)
    value: dict[str, dict[str, bool]] = {}
    for section, keys in (("customer", ("phone", "document", "address")), ("product", ("description", "quantity"))):
        raw = f.payload.get(section, {})
        if not isinstance(raw, dict):
            f.fail(section, f"{section} must be an object")
            continue
        value[section] = {}
        for key in keys:
            flag = raw.get(key, True)
            if not isinstance(flag, bool):
                f.fail(f"{section}.{key}", "must be true or false")
                continue
            value[section][key] = flag
    return f.result("registration settings", value)
