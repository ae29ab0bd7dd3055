# Overview: Service-layer operations for settings; company profile and registration switches.

"""
Settings Service

Two documents in the settings collection:
- settings/company: company header printed on budgets, sales and service orders
- settings/registration: which customer/product fields are mandatory

Both are loaded into plain value objects and passed explicitly to the code that
needs them (validators, report builders). Nothing here is cached process-wide.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass

from ..validation import ValidationError, validate_company, validate_registration_settings
from . import document_store as store


COMPANY_DOC = "company"
REGISTRATION_DOC = "registration"


@dataclass(frozen=True)
class CompanyProfile:
    name: str = "Controle de Vendas"
    logo: str | None = None
    document: str | None = None
    phone: str | None = None
    email: str | None = None
    address: str | None = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class RegistrationSettings:
    customer_phone: bool = True
    customer_document: bool = True
    customer_address: bool = True
    product_description: bool = True
    product_quantity: bool = True

    @classmethod
    def from_document(cls, data: dict) -> "RegistrationSettings":
        customer = data.get("customer") or {}
        product = data.get("product") or {}
        return cls(
            customer_phone=customer.get("phone", True),
            customer_document=customer.get("document", True),
            customer_address=customer.get("address", True),
            product_description=product.get("description", True),
            product_quantity=product.get("quantity", True),
        )

    def to_dict(self) -> dict:
        return {
            "customer": {
                "phone": self.customer_phone,
                "document": self.customer_document,
                "address": self.customer_address,
            },
            "product": {
                "description": self.product_description,
                "quantity": self.product_quantity,
            },
        }


def get_company_profile() -> CompanyProfile:
    snap = store.get_document(store.SETTINGS, COMPANY_DOC)
    if snap is None:
        return CompanyProfile()
    known = CompanyProfile.__dataclass_fields__
    return CompanyProfile(**{k: v for k, v in snap.data.items() if k in known})


def update_company_profile(payload: dict) -> CompanyProfile:
    value = validate_company(payload).unwrap()
    store.set_document(store.SETTINGS, COMPANY_DOC, value)
    return get_company_profile()


def get_registration_settings() -> RegistrationSettings:
    snap = store.get_document(store.SETTINGS, REGISTRATION_DOC)
    if snap is None:
        return RegistrationSettings()
    return RegistrationSettings.from_document(snap.data)


def update_registration_settings(payload: dict) -> RegistrationSettings:
    """Merge semantics: sections/keys not sent keep their current value."""
    if not isinstance(payload, dict):
        raise ValidationError("Invalid registration settings", {"_": "payload must be a JSON object"})

    merged = {}
    for section, values in get_registration_settings().to_dict().items():
        patch = payload.get(section, {})
        merged[section] = {**values, **patch} if isinstance(patch, dict) else patch

    value = validate_registration_settings(merged).unwrap()
    store.set_document(store.SETTINGS, REGISTRATION_DOC, value)
    return RegistrationSettings.from_document(value)
