# Overview: Service-layer operations for customers; CRUD over the customers collection.

from __future__ import annotations

from ..validation import ConflictError, validate_customer
from . import document_store as store
from .settings_service import RegistrationSettings, get_registration_settings

# collections whose documents point at a customer through customerId
_REFERENCING = (store.BUDGETS, store.SALES, store.SERVICE_ORDERS)


def list_customers() -> dict:
    customers = sorted(
        (c.to_dict() for c in store.list_documents(store.CUSTOMERS)),
        key=lambda c: (c.get("name") or "").lower(),
    )
    return {"items": customers, "count": len(customers)}


def get_customer(customer_id: str) -> dict:
    return store.require_document(store.CUSTOMERS, customer_id).to_dict()


def create_customer(payload: dict, settings: RegistrationSettings | None = None) -> dict:
    value = validate_customer(payload, settings or get_registration_settings()).unwrap()
    customer_id = store.new_document_id()
    store.set_document(store.CUSTOMERS, customer_id, {**value, "id": customer_id})
    return get_customer(customer_id)


def update_customer(customer_id: str, patch: dict, settings: RegistrationSettings | None = None) -> dict:
    existing = store.require_document(store.CUSTOMERS, customer_id)
    merged = {**existing.data, **(patch or {})}
    value = validate_customer(merged, settings or get_registration_settings()).unwrap()
    store.commit_batch([
        store.BatchWrite.set(store.CUSTOMERS, customer_id, {**value, "id": customer_id}, expected_version=existing.version),
    ])
    return get_customer(customer_id)


def delete_customer(customer_id: str) -> None:
    """Customers referenced by budgets, sales or service orders are kept."""
    store.require_document(store.CUSTOMERS, customer_id)
    for collection in _REFERENCING:
        if store.query_by_field(collection, "customerId", customer_id):
            raise ConflictError(f"Customer is referenced by {collection}")
    store.delete_document(store.CUSTOMERS, customer_id)
