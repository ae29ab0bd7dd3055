# Overview: Service-layer operations for products; catalog CRUD and stock adjustments over the parts collection.

"""
Products Service

Products live in the parts collection. type=piece products carry a stock
quantity; type=service products do not, and any quantity sent for them is
dropped on save.

Editing a product's price never touches existing budgets/sales/service orders:
their line items keep the unitPrice captured when they were created.

Writes are conditioned on the version that was read, so an admin edit racing
a sale conversion retries against the fresh quantity instead of overwriting it.
"""

from __future__ import annotations

from ..validation import coerce_int, validate_product
from . import document_store as store
from .concurrency import run_with_retry
from .document_store import BatchWrite
from .settings_service import RegistrationSettings, get_registration_settings


def list_products(product_type: str | None = None) -> dict:
    if product_type:
        snaps = store.query_by_field(store.PRODUCTS, "type", product_type)
    else:
        snaps = store.list_documents(store.PRODUCTS)
    products = sorted((p.to_dict() for p in snaps), key=lambda p: (p.get("name") or "").lower())
    return {"items": products, "count": len(products)}


def get_product(product_id: str) -> dict:
    return store.require_document(store.PRODUCTS, product_id).to_dict()


def create_product(payload: dict, settings: RegistrationSettings | None = None) -> dict:
    value = validate_product(payload, settings or get_registration_settings()).unwrap()
    product_id = store.new_document_id()
    store.set_document(store.PRODUCTS, product_id, {**value, "id": product_id})
    return get_product(product_id)


def update_product(product_id: str, patch: dict, settings: RegistrationSettings | None = None) -> dict:
    settings = settings or get_registration_settings()

    def _op():
        existing = store.require_document(store.PRODUCTS, product_id)
        merged = {**existing.data, **(patch or {})}
        if merged.get("type") == "service":
            merged.pop("quantity", None)
        value = validate_product(merged, settings).unwrap()
        store.commit_batch([
            BatchWrite.set(store.PRODUCTS, product_id, {**value, "id": product_id}, expected_version=existing.version),
        ])

    run_with_retry(_op)
    return get_product(product_id)


def delete_product(product_id: str) -> None:
    store.require_document(store.PRODUCTS, product_id)
    store.delete_document(store.PRODUCTS, product_id)


def low_stock_products(threshold: int = 5) -> list[dict]:
    pieces = store.query_by_field(store.PRODUCTS, "type", "piece")
    low = [p.to_dict() for p in pieces if (coerce_int(p.get("quantity")) or 0) <= threshold]
    return sorted(low, key=lambda p: (p.get("quantity") or 0, (p.get("name") or "").lower()))
