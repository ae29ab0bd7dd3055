# Overview: Service-layer operations for budgets; quote lifecycle around the conversion engine.

"""
Budgets Service

LIFECYCLE:
- pending: created by the form, editable, deletable
- approved: set only by conversion_service.convert_budget, together with the
  Sale it produces; immutable and not deletable from here
- rejected: terminal, no side effects; may be deleted

totalAmount is computed on every save from the line items' unitPrice
snapshots.
"""

from __future__ import annotations

from ..time_utils import now_iso
from ..validation import ConflictError, validate_budget
from . import document_store as store
from .document_store import BatchWrite
from .stock_service import ProductNotFound, product_ids


def list_budgets(status: str | None = None) -> dict:
    if status:
        snaps = store.query_by_field(store.BUDGETS, "status", status)
    else:
        snaps = store.list_documents(store.BUDGETS)
    budgets = sorted((b.to_dict() for b in snaps), key=lambda b: b.get("budgetDate") or "", reverse=True)
    return {"items": budgets, "count": len(budgets)}


def get_budget(budget_id: str) -> dict:
    return store.require_document(store.BUDGETS, budget_id).to_dict()


def _require_references(value: dict) -> None:
    store.require_document(store.CUSTOMERS, value["customerId"])
    for product_id in sorted(product_ids(value["items"])):
        if store.get_document(store.PRODUCTS, product_id) is None:
            raise ProductNotFound(product_id)


def create_budget(payload: dict) -> dict:
    value = validate_budget(payload).unwrap()
    _require_references(value)

    budget_id = store.new_document_id()
    store.set_document(store.BUDGETS, budget_id, {
        **value,
        "id": budget_id,
        "status": "pending",
        "budgetDate": now_iso(),
    })
    return get_budget(budget_id)


def update_budget(budget_id: str, patch: dict) -> dict:
    existing = store.require_document(store.BUDGETS, budget_id)
    if existing.get("status") != "pending":
        raise ConflictError(f"Only pending budgets can be edited (status is {existing.get('status')})")

    patch = {k: v for k, v in (patch or {}).items() if k not in ("id", "status", "budgetDate", "totalAmount")}
    value = validate_budget({**existing.data, **patch}).unwrap()
    _require_references(value)

    store.commit_batch([
        BatchWrite.set(store.BUDGETS, budget_id, {
            **value,
            "id": budget_id,
            "status": "pending",
            "budgetDate": existing.get("budgetDate") or now_iso(),
        }, expected_version=existing.version),
    ])
    return get_budget(budget_id)


def delete_budget(budget_id: str) -> None:
    existing = store.require_document(store.BUDGETS, budget_id)
    if existing.get("status") == "approved":
        raise ConflictError("Approved budgets are referenced by their sale and cannot be deleted")
    store.commit_batch([BatchWrite.delete(store.BUDGETS, budget_id, expected_version=existing.version)])
