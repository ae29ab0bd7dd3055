# Overview: Service-layer operations for service orders; repair orders with incremental stock reconciliation.

"""
Service Orders Service

A service order consumes piece stock for the parts it uses. Unlike a sale its
items can be edited after creation, so every write goes through
plan_stock_changes with the stored items as the old allocation:

- create: []        -> new items
- update: old items -> new items (quantities being removed are credited
                                  before the new ones are checked)
- delete: old items -> []

The stock writes and the order itself commit in one batch, conditioned on the
versions read, and the whole read-plan-commit is retried on conflicts.
"""

from __future__ import annotations

from flask import current_app

from ..validation import validate_service_order
from . import document_store as store
from .concurrency import run_with_retry
from .document_store import BatchWrite
from .stock_service import StockSnapshot, plan_stock_changes, product_ids


def list_service_orders(status: str | None = None) -> dict:
    if status:
        snaps = store.query_by_field(store.SERVICE_ORDERS, "status", status)
    else:
        snaps = store.list_documents(store.SERVICE_ORDERS)
    orders = sorted((o.to_dict() for o in snaps), key=lambda o: o.get("entryDate") or "", reverse=True)
    return {"items": orders, "count": len(orders)}


def get_service_order(order_id: str) -> dict:
    return store.require_document(store.SERVICE_ORDERS, order_id).to_dict()


def create_service_order(payload: dict) -> dict:
    value = validate_service_order(payload).unwrap()
    order_id = store.new_document_id()

    def _op():
        store.require_document(store.CUSTOMERS, value["customerId"])
        snapshot = StockSnapshot.fresh(product_ids(value["items"]))
        changes = plan_stock_changes(snapshot, [], value["items"])
        writes = [change.to_write() for change in changes]
        writes.append(BatchWrite.set(store.SERVICE_ORDERS, order_id, {**value, "id": order_id}, expected_version=0))
        store.commit_batch(writes)

    run_with_retry(_op)
    current_app.logger.info("Service order %s created", order_id)
    return get_service_order(order_id)


def update_service_order(order_id: str, patch: dict) -> dict:
    patch = {k: v for k, v in (patch or {}).items() if k not in ("id", "totalAmount")}

    def _op():
        existing = store.require_document(store.SERVICE_ORDERS, order_id)
        merged = {**existing.data, **patch}
        # a fresh "completed" transition gets a fresh exit date unless one is sent
        if merged.get("status") == "completed" and existing.get("status") != "completed" and "exitDate" not in patch:
            merged.pop("exitDate", None)
        value = validate_service_order(merged).unwrap()
        store.require_document(store.CUSTOMERS, value["customerId"])

        old_items = existing.get("items") or []
        snapshot = StockSnapshot.fresh(product_ids(old_items, value["items"]))
        changes = plan_stock_changes(snapshot, old_items, value["items"])

        writes = [change.to_write() for change in changes]
        writes.append(BatchWrite.set(
            store.SERVICE_ORDERS, order_id, {**value, "id": order_id}, expected_version=existing.version,
        ))
        store.commit_batch(writes)
        return changes

    changes = run_with_retry(_op)
    current_app.logger.info("Service order %s updated, %d stock changes", order_id, len(changes))
    return get_service_order(order_id)


def delete_service_order(order_id: str) -> None:
    """Delete the order and give its piece quantities back to stock."""
    def _op():
        existing = store.require_document(store.SERVICE_ORDERS, order_id)
        old_items = existing.get("items") or []
        snapshot = StockSnapshot.fresh(product_ids(old_items))
        changes = plan_stock_changes(snapshot, old_items, [])
        writes = [change.to_write() for change in changes]
        writes.append(BatchWrite.delete(store.SERVICE_ORDERS, order_id, expected_version=existing.version))
        store.commit_batch(writes)

    run_with_retry(_op)
    current_app.logger.info("Service order %s deleted", order_id)
