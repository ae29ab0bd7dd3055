# Overview: Service-layer operations for sales; listing, payment updates and cancellation.

"""
Sales Service

Creation lives in conversion_service (it is the stock-consuming path). This
module covers the rest of a sale's life:

- payment terms can change (method, paid/pending, down payment, payment date);
  amountReceivable is recomputed, line items never change
- cancelling deletes the sale and puts its piece quantities back. A sale that
  came from a budget returns that budget to pending in the same batch, so the
  reconciliation sweep does not recreate it.
"""

from __future__ import annotations

from flask import current_app

from ..money import amount_receivable, to_amount
from ..validation import validate_sale_payment
from . import document_store as store
from .concurrency import run_with_retry
from .document_store import BatchWrite
from .stock_service import StockSnapshot, plan_stock_changes, product_ids


def list_sales(status: str | None = None, customer_id: str | None = None) -> dict:
    if customer_id:
        snaps = store.query_by_field(store.SALES, "customerId", customer_id)
    elif status:
        snaps = store.query_by_field(store.SALES, "status", status)
    else:
        snaps = store.list_documents(store.SALES)
    sales = [s.to_dict() for s in snaps]
    if status:
        sales = [s for s in sales if s.get("status") == status]
    sales.sort(key=lambda s: s.get("saleDate") or "", reverse=True)
    return {"items": sales, "count": len(sales)}


def get_sale(sale_id: str) -> dict:
    return store.require_document(store.SALES, sale_id).to_dict()


def update_sale_payment(sale_id: str, patch: dict) -> dict:
    def _op():
        existing = store.require_document(store.SALES, sale_id)
        current = {
            "paymentMethod": existing.get("paymentMethod", "cash"),
            "status": existing.get("status", "pending"),
            "downPayment": existing.get("downPayment", 0),
            "paymentDate": existing.get("paymentDate"),
        }
        value = validate_sale_payment({**current, **(patch or {})}, existing.get("totalAmount", 0)).unwrap()
        receivable = amount_receivable(existing.get("totalAmount", 0), value["status"], value.get("downPayment", 0))
        store.commit_batch([
            BatchWrite.update(store.SALES, sale_id, {
                **value,
                "amountReceivable": to_amount(receivable),
            }, expected_version=existing.version),
        ])

    run_with_retry(_op)
    return get_sale(sale_id)


def cancel_sale(sale_id: str) -> dict:
    """Delete the sale and restore piece stock; returns the cancelled sale and the stock changes."""
    def _op():
        sale = store.require_document(store.SALES, sale_id)
        items = sale.get("items") or []
        snapshot = StockSnapshot.fresh(product_ids(items))
        changes = plan_stock_changes(snapshot, items, [])

        writes = [change.to_write() for change in changes]
        writes.append(BatchWrite.delete(store.SALES, sale_id, expected_version=sale.version))

        budget_id = sale.get("budgetId")
        if budget_id:
            budget = store.get_document(store.BUDGETS, budget_id)
            if budget is not None and budget.get("status") == "approved":
                writes.append(BatchWrite.update(
                    store.BUDGETS, budget_id, {"status": "pending"}, expected_version=budget.version,
                ))

        store.commit_batch(writes)
        return sale, changes

    sale, changes = run_with_retry(_op)
    current_app.logger.info("Sale %s cancelled, %d stock changes restored", sale_id, len(changes))
    return {"sale": sale.to_dict(), "stock_changes": [c.to_dict() for c in changes]}
