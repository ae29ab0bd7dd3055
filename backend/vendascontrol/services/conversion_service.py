# Overview: Service-layer operations for sale conversion; turns budgets and sale forms into sales and stock writes.

"""
Conversion Service - budget/sale to Sale + inventory decrement

WHY: A sale is the only event that consumes stock. Whether it comes from the
sale form or from an approved budget, it must go through the same
read -> validate -> stage -> commit sequence so stock never goes negative and a
budget never yields two sales.

SEQUENCE (one attempt):
1. Re-read the source budget (when converting one) and check its state.
2. Fresh read of every referenced product (StockSnapshot.fresh).
3. plan_stock_changes: all line items validated before anything is staged.
4. Build the Sale (UUID4 id, totals from the line-item price snapshots).
5. commit_batch: stock updates + new Sale + budget status=approved, all in
   one atomic batch. Stock and budget writes are conditioned on the versions
   read in steps 1-2.

A VersionConflict (someone else wrote the same product or budget in between)
rolls back and re-runs the whole attempt via run_with_retry.

IDEMPOTENCY:
A Sale claims a Budget through its budgetId back-reference. A budget that is
already claimed raises BudgetAlreadyConverted; two concurrent conversions of
the same budget race on the budget's version, and the loser's retry sees the
claim.
"""

from __future__ import annotations

from flask import current_app

from ..money import amount_receivable, items_total, to_amount, to_decimal
from ..time_utils import now_iso
from ..validation import ValidationError, parse_line_items, validate_sale
from . import document_store as store
from .concurrency import run_with_retry
from .document_store import BatchWrite, DocumentSnapshot
from .stock_service import StockChange, StockSnapshot, plan_stock_changes, product_ids


class ConversionError(Exception):
    """Raised when a source document cannot be converted in its current state."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class BudgetStateError(ConversionError):
    """Budget status does not allow the requested transition."""


class BudgetAlreadyConverted(ConversionError):
    """A Sale with this budgetId already exists."""
    def __init__(self, budget_id: str, sale_id: str):
        super().__init__(
            f"Budget {budget_id} was already converted into sale {sale_id}",
            details={"budget_id": budget_id, "sale_id": sale_id},
        )
        self.budget_id = budget_id
        self.sale_id = sale_id


def build_sale(
    items: list[dict],
    customer_id: str,
    *,
    budget_id: str | None = None,
    payment_method: str = "cash",
    status: str = "pending",
    down_payment=0,
    payment_date: str | None = None,
) -> dict:
    """Sale document; unitPrice is copied from the line items, never from products."""
    total = items_total(items)
    down = to_decimal(down_payment or 0)
    sale = {
        "id": store.new_document_id(),
        "customerId": customer_id,
        "items": [dict(item) for item in items],
        "totalAmount": to_amount(total),
        "saleDate": now_iso(),
        "paymentMethod": payment_method,
        "status": status,
        "downPayment": to_amount(down),
        "amountReceivable": to_amount(amount_receivable(total, status, down)),
    }
    if payment_date:
        sale["paymentDate"] = payment_date
    if budget_id:
        sale["budgetId"] = budget_id
    return sale


def stage_conversion(
    snapshot: StockSnapshot,
    items: list[dict],
    customer_id: str,
    *,
    budget: DocumentSnapshot | None = None,
    **terms,
) -> tuple[dict, list[BatchWrite], list[StockChange]]:
    """Validate against the snapshot and return (sale, writes, stock changes)."""
    changes = plan_stock_changes(snapshot, [], items)

    sale = build_sale(items, customer_id, budget_id=budget.id if budget else None, **terms)

    writes = [change.to_write() for change in changes]
    writes.append(BatchWrite.set(store.SALES, sale["id"], sale, expected_version=0))
    if budget is not None:
        writes.append(BatchWrite.update(
            store.BUDGETS, budget.id, {"status": "approved"}, expected_version=budget.version,
        ))
    return sale, writes, changes


def claiming_sale(budget_id: str) -> DocumentSnapshot | None:
    sales = store.query_by_field(store.SALES, "budgetId", budget_id)
    return sales[0] if sales else None


def load_convertible_budget(budget_id: str) -> DocumentSnapshot:
    """
    Budget that may still produce its Sale: pending, or approved without a
    claiming Sale (an interrupted or bypassed approval). Rejected is terminal.
    """
    budget = store.require_document(store.BUDGETS, budget_id)
    status = budget.get("status")

    if status == "rejected":
        raise BudgetStateError("Rejected budgets cannot be converted", details={"budget_id": budget_id, "status": status})

    claimed = claiming_sale(budget_id)
    if claimed is not None:
        raise BudgetAlreadyConverted(budget_id, claimed.id)

    if status not in ("pending", "approved"):
        raise BudgetStateError(f"Cannot convert budget with status {status}", details={"budget_id": budget_id, "status": status})

    return budget


def budget_items(budget: DocumentSnapshot) -> list[dict]:
    items, errors = parse_line_items(budget.get("items"))
    if errors:
        raise ValidationError(f"Budget {budget.id} has invalid line items", errors)
    return items


def _require_customer(customer_id: str) -> None:
    store.require_document(store.CUSTOMERS, customer_id)


def convert_to_sale(line_items, customer_id: str, *, budget_id: str | None = None, **terms) -> dict:
    """
    Create a Sale from line items, decrementing piece stock atomically.

    budget_id: the budget this sale claims. It must still be convertible, and
    its status=approved is staged in the same batch as the sale.
    terms: payment_method, status, down_payment, payment_date.
    Raises ValidationError, DocumentNotFound, ProductNotFound, StockInsufficient,
    ConversionError; store failures surface as VersionConflict / StoreWriteFailure.
    """
    items, errors = parse_line_items(line_items)
    if not customer_id:
        errors["customerId"] = "customerId is required"
    if errors:
        raise ValidationError("Invalid sale", errors)

    def _op():
        budget = load_convertible_budget(budget_id) if budget_id else None
        _require_customer(customer_id)
        snapshot = StockSnapshot.fresh(product_ids(items))
        sale, writes, changes = stage_conversion(snapshot, items, customer_id, budget=budget, **terms)
        store.commit_batch(writes)
        return sale, changes

    sale, changes = run_with_retry(_op)
    current_app.logger.info(
        "Sale %s created for customer %s (total %.2f, %d stock changes)",
        sale["id"], customer_id, sale["totalAmount"], len(changes),
    )
    return sale


def create_sale(payload: dict) -> dict:
    """Sale form entry point: validates payment terms, then converts."""
    value = validate_sale(payload).unwrap()
    return convert_to_sale(
        value["items"],
        value["customerId"],
        payment_method=value["paymentMethod"],
        status=value["status"],
        down_payment=value.get("downPayment", 0),
        payment_date=value.get("paymentDate"),
    )


def convert_budget(budget_id: str) -> dict:
    """
    Approve a budget by converting it into a Sale.

    The Sale, the stock decrements and status=approved are one batch, so a
    failure leaves the budget pending with stock untouched.
    """
    def _op():
        budget = load_convertible_budget(budget_id)
        items = budget_items(budget)
        customer_id = budget.get("customerId")
        _require_customer(customer_id)
        snapshot = StockSnapshot.fresh(product_ids(items))
        sale, writes, _ = stage_conversion(snapshot, items, customer_id, budget=budget)
        store.commit_batch(writes)
        return sale

    sale = run_with_retry(_op)
    current_app.logger.info("Budget %s converted into sale %s", budget_id, sale["id"])
    return sale


def reject_budget(budget_id: str) -> dict:
    """pending -> rejected. Rejected is terminal; repeating it is a no-op."""
    def _op():
        budget = store.require_document(store.BUDGETS, budget_id)
        status = budget.get("status")
        if status == "rejected":
            return budget.to_dict()
        if status != "pending":
            raise BudgetStateError(f"Cannot reject budget with status {status}", details={"budget_id": budget_id, "status": status})
        claimed = claiming_sale(budget_id)
        if claimed is not None:
            raise BudgetAlreadyConverted(budget_id, claimed.id)

        store.commit_batch([
            BatchWrite.update(store.BUDGETS, budget_id, {"status": "rejected"}, expected_version=budget.version),
        ])
        return {**budget.to_dict(), "status": "rejected"}

    result = run_with_retry(_op)
    current_app.logger.info("Budget %s rejected", budget_id)
    return result
