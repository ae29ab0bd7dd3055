# Overview: Service-layer operations for reconciliation; converts approved budgets that have no sale.

"""
Budget Reconciliation Sweep

WHY: A budget can be approved without its Sale existing: restored from a
backup taken mid-way, edited by an older client that approved first and
converted later, or interrupted by a failure. The sweep finds every approved
budget no Sale claims (Sale.budgetId) and runs the normal conversion for it.

RULES:
- Budgets are processed one at a time, in store order.
- All budgets share one StockSnapshot that is updated after each commit, so two
  budgets competing for the same product are checked against what the
  previous one left. Each budget still commits its own batch.
- StockInsufficient, or a budget that was rejected/converted meanwhile, counts
  as skipped. Missing customers/products, invalid items and store failures
  count as errors. Neither stops the sweep.
- Idempotent: once every approved budget is claimed the second run finds
  nothing to do and writes nothing.
- Rejected budgets never reach the sweep (only status=approved is queried).
"""

from __future__ import annotations

from dataclasses import dataclass, field

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..validation import ValidationError
from . import document_store as store
from .concurrency import run_with_retry
from .conversion_service import (
    ConversionError,
    budget_items,
    load_convertible_budget,
    stage_conversion,
)
from .document_store import DocumentSnapshot, DocumentStoreError
from .stock_service import StockInsufficient, StockSnapshot, product_ids


@dataclass
class SyncReport:
    created: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)
    sales: dict[str, str] = field(default_factory=dict)
    skipped_budgets: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "created": self.created,
            "skipped": self.skipped,
            "errors": list(self.errors),
            "sales": dict(self.sales),
            "skipped_budgets": list(self.skipped_budgets),
        }


def find_unconverted_budgets() -> list[DocumentSnapshot]:
    """Approved budgets minus the ones claimed by an existing Sale."""
    approved = store.query_by_field(store.BUDGETS, "status", "approved")
    claimed = {
        sale.get("budgetId")
        for sale in store.list_documents(store.SALES)
        if sale.get("budgetId")
    }
    return [budget for budget in approved if budget.id not in claimed]


def _convert_with_snapshot(budget_id: str, snapshot: StockSnapshot) -> dict:
    def _op():
        budget = load_convertible_budget(budget_id)
        items = budget_items(budget)
        customer_id = budget.get("customerId")
        store.require_document(store.CUSTOMERS, customer_id)

        snapshot.load(product_ids(items))
        sale, writes, changes = stage_conversion(snapshot, items, customer_id, budget=budget)
        store.commit_batch(writes)
        snapshot.apply(changes)
        return sale

    return run_with_retry(_op, on_conflict=lambda exc: snapshot.refresh())


def sync_approved_budgets() -> SyncReport:
    report = SyncReport()
    pending = find_unconverted_budgets()
    if not pending:
        current_app.logger.info("Budget sync: nothing to convert")
        return report

    snapshot = StockSnapshot()
    snapshot.load(product_ids(*(b.get("items") for b in pending)), refresh=True)

    for budget in pending:
        try:
            sale = _convert_with_snapshot(budget.id, snapshot)
        except StockInsufficient as exc:
            report.skipped += 1
            report.skipped_budgets.append({"budget_id": budget.id, "reason": str(exc), **exc.details})
            current_app.logger.warning("Budget sync: skipped %s: %s", budget.id, exc)
        except ConversionError as exc:
            report.skipped += 1
            report.skipped_budgets.append({"budget_id": budget.id, "reason": str(exc)})
            current_app.logger.warning("Budget sync: skipped %s: %s", budget.id, exc)
        except (DocumentStoreError, ValidationError) as exc:
            report.errors.append(budget.id)
            current_app.logger.error("Budget sync: failed %s: %s", budget.id, exc)
        except SQLAlchemyError:
            db.session.rollback()
            report.errors.append(budget.id)
            current_app.logger.exception("Budget sync: database error on %s", budget.id)
        else:
            report.created += 1
            report.sales[budget.id] = sale["id"]
            current_app.logger.info("Budget sync: %s -> sale %s", budget.id, sale["id"])

    current_app.logger.info(
        "Budget sync finished: created=%d skipped=%d errors=%d",
        report.created, report.skipped, len(report.errors),
    )
    return report
