# Overview: Service-layer operations for reporting; dashboard figures and printable documents.

"""
Reporting Service

- dashboard_summary: revenue, counts, recent sales, daily totals, receivables
- printable_* builders: the data a printed budget / sale / service order shows
  (company header, customer block, line items with product names, totals)

The company header is a CompanyProfile passed in by the caller.
"""

from __future__ import annotations

from decimal import Decimal

from ..money import to_amount, to_decimal
from ..time_utils import day_key
from ..validation import coerce_int
from . import document_store as store
from .settings_service import CompanyProfile


RECENT_SALES_LIMIT = 5
CHART_DAYS = 15

BUDGET_STATUS_LABELS = {"pending": "Pendente", "approved": "Aprovado", "rejected": "Rejeitado"}
SALE_STATUS_LABELS = {"paid": "Pago", "pending": "A Receber"}
SERVICE_ORDER_STATUS_LABELS = {
    "pending": "Pendente",
    "in_progress": "Em Andamento",
    "completed": "Concluído",
    "delivered": "Entregue",
}


def _customer_names() -> dict[str, str]:
    return {c.id: c.get("name") or "" for c in store.list_documents(store.CUSTOMERS)}


def daily_sales(sales: list[dict], days: int = CHART_DAYS) -> list[dict]:
    """Totals per UTC day, last `days` days that had sales, oldest first."""
    totals: dict = {}
    for sale in sales:
        if not sale.get("saleDate"):
            continue
        key = day_key(sale["saleDate"])
        totals[key] = totals.get(key, Decimal("0")) + to_decimal(sale.get("totalAmount") or 0)
    return [{"date": d.isoformat(), "total": to_amount(t)} for d, t in sorted(totals.items())[-days:]]


def dashboard_summary() -> dict:
    sales = [s.to_dict() for s in store.list_documents(store.SALES)]
    names = _customer_names()

    revenue = sum((to_decimal(s.get("totalAmount") or 0) for s in sales), Decimal("0"))
    receivable = sum(
        (to_decimal(s.get("amountReceivable") or 0) for s in sales if s.get("status") == "pending"),
        Decimal("0"),
    )

    recent = sorted(sales, key=lambda s: s.get("saleDate") or "", reverse=True)[:RECENT_SALES_LIMIT]

    return {
        "total_revenue": to_amount(revenue),
        "total_receivable": to_amount(receivable),
        "sales_count": len(sales),
        "customers_count": store.count_documents(store.CUSTOMERS),
        "products_count": store.count_documents(store.PRODUCTS),
        "pending_budgets": len(store.query_by_field(store.BUDGETS, "status", "pending")),
        "open_service_orders": sum(
            len(store.query_by_field(store.SERVICE_ORDERS, "status", status))
            for status in ("pending", "in_progress")
        ),
        "recent_sales": [
            {
                "id": s["id"],
                "customerId": s.get("customerId"),
                "customerName": names.get(s.get("customerId"), ""),
                "saleDate": s.get("saleDate"),
                "totalAmount": s.get("totalAmount"),
                "status": s.get("status"),
            }
            for s in recent
        ],
        "daily_sales": daily_sales(sales),
    }


def _printable_items(items: list[dict]) -> list[dict]:
    lines = []
    for item in items or []:
        product = store.get_document(store.PRODUCTS, item.get("productId", ""))
        lines.append({
            "productId": item.get("productId"),
            "name": product.get("name") if product else "Produto removido",
            "type": product.get("type") if product else None,
            "quantity": item.get("quantity"),
            "unitPrice": item.get("unitPrice"),
            "lineTotal": to_amount(to_decimal(item.get("unitPrice") or 0) * (coerce_int(item.get("quantity")) or 0)),
        })
    return lines


def _printable(kind: str, doc: dict, company: CompanyProfile, status_labels: dict) -> dict:
    customer = store.get_document(store.CUSTOMERS, doc.get("customerId", ""))
    return {
        "kind": kind,
        "number": doc["id"].upper(),
        "company": company.to_dict(),
        "customer": customer.to_dict() if customer else None,
        "status": doc.get("status"),
        "statusLabel": status_labels.get(doc.get("status"), doc.get("status")),
        "items": _printable_items(doc.get("items") or []),
        "totalAmount": doc.get("totalAmount"),
        "document": doc,
    }


def printable_budget(budget_id: str, company: CompanyProfile) -> dict:
    budget = store.require_document(store.BUDGETS, budget_id).to_dict()
    return _printable("budget", budget, company, BUDGET_STATUS_LABELS)


def printable_sale(sale_id: str, company: CompanyProfile) -> dict:
    sale = store.require_document(store.SALES, sale_id).to_dict()
    printable = _printable("sale", sale, company, SALE_STATUS_LABELS)
    printable["downPayment"] = sale.get("downPayment", 0)
    printable["amountReceivable"] = sale.get("amountReceivable", 0)
    return printable


def printable_service_order(order_id: str, company: CompanyProfile) -> dict:
    order = store.require_document(store.SERVICE_ORDERS, order_id).to_dict()
    return _printable("service_order", order, company, SERVICE_ORDER_STATUS_LABELS)
