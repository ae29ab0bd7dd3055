"""Sale conversion: stock checks, atomic batches, budget approval and rejection."""

import pytest

from vendascontrol.services import document_store as store
from vendascontrol.services import products_service
from vendascontrol.services.conversion_service import (
    BudgetAlreadyConverted,
    BudgetStateError,
    convert_budget,
    convert_to_sale,
    create_sale,
    reject_budget,
)
from vendascontrol.services.document_store import DocumentNotFound, VersionConflict
from vendascontrol.services.stock_service import ProductNotFound, StockInsufficient
from vendascontrol.validation import ValidationError


def _line(product_id, quantity, price=10.0):
    return {"productId": product_id, "quantity": quantity, "unitPrice": price}


def _quantity(product_id):
    return store.require_document(store.PRODUCTS, product_id).get("quantity")


def test_conversion_decrements_stock_and_creates_sale(customer, make_product):
    pid = make_product(quantity=5)

    sale = convert_to_sale([_line(pid, 2)], customer)

    assert _quantity(pid) == 3
    stored = store.require_document(store.SALES, sale["id"])
    assert stored.get("customerId") == customer
    assert stored.get("status") == "pending"
    assert stored.get("amountReceivable") == 20.0
    assert "budgetId" not in stored.data


def test_request_above_stock_is_rejected_and_stock_unchanged(customer, make_product):
    pid = make_product(quantity=3)

    with pytest.raises(StockInsufficient):
        convert_to_sale([_line(pid, 4)], customer)

    assert _quantity(pid) == 3
    assert store.count_documents(store.SALES) == 0


def test_conversion_is_all_or_nothing(customer, make_product):
    a = make_product(name="A", quantity=5)
    b = make_product(name="B", quantity=0)

    with pytest.raises(StockInsufficient):
        convert_to_sale([_line(a, 3), _line(b, 1)], customer)

    assert _quantity(a) == 5
    assert _quantity(b) == 0
    assert store.count_documents(store.SALES) == 0


def test_total_uses_line_item_prices(customer, make_product):
    a = make_product(name="Tela", quantity=10, price=10.0)
    b = make_product(name="Cabo", quantity=10, price=5.5)

    sale = convert_to_sale([_line(a, 2, 10.00), _line(b, 1, 5.50)], customer)
    assert sale["totalAmount"] == 25.50

    products_service.update_product(a, {"price": 99.0})

    stored = store.require_document(store.SALES, sale["id"])
    assert stored.get("totalAmount") == 25.50
    assert stored.get("items")[0]["unitPrice"] == 10.0


def test_service_items_skip_stock(customer, make_product):
    sid = make_product(name="Formatacao", product_type="service", price=80.0)

    sale = convert_to_sale([_line(sid, 3, 80.0)], customer)

    assert sale["totalAmount"] == 240.0
    assert "quantity" not in store.require_document(store.PRODUCTS, sid).data


def test_missing_product_is_a_hard_error(customer):
    with pytest.raises(ProductNotFound):
        convert_to_sale([_line("ghost", 1)], customer)
    assert store.count_documents(store.SALES) == 0


def test_missing_customer(make_product):
    pid = make_product(quantity=5)
    with pytest.raises(DocumentNotFound):
        convert_to_sale([_line(pid, 1)], "nobody")
    assert _quantity(pid) == 5


def test_invalid_line_items(customer):
    with pytest.raises(ValidationError) as exc:
        convert_to_sale([{"productId": "", "quantity": 0, "unitPrice": "abc"}], customer)
    assert set(exc.value.field_errors) == {"items.0.productId", "items.0.quantity", "items.0.unitPrice"}


def test_create_sale_payment_terms(customer, make_product):
    pid = make_product(quantity=5)

    sale = create_sale({
        "customerId": customer,
        "items": [_line(pid, 3)],
        "paymentMethod": "pix",
        "status": "pending",
        "downPayment": 10,
    })

    assert sale["paymentMethod"] == "pix"
    assert sale["downPayment"] == 10.0
    assert sale["amountReceivable"] == 20.0

    paid = create_sale({"customerId": customer, "items": [_line(pid, 1)], "status": "paid"})
    assert paid["amountReceivable"] == 0.0


def test_retry_recovers_from_a_concurrent_write(app, customer, make_product, monkeypatch):
    pid = make_product(quantity=5)
    real_commit = store.commit_batch
    calls = {"n": 0}

    def flaky_commit(writes):
        calls["n"] += 1
        if calls["n"] == 1:
            # someone else sells one unit between our read and our commit
            snap = store.require_document(store.PRODUCTS, pid)
            real_commit([store.BatchWrite.update(store.PRODUCTS, pid, {"quantity": 4}, expected_version=snap.version)])
        return real_commit(writes)

    monkeypatch.setattr(store, "commit_batch", flaky_commit)

    convert_to_sale([_line(pid, 2)], customer)

    assert calls["n"] == 2
    assert _quantity(pid) == 2


def test_gives_up_after_configured_attempts(app, customer, make_product, monkeypatch):
    app.config["STOCK_RETRY_ATTEMPTS"] = 2
    pid = make_product(quantity=5)

    def always_conflict(writes):
        raise VersionConflict("changed concurrently")

    monkeypatch.setattr(store, "commit_batch", always_conflict)

    with pytest.raises(VersionConflict):
        convert_to_sale([_line(pid, 1)], customer)
    assert _quantity(pid) == 5


class TestBudgetConversion:

    def test_convert_budget_approves_in_same_batch(self, customer, make_product, make_budget):
        pid = make_product(quantity=5)
        budget_id = make_budget(customer, [_line(pid, 2)])

        sale = convert_budget(budget_id)

        assert sale["budgetId"] == budget_id
        assert store.require_document(store.BUDGETS, budget_id).get("status") == "approved"
        assert _quantity(pid) == 3

    def test_failed_conversion_leaves_budget_pending(self, customer, make_product, make_budget):
        pid = make_product(quantity=1)
        budget_id = make_budget(customer, [_line(pid, 2)])

        with pytest.raises(StockInsufficient):
            convert_budget(budget_id)

        assert store.require_document(store.BUDGETS, budget_id).get("status") == "pending"
        assert _quantity(pid) == 1
        assert store.count_documents(store.SALES) == 0

    def test_budget_converts_exactly_once(self, customer, make_product, make_budget):
        pid = make_product(quantity=5)
        budget_id = make_budget(customer, [_line(pid, 1)])
        sale = convert_budget(budget_id)

        with pytest.raises(BudgetAlreadyConverted) as exc:
            convert_budget(budget_id)

        assert exc.value.sale_id == sale["id"]
        assert _quantity(pid) == 4

    def test_approved_without_sale_can_still_convert(self, customer, make_product, make_budget):
        pid = make_product(quantity=5)
        budget_id = make_budget(customer, [_line(pid, 1)], status="approved")

        sale = convert_budget(budget_id)

        assert sale["budgetId"] == budget_id
        assert _quantity(pid) == 4

    def test_rejected_budget_never_converts(self, customer, make_product, make_budget):
        pid = make_product(quantity=5)
        budget_id = make_budget(customer, [_line(pid, 1)])

        rejected = reject_budget(budget_id)
        assert rejected["status"] == "rejected"

        with pytest.raises(BudgetStateError):
            convert_budget(budget_id)
        assert _quantity(pid) == 5
        assert store.count_documents(store.SALES) == 0

    def test_reject_is_idempotent(self, customer, make_budget):
        budget_id = make_budget(customer, [_line("p", 1)])
        reject_budget(budget_id)
        version = store.require_document(store.BUDGETS, budget_id).version

        assert reject_budget(budget_id)["status"] == "rejected"
        assert store.require_document(store.BUDGETS, budget_id).version == version

    def test_cannot_reject_approved(self, customer, make_product, make_budget):
        pid = make_product(quantity=5)
        budget_id = make_budget(customer, [_line(pid, 1)])
        convert_budget(budget_id)

        with pytest.raises(BudgetStateError):
            reject_budget(budget_id)

    def test_convert_to_sale_can_claim_a_budget(self, customer, make_product, make_budget):
        pid = make_product(quantity=5)
        budget_id = make_budget(customer, [_line(pid, 2)])

        sale = convert_to_sale([_line(pid, 2)], customer, budget_id=budget_id, payment_method="pix")

        assert sale["budgetId"] == budget_id
        assert sale["paymentMethod"] == "pix"
        assert store.require_document(store.BUDGETS, budget_id).get("status") == "approved"
        assert _quantity(pid) == 3

        with pytest.raises(BudgetAlreadyConverted):
            convert_to_sale([_line(pid, 1)], customer, budget_id=budget_id)
        assert _quantity(pid) == 3
        assert store.count_documents(store.SALES) == 1

    def test_convert_to_sale_refuses_rejected_budget(self, customer, make_product, make_budget):
        pid = make_product(quantity=5)
        budget_id = make_budget(customer, [_line(pid, 1)])
        reject_budget(budget_id)

        with pytest.raises(BudgetStateError):
            convert_to_sale([_line(pid, 1)], customer, budget_id=budget_id)

        assert _quantity(pid) == 5
        assert store.count_documents(store.SALES) == 0
