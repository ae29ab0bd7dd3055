"""Input normalization helpers: line items, money and display masks."""

import pytest

from vendascontrol.formatting import digits_only, mask_cep, mask_document, mask_phone
from vendascontrol.money import amount_receivable, items_total, to_amount, to_decimal
from vendascontrol.validation import coerce_int, parse_line_items, validate_sale, validate_service_order


@pytest.mark.parametrize("value,expected", [
    (3, 3),
    ("12", 12),
    (" 7 ", 7),
    (2.0, 2),
    (2.5, None),
    ("1e3", None),
    ("1.0", None),
    (True, None),
    (None, None),
])
def test_coerce_int(value, expected):
    assert coerce_int(value) == expected


def test_items_total_is_exact():
    items = [{"quantity": 2, "unitPrice": 10.00}, {"quantity": 1, "unitPrice": 5.50}]
    assert items_total(items) == to_decimal("25.50")
    assert to_amount(items_total([{"quantity": 3, "unitPrice": 0.1}])) == 0.3


def test_amount_receivable():
    assert amount_receivable(100, "pending", 0) == to_decimal("100.00")
    assert amount_receivable(100, "pending", 30) == to_decimal("70.00")
    assert amount_receivable(100, "paid", 30) == 0


@pytest.mark.parametrize("value", [None, True, "abc", "NaN", "Infinity"])
def test_to_decimal_rejects(value):
    with pytest.raises(ValueError):
        to_decimal(value)


def test_parse_line_items_normalizes():
    items, errors = parse_line_items([{"productId": " p1 ", "quantity": "2", "unitPrice": "10.5"}])
    assert errors == {}
    assert items == [{"productId": "p1", "quantity": 2, "unitPrice": 10.5}]


def test_parse_line_items_errors():
    assert parse_line_items([]) == ([], {"items": "at least one item is required"})
    assert parse_line_items("x")[1] == {"items": "items must be a list"}

    _, errors = parse_line_items([{"productId": "p1", "quantity": 1, "unitPrice": -1}, "bad"])
    assert errors == {"items.0.unitPrice": "unitPrice cannot be negative", "items.1": "item must be an object"}


def test_validate_sale_defaults():
    result = validate_sale({"customerId": "c1", "items": [{"productId": "p", "quantity": 1, "unitPrice": 5}]})
    assert result.ok
    assert result.value["paymentMethod"] == "cash"
    assert result.value["status"] == "pending"
    assert "paymentDate" not in result.value


def test_validate_sale_rejects_unknown_method():
    result = validate_sale({
        "customerId": "c1",
        "items": [{"productId": "p", "quantity": 1, "unitPrice": 5}],
        "paymentMethod": "bitcoin",
    })
    assert not result.ok
    assert "paymentMethod" in result.errors


def test_validate_service_order_completed_sets_exit_date():
    result = validate_service_order({
        "customerId": "c1",
        "itemDescription": "Impressora",
        "problemDescription": "Atolando papel",
        "status": "completed",
    })
    assert result.ok
    assert result.value["exitDate"].endswith("Z")
    assert result.value["totalAmount"] == 0.0


def test_masks():
    assert digits_only("(11) 9.8") == "1198"
    assert mask_phone("11987654321") == "(11) 98765-4321"
    assert mask_phone("1134567890") == "(11) 3456-7890"
    assert mask_document("12345678900") == "123.456.789-00"
    assert mask_document("12345678000190") == "12.345.678/0001-90"
    assert mask_cep("01310100") == "01310-100"
    assert mask_phone(None) == ""
