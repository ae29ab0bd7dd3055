# Overview: Decimal money helpers shared by line-item totals and receivables.

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENTS = Decimal("0.01")
ZERO = Decimal("0")


def to_decimal(value) -> Decimal:
    """
    Convert a JSON number/str to Decimal without float noise.

    Raises ValueError for booleans, NaN/Infinity and unparsable input.
    """
    if isinstance(value, bool) or value is None:
        raise ValueError("not a number")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError("not a number")
    if not result.is_finite():
        raise ValueError("not a finite number")
    return result


def quantize(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def to_amount(value: Decimal) -> float:
    """Persisted representation: float rounded half-up to cents."""
    return float(quantize(value))


def line_total(item: dict) -> Decimal:
    return to_decimal(item["unitPrice"]) * int(item["quantity"])


def items_total(items) -> Decimal:
    """Σ quantity × unitPrice over snapshotted line items."""
    total = ZERO
    for item in items:
        total += line_total(item)
    return quantize(total)


def amount_receivable(total, status: str, down_payment) -> Decimal:
    """
    Outstanding balance of a sale.

    paid -> 0; pending -> total - downPayment (downPayment defaults to 0).
    """
    if status == "paid":
        return ZERO
    return quantize(to_decimal(total) - to_decimal(down_payment or 0))
