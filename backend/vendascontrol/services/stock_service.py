# Overview: Service-layer operations for stock; product quantity snapshots and stock-delta planning.

"""
Stock Service

Product.quantity (parts collection) is the only contended counter in the
system. Every path that moves stock (sale conversion, budget approval, service
order create/edit/delete, sale cancellation) goes through plan_stock_changes,
which turns an (old allocation, new allocation) pair into the minimal set of
conditioned quantity writes.

Invariants:
- Only type=piece products are tracked; service items are never checked or written.
- Validation happens before any write is staged: one insufficient product
  aborts the whole plan (all-or-nothing).
- Edits credit the allocation being removed before checking the new one:
      available = current_stock + old_allocation
  so reducing an order never fails for lack of stock.
- A missing product referenced by the new allocation is a hard error
  (ProductNotFound). Nothing is guessed.
- Each staged write is conditioned on the product version that was read, so a
  concurrent writer turns the commit into a VersionConflict, never a blind
  overwrite.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable

from flask import current_app

from ..validation import coerce_int
from . import document_store as store
from .document_store import BatchWrite, DocumentNotFound, DocumentSnapshot


class StockInsufficient(Exception):
    """Raised when a piece product cannot cover the requested quantity."""
    def __init__(self, product_id: str, available: int, requested: int, product_name: str | None = None):
        label = product_name or product_id
        super().__init__(f"Insufficient stock for {label!r}: available {available}, requested {requested}")
        self.product_id = product_id
        self.available = available
        self.requested = requested
        self.details = {
            "product_id": product_id,
            "product_name": product_name,
            "available": available,
            "requested": requested,
            "shortfall": self.shortfall,
        }

    @property
    def shortfall(self) -> int:
        return self.requested - self.available


class ProductNotFound(DocumentNotFound):
    """A line item references a product that no longer exists."""
    def __init__(self, product_id: str):
        super().__init__(store.PRODUCTS, product_id)
        self.product_id = product_id


@dataclass(frozen=True)
class ProductStock:
    id: str
    name: str
    type: str
    quantity: int
    version: int

    @property
    def tracked(self) -> bool:
        return self.type == "piece"

    @classmethod
    def from_snapshot(cls, snap: DocumentSnapshot) -> "ProductStock":
        return cls(
            id=snap.id,
            name=snap.get("name") or snap.id,
            type=snap.get("type") or "piece",
            quantity=coerce_int(snap.get("quantity")) or 0,
            version=snap.version,
        )


@dataclass(frozen=True)
class StockChange:
    product_id: str
    current_quantity: int
    new_quantity: int
    expected_version: int

    @property
    def delta(self) -> int:
        return self.new_quantity - self.current_quantity

    def to_write(self) -> BatchWrite:
        return BatchWrite.update(
            store.PRODUCTS,
            self.product_id,
            {"quantity": self.new_quantity},
            expected_version=self.expected_version,
        )

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "from": self.current_quantity,
            "to": self.new_quantity,
            "delta": self.delta,
        }


class StockSnapshot:
    """
    In-memory view of product quantities and versions.

    A conversion builds a fresh one per attempt. The reconciliation sweep keeps
    one for the whole run and calls apply() after each committed batch, so
    budgets competing for the same product are checked against what the
    earlier ones left.
    """

    def __init__(self):
        self._products: dict[str, ProductStock] = {}

    @classmethod
    def fresh(cls, product_ids: Iterable[str]) -> "StockSnapshot":
        snapshot = cls()
        snapshot.load(product_ids, refresh=True)
        return snapshot

    def load(self, product_ids: Iterable[str], *, refresh: bool = False) -> None:
        for product_id in sorted(set(product_ids)):
            if not refresh and product_id in self._products:
                continue
            snap = store.get_document(store.PRODUCTS, product_id)
            if snap is None:
                self._products.pop(product_id, None)
                continue
            self._products[product_id] = ProductStock.from_snapshot(snap)

    def refresh(self) -> None:
        self.load(list(self._products), refresh=True)

    def get(self, product_id: str) -> ProductStock | None:
        return self._products.get(product_id)

    def require(self, product_id: str) -> ProductStock:
        product = self._products.get(product_id)
        if product is None:
            raise ProductNotFound(product_id)
        return product

    def apply(self, changes: Iterable[StockChange]) -> None:
        """Record committed changes; one UPDATE bumps the version counter by one."""
        for change in changes:
            product = self._products.get(change.product_id)
            if product is None:
                continue
            self._products[change.product_id] = replace(
                product,
                quantity=change.new_quantity,
                version=change.expected_version + 1,
            )


def allocation(items: Iterable[dict] | None) -> dict[str, int]:
    """Total quantity per productId (duplicate lines are summed)."""
    totals: dict[str, int] = {}
    if not isinstance(items, (list, tuple)):
        return totals
    for item in items:
        if not isinstance(item, dict) or not item.get("productId"):
            continue
        product_id = item["productId"]
        totals[product_id] = totals.get(product_id, 0) + (coerce_int(item.get("quantity")) or 0)
    return totals


def product_ids(*item_lists: Iterable[dict] | None) -> set[str]:
    ids: set[str] = set()
    for items in item_lists:
        ids.update(allocation(items).keys())
    return ids


def plan_stock_changes(
    snapshot: StockSnapshot,
    old_items: Iterable[dict] | None,
    new_items: Iterable[dict] | None,
) -> list[StockChange]:
    """
    Compute the conditioned quantity writes that move stock from the old
    allocation to the new one.

    - conversion / creation: old_items=[]
    - edit: both
    - cancellation / deletion: new_items=[]

    Raises StockInsufficient or ProductNotFound before anything is staged.
    """
    old_alloc = allocation(old_items)
    new_alloc = allocation(new_items)

    for product_id, requested in new_alloc.items():
        product = snapshot.require(product_id)
        if not product.tracked:
            continue
        available = product.quantity + old_alloc.get(product_id, 0)
        if available < requested:
            raise StockInsufficient(product_id, available, requested, product.name)

    changes: list[StockChange] = []
    for product_id in sorted(set(old_alloc) | set(new_alloc)):
        product = snapshot.get(product_id)
        if product is None:
            # only reachable for old-only lines: nothing left to restore into
            current_app.logger.warning(
                "Skipping stock restore for deleted product %s (%d units)",
                product_id, old_alloc.get(product_id, 0),
            )
            continue
        if not product.tracked:
            continue
        net = old_alloc.get(product_id, 0) - new_alloc.get(product_id, 0)
        if net == 0:
            continue
        changes.append(StockChange(
            product_id=product_id,
            current_quantity=product.quantity,
            new_quantity=product.quantity + net,
            expected_version=product.version,
        ))

    return changes
