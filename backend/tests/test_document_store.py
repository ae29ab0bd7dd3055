"""Document store: batch atomicity and version-conditioned writes."""

import pytest

from vendascontrol.services import document_store as store
from vendascontrol.services.document_store import (
    BatchWrite,
    DocumentNotFound,
    VersionConflict,
)


def test_set_get_and_version(app):
    store.set_document(store.CUSTOMERS, "c1", {"name": "Ana"})
    snap = store.get_document(store.CUSTOMERS, "c1")

    assert snap.data == {"name": "Ana"}
    assert snap.version == 1
    assert snap.to_dict() == {"name": "Ana", "id": "c1"}

    store.update_document(store.CUSTOMERS, "c1", {"phone": "1"})
    snap = store.get_document(store.CUSTOMERS, "c1")
    assert snap.data == {"name": "Ana", "phone": "1"}
    assert snap.version == 2


def test_missing_document(app):
    assert store.get_document(store.CUSTOMERS, "nope") is None
    with pytest.raises(DocumentNotFound) as exc:
        store.require_document(store.CUSTOMERS, "nope")
    assert exc.value.details == {"collection": "customers", "id": "nope"}


def test_update_missing_document_raises(app):
    with pytest.raises(DocumentNotFound):
        store.update_document(store.PRODUCTS, "ghost", {"quantity": 1})


def test_delete_missing_is_noop(app):
    store.delete_document(store.PRODUCTS, "ghost")
    assert store.count_documents(store.PRODUCTS) == 0


def test_batch_is_all_or_nothing(app):
    store.set_document(store.PRODUCTS, "p1", {"quantity": 5})
    snap = store.get_document(store.PRODUCTS, "p1")

    with pytest.raises(VersionConflict):
        store.commit_batch([
            BatchWrite.update(store.PRODUCTS, "p1", {"quantity": 2}, expected_version=snap.version),
            BatchWrite.set(store.SALES, "s1", {"total": 1}, expected_version=0),
            # stale version: fails the whole batch
            BatchWrite.update(store.PRODUCTS, "p1x", {"quantity": 0}, expected_version=7),
        ])

    assert store.get_document(store.PRODUCTS, "p1").get("quantity") == 5
    assert store.get_document(store.SALES, "s1") is None


def test_expected_version_zero_means_create_only(app):
    store.set_document(store.SALES, "s1", {"total": 1})
    with pytest.raises(VersionConflict) as exc:
        store.commit_batch([BatchWrite.set(store.SALES, "s1", {"total": 2}, expected_version=0)])
    assert exc.value.details["current_version"] == 1
    assert store.get_document(store.SALES, "s1").get("total") == 1


def test_stale_write_is_rejected(app):
    store.set_document(store.PRODUCTS, "p1", {"quantity": 5})
    first_read = store.get_document(store.PRODUCTS, "p1")

    # another writer gets in first
    store.commit_batch([
        BatchWrite.update(store.PRODUCTS, "p1", {"quantity": 4}, expected_version=first_read.version),
    ])

    with pytest.raises(VersionConflict):
        store.commit_batch([
            BatchWrite.update(store.PRODUCTS, "p1", {"quantity": 3}, expected_version=first_read.version),
        ])
    assert store.get_document(store.PRODUCTS, "p1").get("quantity") == 4


def test_batch_rejects_duplicate_targets(app):
    with pytest.raises(ValueError):
        store.commit_batch([
            BatchWrite.set(store.PRODUCTS, "p1", {"quantity": 1}),
            BatchWrite.update(store.PRODUCTS, "p1", {"quantity": 2}),
        ])


def test_query_by_field(app):
    store.set_document(store.BUDGETS, "b1", {"status": "approved", "customerId": "c1"})
    store.set_document(store.BUDGETS, "b2", {"status": "rejected", "customerId": "c1"})
    store.set_document(store.BUDGETS, "b3", {"status": "approved", "customerId": "c2"})
    store.set_document(store.SALES, "s1", {"status": "approved"})

    approved = store.query_by_field(store.BUDGETS, "status", "approved")
    assert [b.id for b in approved] == ["b1", "b3"]

    no_budget = store.query_by_field(store.BUDGETS, "budgetId", None)
    assert len(no_budget) == 3


def test_new_document_ids_are_unique(app):
    ids = {store.new_document_id() for _ in range(50)}
    assert len(ids) == 50
