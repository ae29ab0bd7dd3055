# Overview: Service-layer operations for the document store; collection/document access over SQLAlchemy.

"""
Document Store

Every business entity is a JSON document addressed by (collection, id). This
module is the only place that touches the Document model; services above it
work with DocumentSnapshot values and BatchWrite lists.

OPERATIONS:
- get_document / require_document: single read (None vs DocumentNotFound)
- list_documents / query_by_field: collection reads
- set_document / update_document / delete_document: single-document writes
- commit_batch: atomic multi-document commit, all-or-nothing

OPTIMISTIC CONCURRENCY:
A BatchWrite may carry expected_version. The batch is rejected with
VersionConflict when the stored version differs from the one the caller read,
and the ORM version column guards the window between that check and the
UPDATE itself. expected_version=0 means "document must not exist yet".

A batch may touch each document at most once.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Iterable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..models import Document


CUSTOMERS = "customers"
PRODUCTS = "parts"
BUDGETS = "budgets"
SALES = "sales"
SERVICE_ORDERS = "serviceOrders"
DISCARDS = "discards"
SETTINGS = "settings"

ALL_COLLECTIONS = (CUSTOMERS, PRODUCTS, SALES, SERVICE_ORDERS, BUDGETS, DISCARDS, SETTINGS)

WRITE_SET = "set"
WRITE_UPDATE = "update"
WRITE_DELETE = "delete"


class DocumentStoreError(Exception):
    """Base class for store errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class DocumentNotFound(DocumentStoreError):
    """Raised when a referenced document does not exist."""
    def __init__(self, collection: str, doc_id: str):
        super().__init__(
            f"{collection}/{doc_id} not found",
            details={"collection": collection, "id": doc_id},
        )
        self.collection = collection
        self.doc_id = doc_id


class VersionConflict(DocumentStoreError):
    """Raised when a conditioned write finds a newer version than expected."""


class StoreWriteFailure(DocumentStoreError):
    """Raised when the database rejects a batch; nothing was written."""


@dataclass(frozen=True)
class DocumentSnapshot:
    collection: str
    id: str
    data: dict
    version: int

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def to_dict(self) -> dict:
        return {**self.data, "id": self.id}


@dataclass(frozen=True)
class BatchWrite:
    type: str
    collection: str
    doc_id: str
    data: dict = field(default_factory=dict)
    expected_version: int | None = None

    @classmethod
    def set(cls, collection: str, doc_id: str, data: dict, expected_version: int | None = None) -> "BatchWrite":
        return cls(WRITE_SET, collection, doc_id, dict(data), expected_version)

    @classmethod
    def update(cls, collection: str, doc_id: str, data: dict, expected_version: int | None = None) -> "BatchWrite":
        return cls(WRITE_UPDATE, collection, doc_id, dict(data), expected_version)

    @classmethod
    def delete(cls, collection: str, doc_id: str, expected_version: int | None = None) -> "BatchWrite":
        return cls(WRITE_DELETE, collection, doc_id, {}, expected_version)


def new_document_id() -> str:
    """Random, globally unique identifier (UUID4), never sequential."""
    return str(uuid.uuid4())


def _snapshot(row: Document) -> DocumentSnapshot:
    return DocumentSnapshot(
        collection=row.collection,
        id=row.doc_id,
        data=dict(row.data or {}),
        version=row.version_id,
    )


def _load_row(collection: str, doc_id: str) -> Document | None:
    return db.session.query(Document).filter_by(collection=collection, doc_id=doc_id).first()


def get_document(collection: str, doc_id: str) -> DocumentSnapshot | None:
    row = _load_row(collection, doc_id)
    if row is None:
        return None
    return _snapshot(row)


def require_document(collection: str, doc_id: str) -> DocumentSnapshot:
    snap = get_document(collection, doc_id)
    if snap is None:
        raise DocumentNotFound(collection, doc_id)
    return snap


def list_documents(collection: str) -> list[DocumentSnapshot]:
    rows = (
        db.session.query(Document)
        .filter_by(collection=collection)
        .order_by(Document.id.asc())
        .all()
    )
    return [_snapshot(r) for r in rows]


def _field_clause(field_name: str, value: Any):
    element = Document.data[field_name]
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return element.as_boolean() == value
    if isinstance(value, int):
        return element.as_integer() == value
    if isinstance(value, float):
        return element.as_float() == value
    return element.as_string() == str(value)


def query_by_field(collection: str, field_name: str, value: Any) -> list[DocumentSnapshot]:
    """Documents of a collection whose top-level field equals value."""
    if value is None:
        return [s for s in list_documents(collection) if s.data.get(field_name) is None]

    rows = (
        db.session.query(Document)
        .filter(Document.collection == collection, _field_clause(field_name, value))
        .order_by(Document.id.asc())
        .all()
    )
    return [_snapshot(r) for r in rows]


def count_documents(collection: str) -> int:
    return db.session.query(Document).filter_by(collection=collection).count()


def _check_version(write: BatchWrite, row: Document | None) -> None:
    if write.expected_version is None:
        return
    current = row.version_id if row is not None else 0
    if current != write.expected_version:
        raise VersionConflict(
            f"{write.collection}/{write.doc_id} changed concurrently",
            details={
                "collection": write.collection,
                "id": write.doc_id,
                "expected_version": write.expected_version,
                "current_version": current,
            },
        )


def _apply(write: BatchWrite) -> None:
    row = _load_row(write.collection, write.doc_id)
    _check_version(write, row)

    if write.type == WRITE_SET:
        if row is None:
            db.session.add(Document(collection=write.collection, doc_id=write.doc_id, data=dict(write.data)))
        else:
            row.data = dict(write.data)
        return

    if write.type == WRITE_UPDATE:
        if row is None:
            raise DocumentNotFound(write.collection, write.doc_id)
        row.data = {**(row.data or {}), **write.data}
        return

    if write.type == WRITE_DELETE:
        if row is not None:
            db.session.delete(row)
        return

    raise ValueError(f"unknown batch write type {write.type!r}")


def commit_batch(writes: Iterable[BatchWrite]) -> None:
    """
    Apply all writes in one database transaction.

    Either every write is committed or none is: any failure rolls the session
    back and surfaces as DocumentNotFound, VersionConflict or StoreWriteFailure.
    """
    writes = list(writes)
    seen: set[tuple[str, str]] = set()
    for w in writes:
        key = (w.collection, w.doc_id)
        if key in seen:
            raise ValueError(f"batch touches {w.collection}/{w.doc_id} more than once")
        seen.add(key)

    try:
        for w in writes:
            _apply(w)
        db.session.commit()
    except (DocumentNotFound, VersionConflict):
        db.session.rollback()
        raise
    except StaleDataError as exc:
        db.session.rollback()
        raise VersionConflict("Document changed concurrently during commit") from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StoreWriteFailure("Batch commit failed") from exc


def set_document(collection: str, doc_id: str, data: dict) -> None:
    commit_batch([BatchWrite.set(collection, doc_id, data)])


def update_document(collection: str, doc_id: str, partial: dict) -> None:
    commit_batch([BatchWrite.update(collection, doc_id, partial)])


def delete_document(collection: str, doc_id: str) -> None:
    commit_batch([BatchWrite.delete(collection, doc_id)])
