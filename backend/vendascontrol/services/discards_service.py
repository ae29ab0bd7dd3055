# Overview: Service-layer operations for discards; records of written-off equipment.

from __future__ import annotations

from ..validation import validate_discard
from . import document_store as store
from .document_store import BatchWrite


def list_discards() -> dict:
    discards = sorted(
        (d.to_dict() for d in store.list_documents(store.DISCARDS)),
        key=lambda d: d.get("discardDate") or "",
        reverse=True,
    )
    return {"items": discards, "count": len(discards)}


def get_discard(discard_id: str) -> dict:
    return store.require_document(store.DISCARDS, discard_id).to_dict()


def create_discard(payload: dict) -> dict:
    value = validate_discard(payload).unwrap()
    discard_id = store.new_document_id()
    store.set_document(store.DISCARDS, discard_id, {**value, "id": discard_id})
    return get_discard(discard_id)


def update_discard(discard_id: str, patch: dict) -> dict:
    existing = store.require_document(store.DISCARDS, discard_id)
    value = validate_discard({**existing.data, **(patch or {})}).unwrap()
    store.commit_batch([
        BatchWrite.set(store.DISCARDS, discard_id, {**value, "id": discard_id}, expected_version=existing.version),
    ])
    return get_discard(discard_id)


def delete_discard(discard_id: str) -> None:
    store.require_document(store.DISCARDS, discard_id)
    store.delete_document(store.DISCARDS, discard_id)
