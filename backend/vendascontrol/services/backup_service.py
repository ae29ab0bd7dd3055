# Overview: Service-layer operations for backup; whole-database JSON export and restore.

"""
Backup / Restore

FORMAT:
    {
      "customers": [{"_id": "...", ...document fields...}, ...],
      "parts": [...],
      ...
    }
Top-level keys are collection names; each document carries its identifier in
"_id" so it can be written back under the same id.

RESTORE:
- empty payloads and unknown collection keys are rejected before any write
- documents without "_id" are skipped
- everything else is written with set (full overwrite) in ONE batch, so a
  failed restore leaves the database as it was
- "users" (present in backups from older versions) is accepted and ignored:
  accounts hold credentials and are managed with the users CLI/API
"""

from __future__ import annotations

from datetime import date

from flask import current_app

from ..validation import ValidationError
from . import document_store as store
from .document_store import BatchWrite


BACKUP_COLLECTIONS = store.ALL_COLLECTIONS
IGNORED_COLLECTIONS = ("users",)


def backup_filename(today: date | None = None) -> str:
    return f"backup-vendascontrol-{(today or date.today()).isoformat()}.json"


def export_backup() -> dict:
    return {
        name: [{**snap.data, "_id": snap.id} for snap in store.list_documents(name)]
        for name in BACKUP_COLLECTIONS
    }


def _plan_restore(data) -> tuple[list[BatchWrite], dict[str, int], int]:
    if not isinstance(data, dict) or not data:
        raise ValidationError("Backup file is empty or not a JSON object")

    unknown = sorted(k for k in data if k not in BACKUP_COLLECTIONS and k not in IGNORED_COLLECTIONS)
    if unknown:
        raise ValidationError(
            "Backup file looks corrupted or has an invalid format",
            {key: "unknown collection" for key in unknown},
        )

    writes: list[BatchWrite] = []
    counts: dict[str, int] = {}
    skipped = 0
    for name, documents in data.items():
        if name in IGNORED_COLLECTIONS:
            continue
        if not isinstance(documents, list):
            raise ValidationError("Backup file has an invalid format", {name: "must be a list of documents"})

        seen: set[str] = set()
        for document in documents:
            if not isinstance(document, dict) or not document.get("_id"):
                skipped += 1
                continue
            doc_id = str(document["_id"])
            if doc_id in seen:
                raise ValidationError("Backup file has duplicate ids", {name: f"duplicate _id {doc_id}"})
            seen.add(doc_id)
            rest = {k: v for k, v in document.items() if k != "_id"}
            writes.append(BatchWrite.set(name, doc_id, rest))
        counts[name] = len(seen)

    return writes, counts, skipped


def import_backup(data) -> dict:
    writes, counts, skipped = _plan_restore(data)
    store.commit_batch(writes)
    current_app.logger.info("Backup restored: %s (%d documents skipped)", counts, skipped)
    return {"restored": counts, "skipped": skipped}
