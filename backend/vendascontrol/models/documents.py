from __future__ import annotations

from ..extensions import db


class Document(db.Model):
    """
    Generic JSON document keyed by (collection, doc_id).

    Every business entity (customers, parts, budgets, sales, serviceOrders,
    discards, settings) lives here as a JSON payload. The relational layer only
    provides identity, atomic multi-row commits and a version counter.

    CONCURRENCY:
    version_id is SQLAlchemy's optimistic lock column. Any UPDATE issued through
    the ORM is conditioned on the version that was loaded, so two writers that
    read the same stock quantity cannot both commit a decrement: the second
    flush raises StaleDataError and the whole batch rolls back.

    MUTATION RULE:
    The JSON column is not mutation-tracked. Always assign a new dict
    (doc.data = {**doc.data, ...}); in-place edits are silently lost.
    """
    __tablename__ = "documents"
    __table_args__ = (
        db.UniqueConstraint("collection", "doc_id", name="uq_documents_collection_doc"),
        db.Index("ix_documents_collection", "collection"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    collection = db.Column(db.String(64), nullable=False)
    doc_id = db.Column(db.String(128), nullable=False)

    data = db.Column(db.JSON, nullable=False, default=dict)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Document {self.collection}/{self.doc_id} v{self.version_id}>"
