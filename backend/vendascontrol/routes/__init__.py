# Overview: Shared helpers for API blueprints; maps service exceptions to JSON responses.

from flask import current_app, jsonify

from ..services.conversion_service import ConversionError
from ..services.document_store import DocumentNotFound, DocumentStoreError, StoreWriteFailure, VersionConflict
from ..services.stock_service import StockInsufficient
from ..validation import ConflictError, ValidationError


# Everything a service may raise on purpose; routes catch this tuple.
API_ERRORS = (ValidationError, ConflictError, ConversionError, StockInsufficient, DocumentStoreError)


def error_response(exc: Exception):
    """
    ValidationError      -> 400 (field_errors)
    StockInsufficient    -> 409 (details: product, available, requested)
    Conflict/Conversion  -> 409
    DocumentNotFound     -> 404 (ProductNotFound included)
    VersionConflict      -> 503 (retries exhausted; the client may try again)
    StoreWriteFailure    -> 500
    """
    if isinstance(exc, ValidationError):
        return jsonify({"error": str(exc), "field_errors": exc.field_errors}), 400
    if isinstance(exc, StockInsufficient):
        return jsonify({"error": str(exc), "details": exc.details}), 409
    if isinstance(exc, ConversionError):
        return jsonify({"error": str(exc), "details": exc.details}), 409
    if isinstance(exc, ConflictError):
        return jsonify({"error": str(exc)}), 409
    if isinstance(exc, DocumentNotFound):
        return jsonify({"error": str(exc), "details": exc.details}), 404
    if isinstance(exc, VersionConflict):
        current_app.logger.warning("Gave up after repeated write conflicts: %s", exc)
        return jsonify({"error": "The data changed while saving, please try again"}), 503
    if isinstance(exc, StoreWriteFailure):
        current_app.logger.error("Store write failed: %s", exc)
        return jsonify({"error": "Failed to save changes"}), 500

    current_app.logger.error("Unhandled store error: %s", exc)
    return jsonify({"error": "Internal server error"}), 500
