# Overview: Flask API routes for budgets operations; approval, rejection and the reconciliation sweep.

"""
Budget routes.

Approving a budget IS converting it: POST /<id>/convert creates the Sale,
decrements stock and marks the budget approved in one batch. There is no
route that sets status=approved on its own.
"""

from flask import Blueprint, request, jsonify, current_app

from ..services import budgets_service, conversion_service, reconciliation_service, reporting_service
from ..services.settings_service import get_company_profile
from ..decorators import require_auth, require_role
from . import API_ERRORS, error_response


budgets_bp = Blueprint("budgets", __name__, url_prefix="/api/budgets")


@budgets_bp.get("")
@require_auth
def list_budgets_route():
    return budgets_service.list_budgets(request.args.get("status"))


@budgets_bp.get("/<budget_id>")
@require_auth
def get_budget_route(budget_id: str):
    try:
        return budgets_service.get_budget(budget_id)
    except API_ERRORS as e:
        return error_response(e)


@budgets_bp.get("/<budget_id>/print")
@require_auth
def print_budget_route(budget_id: str):
    try:
        return reporting_service.printable_budget(budget_id, get_company_profile())
    except API_ERRORS as e:
        return error_response(e)


@budgets_bp.post("")
@require_auth
def create_budget_route():
    payload = request.get_json(silent=True) or {}
    try:
        return budgets_service.create_budget(payload), 201
    except API_ERRORS as e:
        return error_response(e)


@budgets_bp.put("/<budget_id>")
@require_auth
def update_budget_route(budget_id: str):
    payload = request.get_json(silent=True) or {}
    try:
        return budgets_service.update_budget(budget_id, payload)
    except API_ERRORS as e:
        return error_response(e)


@budgets_bp.delete("/<budget_id>")
@require_auth
def delete_budget_route(budget_id: str):
    try:
        budgets_service.delete_budget(budget_id)
    except API_ERRORS as e:
        return error_response(e)
    return {"ok": True}, 200


@budgets_bp.post("/<budget_id>/convert")
@require_auth
def convert_budget_route(budget_id: str):
    try:
        sale = conversion_service.convert_budget(budget_id)
    except API_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to convert budget %s", budget_id)
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"sale": sale}), 201


@budgets_bp.post("/<budget_id>/reject")
@require_auth
def reject_budget_route(budget_id: str):
    try:
        return conversion_service.reject_budget(budget_id)
    except API_ERRORS as e:
        return error_response(e)


@budgets_bp.post("/sync")
@require_auth
@require_role("admin")
def sync_budgets_route():
    """Convert every approved budget that has no Sale yet."""
    try:
        report = reconciliation_service.sync_approved_budgets()
    except Exception:
        current_app.logger.exception("Budget sync failed")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(report.to_dict()), 200
