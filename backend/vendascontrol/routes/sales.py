# Overview: Flask API routes for sales operations; creation, payment updates and cancellation.

from flask import Blueprint, request, jsonify, current_app

from ..services import reporting_service, sales_service
from ..services.conversion_service import create_sale
from ..services.settings_service import get_company_profile
from ..decorators import require_auth
from . import API_ERRORS, error_response


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.get("")
@require_auth
def list_sales_route():
    """Query params: status=paid|pending, customer_id."""
    return sales_service.list_sales(
        status=request.args.get("status"),
        customer_id=request.args.get("customer_id"),
    )


@sales_bp.get("/<sale_id>")
@require_auth
def get_sale_route(sale_id: str):
    try:
        return sales_service.get_sale(sale_id)
    except API_ERRORS as e:
        return error_response(e)


@sales_bp.get("/<sale_id>/print")
@require_auth
def print_sale_route(sale_id: str):
    try:
        return reporting_service.printable_sale(sale_id, get_company_profile())
    except API_ERRORS as e:
        return error_response(e)


@sales_bp.post("")
@require_auth
def create_sale_route():
    """
    Body: customerId, items[{productId, quantity, unitPrice}], paymentMethod,
    status, downPayment, paymentDate.

    409 with details when a piece product lacks stock; nothing is written.
    """
    payload = request.get_json(silent=True) or {}
    try:
        sale = create_sale(payload)
    except API_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(sale), 201


@sales_bp.patch("/<sale_id>/payment")
@require_auth
def update_payment_route(sale_id: str):
    payload = request.get_json(silent=True) or {}
    try:
        return sales_service.update_sale_payment(sale_id, payload)
    except API_ERRORS as e:
        return error_response(e)


@sales_bp.post("/<sale_id>/cancel")
@require_auth
def cancel_sale_route(sale_id: str):
    try:
        result = sales_service.cancel_sale(sale_id)
    except API_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to cancel sale %s", sale_id)
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(result), 200
