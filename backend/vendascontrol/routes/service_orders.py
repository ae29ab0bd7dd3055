# Overview: Flask API routes for service order operations; parses input and returns JSON responses.

"""
Service order routes.

Create deducts piece stock, edit moves only the difference between the old
and new items, delete puts everything back. 409 when stock is short.
"""

from flask import Blueprint, request, jsonify, current_app

from ..services import reporting_service, service_orders_service
from ..services.settings_service import get_company_profile
from ..decorators import require_auth
from . import API_ERRORS, error_response


service_orders_bp = Blueprint("service_orders", __name__, url_prefix="/api/service-orders")


@service_orders_bp.get("")
@require_auth
def list_service_orders_route():
    return service_orders_service.list_service_orders(request.args.get("status"))


@service_orders_bp.get("/<order_id>")
@require_auth
def get_service_order_route(order_id: str):
    try:
        return service_orders_service.get_service_order(order_id)
    except API_ERRORS as e:
        return error_response(e)


@service_orders_bp.get("/<order_id>/print")
@require_auth
def print_service_order_route(order_id: str):
    try:
        return reporting_service.printable_service_order(order_id, get_company_profile())
    except API_ERRORS as e:
        return error_response(e)


@service_orders_bp.post("")
@require_auth
def create_service_order_route():
    payload = request.get_json(silent=True) or {}
    try:
        order = service_orders_service.create_service_order(payload)
    except API_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create service order")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(order), 201


@service_orders_bp.put("/<order_id>")
@require_auth
def update_service_order_route(order_id: str):
    payload = request.get_json(silent=True) or {}
    try:
        return service_orders_service.update_service_order(order_id, payload)
    except API_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update service order %s", order_id)
        return jsonify({"error": "Internal server error"}), 500


@service_orders_bp.delete("/<order_id>")
@require_auth
def delete_service_order_route(order_id: str):
    try:
        service_orders_service.delete_service_order(order_id)
    except API_ERRORS as e:
        return error_response(e)
    return {"ok": True}, 200
