# Overview: Flask API routes for products operations; parses input and returns JSON responses.

"""
Product (parts collection) routes.

Quantity can be set directly here (stock entry); every other stock movement
goes through sales, budgets and service orders.
"""

from flask import Blueprint, request

from ..services import products_service
from ..decorators import require_auth, require_role
from . import API_ERRORS, error_response


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
def list_products_route():
    """Query params: type=piece|service (optional)."""
    return products_service.list_products(request.args.get("type"))


@products_bp.get("/low-stock")
@require_auth
def low_stock_route():
    threshold = request.args.get("threshold", default=5, type=int)
    items = products_service.low_stock_products(threshold)
    return {"items": items, "count": len(items), "threshold": threshold}


@products_bp.get("/<product_id>")
@require_auth
def get_product_route(product_id: str):
    try:
        return products_service.get_product(product_id)
    except API_ERRORS as e:
        return error_response(e)


@products_bp.post("")
@require_auth
def create_product_route():
    payload = request.get_json(silent=True) or {}
    try:
        return products_service.create_product(payload), 201
    except API_ERRORS as e:
        return error_response(e)


@products_bp.put("/<product_id>")
@require_auth
def update_product_route(product_id: str):
    payload = request.get_json(silent=True) or {}
    try:
        return products_service.update_product(product_id, payload)
    except API_ERRORS as e:
        return error_response(e)


@products_bp.delete("/<product_id>")
@require_auth
@require_role("admin")
def delete_product_route(product_id: str):
    try:
        products_service.delete_product(product_id)
    except API_ERRORS as e:
        return error_response(e)
    return {"ok": True}, 200
