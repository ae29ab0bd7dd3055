# Overview: Flask API routes for customers operations; parses input and returns JSON responses.

from flask import Blueprint, request

from ..services import customers_service
from ..decorators import require_auth
from . import API_ERRORS, error_response


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_auth
def list_customers_route():
    return customers_service.list_customers()


@customers_bp.get("/<customer_id>")
@require_auth
def get_customer_route(customer_id: str):
    try:
        return customers_service.get_customer(customer_id)
    except API_ERRORS as e:
        return error_response(e)


@customers_bp.post("")
@require_auth
def create_customer_route():
    payload = request.get_json(silent=True) or {}
    try:
        return customers_service.create_customer(payload), 201
    except API_ERRORS as e:
        return error_response(e)


@customers_bp.put("/<customer_id>")
@require_auth
def update_customer_route(customer_id: str):
    payload = request.get_json(silent=True) or {}
    try:
        return customers_service.update_customer(customer_id, payload)
    except API_ERRORS as e:
        return error_response(e)


@customers_bp.delete("/<customer_id>")
@require_auth
def delete_customer_route(customer_id: str):
    try:
        customers_service.delete_customer(customer_id)
    except API_ERRORS as e:
        return error_response(e)
    return {"ok": True}, 200
