# Overview: Flask API routes for discards operations; parses input and returns JSON responses.

from flask import Blueprint, request

from ..services import discards_service
from ..decorators import require_auth
from . import API_ERRORS, error_response


discards_bp = Blueprint("discards", __name__, url_prefix="/api/discards")


@discards_bp.get("")
@require_auth
def list_discards_route():
    return discards_service.list_discards()


@discards_bp.get("/<discard_id>")
@require_auth
def get_discard_route(discard_id: str):
    try:
        return discards_service.get_discard(discard_id)
    except API_ERRORS as e:
        return error_response(e)


@discards_bp.post("")
@require_auth
def create_discard_route():
    payload = request.get_json(silent=True) or {}
    try:
        return discards_service.create_discard(payload), 201
    except API_ERRORS as e:
        return error_response(e)


@discards_bp.put("/<discard_id>")
@require_auth
def update_discard_route(discard_id: str):
    payload = request.get_json(silent=True) or {}
    try:
        return discards_service.update_discard(discard_id, payload)
    except API_ERRORS as e:
        return error_response(e)


@discards_bp.delete("/<discard_id>")
@require_auth
def delete_discard_route(discard_id: str):
    try:
        discards_service.delete_discard(discard_id)
    except API_ERRORS as e:
        return error_response(e)
    return {"ok": True}, 200
