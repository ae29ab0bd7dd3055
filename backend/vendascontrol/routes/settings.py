# Overview: Flask API routes for settings operations; company profile, registration switches, backup and restore.

"""
Settings routes.

Reads are open to any signed-in user (the forms need the registration
switches, the printouts need the company header). Writes, backup and restore
are admin-only.
"""

from flask import Blueprint, request, jsonify, current_app

from ..services import backup_service, settings_service
from ..decorators import require_auth, require_role
from . import API_ERRORS, error_response


settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("/company")
@require_auth
def get_company_route():
    return settings_service.get_company_profile().to_dict()


@settings_bp.put("/company")
@require_auth
@require_role("admin")
def update_company_route():
    payload = request.get_json(silent=True) or {}
    try:
        return settings_service.update_company_profile(payload).to_dict()
    except API_ERRORS as e:
        return error_response(e)


@settings_bp.get("/registration")
@require_auth
def get_registration_route():
    return settings_service.get_registration_settings().to_dict()


@settings_bp.put("/registration")
@require_auth
@require_role("admin")
def update_registration_route():
    payload = request.get_json(silent=True)
    try:
        return settings_service.update_registration_settings(payload).to_dict()
    except API_ERRORS as e:
        return error_response(e)


@settings_bp.get("/backup")
@require_auth
@require_role("admin")
def backup_route():
    """Whole database as a JSON attachment."""
    response = jsonify(backup_service.export_backup())
    response.headers["Content-Disposition"] = f'attachment; filename="{backup_service.backup_filename()}"'
    return response


@settings_bp.post("/restore")
@require_auth
@require_role("admin")
def restore_route():
    """Body: a backup file as produced by GET /backup. Overwrites documents with the same id."""
    data = request.get_json(silent=True)
    try:
        result = backup_service.import_backup(data)
    except API_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to restore backup")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(result), 200
