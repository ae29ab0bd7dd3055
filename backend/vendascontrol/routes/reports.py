# Overview: Flask API routes for reports operations; dashboard figures.

from flask import Blueprint

from ..services import reporting_service
from ..decorators import require_auth


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/dashboard")
@require_auth
def dashboard_route():
    """Revenue, counts, recent sales and the daily chart series."""
    return reporting_service.dashboard_summary()
