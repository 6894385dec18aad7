from flask import Blueprint, jsonify

from ..decorators import require_auth, require_permission
from ..services import reporting_service


reports_bp = Blueprint("reports", __name__, url_prefix="/api")


@reports_bp.get("/stats")
@require_auth
@require_permission("VIEW_REPORTS")
def stats_summary():
    return jsonify(reporting_service.stats_summary()), 200
