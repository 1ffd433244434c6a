# Overview: Flask API routes for cash discrepancy alerts.

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import TillError
from ..models import DiscrepancyAlert
from ..extensions import db
from ..services import alert_service
from ..decorators import require_operator, require_supervisor
from . import error_response


alerts_bp = Blueprint("alerts", __name__, url_prefix="/api/discrepancy-alerts")


@alerts_bp.get("/")
@alerts_bp.get("")
@require_operator
@require_supervisor
def list_alerts_route():
    """
    Unacknowledged discrepancy alerts, newest first.

    Query: agency_id (admins only; managers are scoped to their agency)
    """
    if g.operator_role == "admin":
        agency_id = request.args.get("agency_id", type=int)
    else:
        agency_id = g.agency_id

    alerts = alert_service.list_unacknowledged_alerts(agency_id=agency_id)
    return jsonify({
        "alerts": [a.to_dict() for a in alerts],
        "count": len(alerts),
        "total_abs_difference": sum(abs(a.difference) for a in alerts),
    }), 200


@alerts_bp.post("/<int:alert_id>/acknowledge")
@require_operator
@require_supervisor
def acknowledge_alert_route(alert_id: int):
    """Mark an alert as reviewed by the calling supervisor."""
    try:
        alert = db.session.get(DiscrepancyAlert, alert_id)
        if alert and g.operator_role != "admin" and alert.agency_id != g.agency_id:
            return jsonify({"error": "Agency access denied"}), 403

        alert = alert_service.acknowledge_alert(alert_id, acknowledged_by=g.operator_id)
        return jsonify({"alert": alert.to_dict()}), 200

    except TillError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to acknowledge alert")
        return jsonify({"error": "Internal server error"}), 500
