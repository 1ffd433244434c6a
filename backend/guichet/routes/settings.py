# Overview: Flask API routes for the cash discrepancy threshold setting.

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import TillError
from ..services import settings_service
from ..decorators import require_operator, require_supervisor
from . import error_response


settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("/cash-discrepancy-threshold")
@require_operator
def get_threshold_route():
    return jsonify({
        "key": settings_service.CASH_DISCREPANCY_THRESHOLD_KEY,
        "value": settings_service.get_threshold(),
    }), 200


@settings_bp.put("/cash-discrepancy-threshold")
@require_operator
@require_supervisor
def set_threshold_route():
    """
    Update the threshold (admins only).

    Request body:
    {
        "value": 5000  // minor units, >= 0
    }
    """
    if g.operator_role != "admin":
        return jsonify({"error": "Permission denied", "required_role": ["admin"]}), 403

    try:
        data = request.get_json(silent=True) or {}
        if "value" not in data:
            return jsonify({"error": "value required"}), 400

        value = settings_service.set_threshold(data["value"], updated_by=g.operator_id)
        return jsonify({
            "key": settings_service.CASH_DISCREPANCY_THRESHOLD_KEY,
            "value": value,
        }), 200

    except TillError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update threshold")
        return jsonify({"error": "Internal server error"}), 500
