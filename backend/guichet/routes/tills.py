# Overview: Flask API routes for till registry and opening sessions on a till.

# backend/guichet/routes/tills.py
"""
Till API Routes

DESIGN:
- Till creation and retirement (supervisors only)
- Active till listing, scoped to the caller's agency
- Opening a session on a till (any operator)
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import TillError
from ..services import till_service, session_service
from ..decorators import require_operator, require_supervisor
from . import error_response


tills_bp = Blueprint("tills", __name__, url_prefix="/api/tills")


def _is_admin() -> bool:
    return g.operator_role == "admin"


def _ensure_agency_scope(agency_id: int | None):
    if _is_admin():
        return None
    if agency_id is not None and g.agency_id != agency_id:
        return jsonify({"error": "Agency access denied"}), 403
    return None


@tills_bp.get("/")
@tills_bp.get("")
@require_operator
def list_tills_route():
    """
    List active tills of an agency.

    Query: agency_id (defaults to the caller's agency)
    """
    agency_id = request.args.get("agency_id", type=int) or g.agency_id
    if agency_id is None:
        return jsonify({"error": "agency_id required"}), 400

    scope_error = _ensure_agency_scope(agency_id)
    if scope_error:
        return scope_error

    tills = till_service.list_active_tills(agency_id)
    return jsonify({"tills": [t.to_dict() for t in tills]}), 200


@tills_bp.post("/")
@tills_bp.post("")
@require_operator
@require_supervisor
def create_till_route():
    """
    Create a till.

    Request body:
    {
        "name": "Guichet 1",
        "agency_id": 3   (optional for managers, defaults to their agency)
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        name = data.get("name")
        agency_id = data.get("agency_id") if _is_admin() else g.agency_id
        if agency_id is None:
            agency_id = g.agency_id

        if not name or agency_id is None:
            return jsonify({"error": "name and agency_id required"}), 400

        scope_error = _ensure_agency_scope(agency_id)
        if scope_error:
            return scope_error

        till = till_service.create_till(name=name, agency_id=agency_id)
        return jsonify({"till": till.to_dict()}), 201

    except TillError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create till")
        return jsonify({"error": "Internal server error"}), 500


@tills_bp.post("/<int:till_id>/retire")
@require_operator
@require_supervisor
def retire_till_route(till_id: int):
    """Retire a till. Refused while a session is open on it."""
    try:
        till = till_service.get_till(till_id)
        scope_error = _ensure_agency_scope(till.agency_id)
        if scope_error:
            return scope_error

        till = till_service.retire_till(till_id)
        return jsonify({"till": till.to_dict()}), 200

    except TillError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to retire till")
        return jsonify({"error": "Internal server error"}), 500


@tills_bp.post("/<int:till_id>/sessions/open")
@require_operator
def open_session_route(till_id: int):
    """
    Open a session on a till for the calling operator.

    Request body:
    {
        "opening_cash": 10000  // Float in the till, minor units
    }

    Returns 409 with open_session_id if the operator already has one open.
    """
    try:
        data = request.get_json(silent=True) or {}
        opening_cash = data.get("opening_cash", 0)

        if isinstance(opening_cash, bool) or not isinstance(opening_cash, int):
            return jsonify({"error": "opening_cash must be an integer"}), 400

        session = session_service.open_session(
            operator_id=g.operator_id,
            till_id=till_id,
            opening_cash=opening_cash,
            agency_id=None if _is_admin() else g.agency_id,
        )
        return jsonify({"session": session.to_dict()}), 201

    except TillError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to open session")
        return jsonify({"error": "Internal server error"}), 500
