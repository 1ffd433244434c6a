# Overview: Flask API routes for till session lifecycle and history.

# backend/guichet/routes/sessions.py
"""
Till Session API Routes

DESIGN:
- Session lifecycle: open (see tills routes) -> close (immutable once closed)
- Closing reconciles declared cash and may raise a discrepancy alert
- Operators see their own sessions; supervisors see their agency's

Closing an already closed session answers 409 with code "AlreadyClosed";
clients retrying a close can treat it as done.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import TillError
from ..services import session_service
from ..decorators import require_operator, require_supervisor, SUPERVISOR_ROLES
from ..time_utils import utcnow
from . import error_response


sessions_bp = Blueprint("sessions", __name__, url_prefix="/api/sessions")


def _is_supervisor() -> bool:
    return g.operator_role in SUPERVISOR_ROLES


def _is_admin() -> bool:
    return g.operator_role == "admin"


def _can_view(session) -> bool:
    if session.operator_id == g.operator_id:
        return True
    if not _is_supervisor():
        return False
    return _is_admin() or session.agency_id == g.agency_id


def _history_limit() -> int:
    limit = request.args.get("limit", type=int) or current_app.config["SESSION_HISTORY_LIMIT"]
    return max(1, min(limit, current_app.config["SESSION_HISTORY_MAX_LIMIT"]))


@sessions_bp.get("/current")
@require_operator
def current_session_route():
    """
    The caller's open session with its live sales snapshot.

    Returns {"session": null} when no session is open.
    """
    try:
        session = session_service.get_open_session(g.operator_id)
        if not session:
            return jsonify({"session": None}), 200

        report = session_service.get_session_report(session.id)
        return jsonify(report), 200

    except Exception:
        current_app.logger.exception("Failed to load current session")
        return jsonify({"error": "Internal server error"}), 500


@sessions_bp.get("/closed")
@require_operator
def closed_sessions_route():
    """
    Closed session history, most recently closed first.

    Query: operator_id, agency_id, limit (default 50)
    Operators only ever see their own history.
    """
    operator_id = request.args.get("operator_id")
    agency_id = request.args.get("agency_id", type=int)

    if not _is_supervisor():
        operator_id = g.operator_id
    elif not _is_admin():
        agency_id = g.agency_id

    try:
        sessions = session_service.list_closed_sessions(
            operator_id=operator_id,
            agency_id=agency_id,
            limit=_history_limit(),
        )
        return jsonify({"sessions": [s.to_dict() for s in sessions]}), 200

    except Exception:
        current_app.logger.exception("Failed to list closed sessions")
        return jsonify({"error": "Internal server error"}), 500


@sessions_bp.get("/today")
@require_operator
@require_supervisor
def today_sessions_route():
    """
    Sessions opened today (UTC), open and closed.

    Query: agency_id (admins only; managers are scoped to their agency)
    """
    agency_id = request.args.get("agency_id", type=int) if _is_admin() else g.agency_id

    try:
        sessions = session_service.list_sessions_opened_on(utcnow().date(), agency_id=agency_id)
        closed = [s for s in sessions if s.difference is not None]

        return jsonify({
            "sessions": [s.to_dict() for s in sessions],
            "open_count": sum(1 for s in sessions if s.is_open),
            "closed_count": len(closed),
            "total_difference": sum(s.difference for s in closed),
        }), 200

    except Exception:
        current_app.logger.exception("Failed to list today's sessions")
        return jsonify({"error": "Internal server error"}), 500


@sessions_bp.get("/<int:session_id>")
@require_operator
def session_report_route(session_id: int):
    """Session details with per-payment-method sales totals."""
    try:
        session = session_service.get_session(session_id)
        if not _can_view(session):
            return jsonify({"error": "Session access denied"}), 403

        return jsonify(session_service.get_session_report(session_id)), 200

    except TillError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load session report")
        return jsonify({"error": "Internal server error"}), 500


@sessions_bp.post("/<int:session_id>/close")
@require_operator
def close_session_route(session_id: int):
    """
    Close a session and reconcile the declared cash.

    Request body:
    {
        "declared_cash": 37000,  // Cash counted, minor units
        "notes": "..."  (optional)
    }

    The close time is the server clock when the request is handled; the
    client cannot choose it.

    expected_cash = opening_cash + cash tickets sold in [opened_at, now)
    difference = declared_cash - expected_cash
    """
    try:
        data = request.get_json(silent=True) or {}
        declared_cash = data.get("declared_cash")
        notes = data.get("notes")

        if declared_cash is None:
            return jsonify({"error": "declared_cash required"}), 400

        if isinstance(declared_cash, bool) or not isinstance(declared_cash, int):
            return jsonify({"error": "declared_cash must be an integer"}), 400

        session = session_service.get_session(session_id)
        if session.operator_id != g.operator_id and not (_is_supervisor() and _can_view(session)):
            return jsonify({"error": "Only the session owner or a supervisor can close this session"}), 403

        session = session_service.close_session(
            session_id=session_id,
            declared_cash=declared_cash,
            notes=notes,
        )

        alert = session.discrepancy_alert
        return jsonify({
            "session": session.to_dict(),
            "alert": alert.to_dict() if alert else None,
        }), 200

    except TillError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to close session")
        return jsonify({"error": "Internal server error"}), 500
