# Overview: Request decorators establishing the caller's operator context.

from functools import wraps
from flask import request, jsonify, g


OPERATOR_HEADER = "X-Operator-Id"
AGENCY_HEADER = "X-Agency-Id"
ROLE_HEADER = "X-Operator-Role"

ADMIN_ROLE = "admin"
SUPERVISOR_ROLES = {ADMIN_ROLE, "manager"}


def require_operator(f):
    """
    Require the operator context set by the upstream auth gateway.

    Identity is verified upstream; these headers are trusted as given.
    Sets the following Flask g attributes:
    - g.operator_id: The operator performing the request - REQUIRED
    - g.agency_id: The operator's agency - REQUIRED except for admins,
      who act across agencies when they send none
    - g.operator_role: Role name, lower-cased (may be None)

    Returns 401 if the operator header is missing, 400 if the agency
    header is not an integer or is missing for a non-admin role.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        operator_id = (request.headers.get(OPERATOR_HEADER) or "").strip()
        if not operator_id:
            return jsonify({"error": "Operator context required"}), 401

        raw_agency = (request.headers.get(AGENCY_HEADER) or "").strip()
        agency_id = None
        if raw_agency:
            try:
                agency_id = int(raw_agency)
            except ValueError:
                return jsonify({"error": f"{AGENCY_HEADER} must be an integer"}), 400

        role = (request.headers.get(ROLE_HEADER) or "").strip().lower() or None
        if agency_id is None and role != ADMIN_ROLE:
            return jsonify({"error": f"{AGENCY_HEADER} required"}), 400

        g.operator_id = operator_id
        g.agency_id = agency_id
        g.operator_role = role

        return f(*args, **kwargs)

    return decorated_function


def require_supervisor(f):
    """
    Require a supervisory role (admin or manager).

    Must be applied after @require_operator.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not hasattr(g, "operator_id"):
            return jsonify({"error": "Operator context required"}), 401

        if g.operator_role not in SUPERVISOR_ROLES:
            return jsonify({
                "error": "Permission denied",
                "required_role": sorted(SUPERVISOR_ROLES),
            }), 403

        return f(*args, **kwargs)

    return decorated_function
