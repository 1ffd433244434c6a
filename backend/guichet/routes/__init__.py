# Overview: Shared JSON error rendering for the API blueprints.

from flask import jsonify

from ..errors import AlreadyOpenError, AlreadyClosedError, TillError


def error_response(e: TillError):
    """Render a business error with its HTTP status and a machine-readable code."""
    body = {"error": str(e), "code": type(e).__name__.removesuffix("Error")}
    if isinstance(e, AlreadyOpenError) and e.open_session_id is not None:
        body["open_session_id"] = e.open_session_id
    if isinstance(e, AlreadyClosedError) and e.session_id is not None:
        body["session_id"] = e.session_id
    return jsonify(body), e.status_code
