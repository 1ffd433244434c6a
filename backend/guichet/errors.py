# Overview: Error taxonomy for till, session, alert and settings operations.

"""
Till and session errors.

Every error is a ValueError subclass carrying the HTTP status the API layer
answers with. Storage failures (SQLAlchemyError) are never wrapped here; they
propagate to the caller after the unit of work is rolled back.
"""

from __future__ import annotations


class TillError(ValueError):
    """Base class for business-rule failures."""
    status_code = 400


class NotFoundError(TillError):
    """Session, till or alert id does not exist."""
    status_code = 404


class NegativeAmountError(TillError):
    """Opening or declared cash is negative (or not a whole amount)."""
    status_code = 400


class InvalidTillError(TillError):
    """Till is retired or belongs to another agency."""
    status_code = 400


class InvalidAgencyError(TillError):
    status_code = 400


class TillValidationError(TillError):
    status_code = 400


class DuplicateNameError(TillError):
    status_code = 409


class TillInUseError(TillError):
    status_code = 409


class AlreadyOpenError(TillError):
    """
    Operator already has an open session.

    Carries the open session id (when known) so the caller can redirect
    to it instead of retrying.
    """
    status_code = 409

    def __init__(self, message: str, open_session_id: int | None = None):
        super().__init__(message)
        self.open_session_id = open_session_id


class AlreadyClosedError(TillError):
    """Session is already closed. Safe to treat as a no-op on retries."""
    status_code = 409

    def __init__(self, message: str, session_id: int | None = None):
        super().__init__(message)
        self.session_id = session_id


class AlertAlreadyAcknowledgedError(TillError):
    status_code = 409


class SettingsValidationError(TillError):
    status_code = 400
