"""
Till Session Service

WHY: Cash accountability per operator. A session opens with a declared
float, and closes with a counted amount that is reconciled against the
float plus the cash tickets the operator sold in between.

DESIGN PRINCIPLES:
- One open session per operator, enforced by a partial unique index
- Sessions are immutable once closed (CLOSED is terminal)
- Close writes the terminal fields and the discrepancy alert in one commit
- The close window end is fixed before anything is read
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Callable

from flask import current_app
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..errors import (
    AlreadyClosedError,
    AlreadyOpenError,
    InvalidTillError,
    NegativeAmountError,
    NotFoundError,
    TillValidationError,
)
from ..models import Till, TillSession, SESSION_OPEN, SESSION_CLOSED
from ..time_utils import as_utc_naive, to_utc_z, utc_day_bounds, utcnow
from . import alert_service, settings_service
from .concurrency import atomic, lock_for_update
from .reconciliation import reconcile
from .sales_service import SalesReader, compute_expected_add_on


ThresholdProvider = Callable[[], int]


def _require_amount(value, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TillValidationError(f"{field} must be a whole amount in minor units")
    if value < 0:
        raise NegativeAmountError(f"{field} cannot be negative")
    return value


# =============================================================================
# OPEN
# =============================================================================

def open_session(
    operator_id: str,
    till_id: int,
    opening_cash: int,
    *,
    agency_id: int | None = None,
) -> TillSession:
    """
    Open a session for an operator on a till.

    Args:
        operator_id: Operator opening the session (trusted caller context)
        till_id: Till to sell through
        opening_cash: Float in the till, minor units
        agency_id: Caller's agency; when given the till must belong to it

    Raises:
        NegativeAmountError: opening_cash < 0
        NotFoundError: unknown till
        InvalidTillError: till retired or in another agency
        AlreadyOpenError: operator already has an open session
    """
    _require_amount(opening_cash, "opening_cash")

    till = db.session.get(Till, till_id)
    if not till:
        raise NotFoundError("Till not found")

    if not till.is_active:
        raise InvalidTillError("Cannot open a session on a retired till")

    if agency_id is not None and till.agency_id != agency_id:
        raise InvalidTillError("Till belongs to another agency")

    existing_open = get_open_session(operator_id)
    if existing_open:
        raise AlreadyOpenError(
            f"Operator already has an open session (session {existing_open.id})",
            open_session_id=existing_open.id,
        )

    session = TillSession(
        till_id=till.id,
        operator_id=operator_id,
        agency_id=till.agency_id,  # Fixed at open, even if the till moves later
        status=SESSION_OPEN,
        opening_cash=opening_cash,
        opened_at=utcnow(),
    )
    db.session.add(session)

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        # A concurrent open got in first; the partial unique index rejected us
        winner = get_open_session(operator_id)
        if winner is None:
            raise
        raise AlreadyOpenError(
            f"Operator already has an open session (session {winner.id})",
            open_session_id=winner.id,
        )

    current_app.logger.info(
        "Session %s opened by operator %s on till %s (opening_cash=%s)",
        session.id, operator_id, till.id, opening_cash,
    )
    return session


# =============================================================================
# CLOSE
# =============================================================================

def close_session(
    session_id: int,
    declared_cash: int,
    notes: str | None = None,
    *,
    requested_at: datetime | None = None,
    threshold_provider: ThresholdProvider | None = None,
    sales_reader: SalesReader | None = None,
) -> TillSession:
    """
    Close a session and reconcile the declared cash.

    The sales window is [opened_at, requested_at). requested_at defaults
    to now and is fixed before the ledger is read. It is never taken from
    an HTTP body, and a value later than now is rejected.

    Session update and discrepancy alert are committed together; on any
    failure neither is written.

    Args:
        session_id: Session to close
        declared_cash: Cash counted by the operator, minor units
        notes: Optional closing notes
        requested_at: Close timestamp, defaults to now
        threshold_provider: Returns the current threshold (read once per call)
        sales_reader: Ledger query override

    Raises:
        NegativeAmountError: declared_cash < 0
        NotFoundError: unknown session
        AlreadyClosedError: session already closed (nothing is rewritten)
        TillValidationError: requested_at in the future or before opened_at
    """
    _require_amount(declared_cash, "declared_cash")

    now = utcnow()
    closed_at = as_utc_naive(requested_at) or now
    if closed_at > now:
        raise TillValidationError("Close time cannot be in the future")

    get_threshold = threshold_provider or settings_service.get_threshold

    try:
        with atomic():
            session = lock_for_update(
                db.session.query(TillSession).filter_by(id=session_id)
            ).populate_existing().first()

            if not session:
                raise NotFoundError("Session not found")

            if session.status != SESSION_OPEN:
                raise AlreadyClosedError("Session already closed", session_id=session.id)

            opened_at = as_utc_naive(session.opened_at)
            if closed_at < opened_at:
                raise TillValidationError("Close time cannot be before the session was opened")

            threshold = get_threshold()

            snapshot = compute_expected_add_on(
                session.operator_id,
                opened_at,
                closed_at,
                sales_reader=sales_reader,
            )
            result = reconcile(
                opening_cash=session.opening_cash,
                add_on_cash_total=snapshot.cash_total,
                declared_cash=declared_cash,
                threshold=threshold,
            )

            session.status = SESSION_CLOSED
            session.closed_at = closed_at
            session.declared_cash = declared_cash
            session.expected_cash = result.expected_cash
            session.difference = result.difference
            session.notes = notes
            # Version check happens here; a concurrent close raises StaleDataError
            db.session.flush()

            alert_service.maybe_create_alert(session, result, threshold)
    except StaleDataError:
        raise AlreadyClosedError("Session already closed", session_id=session_id)

    current_app.logger.info(
        "Session %s closed: expected=%s declared=%s difference=%s tickets=%s",
        session.id, session.expected_cash, session.declared_cash, session.difference, snapshot.ticket_count,
    )
    return session


# =============================================================================
# QUERIES
# =============================================================================

def get_open_session(operator_id: str) -> TillSession | None:
    """Get the operator's open session, if any."""
    return db.session.query(TillSession).filter_by(
        operator_id=operator_id,
        status=SESSION_OPEN
    ).first()


def get_session(session_id: int) -> TillSession:
    session = db.session.get(TillSession, session_id)
    if not session:
        raise NotFoundError("Session not found")
    return session


def list_closed_sessions(
    *,
    operator_id: str | None = None,
    agency_id: int | None = None,
    limit: int = 50,
) -> list[TillSession]:
    """Closed sessions, most recently closed first."""
    query = db.session.query(TillSession).filter_by(status=SESSION_CLOSED)

    if operator_id is not None:
        query = query.filter_by(operator_id=operator_id)
    if agency_id is not None:
        query = query.filter_by(agency_id=agency_id)

    return query.order_by(
        TillSession.closed_at.desc(),
        TillSession.id.desc(),
    ).limit(max(int(limit), 0)).all()


def list_sessions_opened_on(day: date, *, agency_id: int | None = None) -> list[TillSession]:
    """Sessions opened on a given UTC day (open and closed), newest first."""
    start, end = utc_day_bounds(day)

    query = db.session.query(TillSession).filter(
        TillSession.opened_at >= start,
        TillSession.opened_at < end,
    )
    if agency_id is not None:
        query = query.filter(TillSession.agency_id == agency_id)

    return query.order_by(TillSession.opened_at.desc(), TillSession.id.desc()).all()


def _recorded_totals(session: TillSession) -> dict | None:
    if session.is_open:
        return None
    return {
        "opening_cash": session.opening_cash,
        "cash_total": session.expected_cash - session.opening_cash,
        "expected_cash": session.expected_cash,
        "declared_cash": session.declared_cash,
        "difference": session.difference,
        "closed_at": to_utc_z(session.closed_at),
    }


def get_session_report(session_id: int, *, sales_reader: SalesReader | None = None) -> dict:
    """
    Session details with its sales breakdown.

    "sales" is always recomputed from the ticket ledger at read time. For
    an open session the window ends now and expected_cash is a preview.
    For a closed session the window is the frozen close window, and
    "recorded" carries the amounts stored at close; if tickets inside the
    window changed afterwards, sales.cash_total and recorded.cash_total
    disagree.
    """
    session = get_session(session_id)

    opened_at = as_utc_naive(session.opened_at)
    until = as_utc_naive(session.closed_at) if session.closed_at else utcnow()
    snapshot = compute_expected_add_on(session.operator_id, opened_at, until, sales_reader=sales_reader)

    alert = alert_service.get_alert_for_session(session.id)

    return {
        "session": session.to_dict(),
        "sales": snapshot.to_dict(),
        "sales_computed_at": to_utc_z(utcnow()),
        "recorded": _recorded_totals(session),
        "expected_cash": session.expected_cash if not session.is_open else session.opening_cash + snapshot.cash_total,
        "is_closed": session.status == SESSION_CLOSED,
        "alert": alert.to_dict() if alert else None,
    }
