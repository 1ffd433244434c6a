# Overview: Discrepancy alert creation and supervisor acknowledgement.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..errors import NotFoundError, AlertAlreadyAcknowledgedError
from ..models import DiscrepancyAlert, TillSession
from ..time_utils import utcnow
from .concurrency import lock_for_update
from .reconciliation import ReconcileResult


def maybe_create_alert(session: TillSession, result: ReconcileResult, threshold: int) -> DiscrepancyAlert | None:
    """
    Stage a discrepancy alert when the reconciliation breached the threshold.

    Does NOT commit: the alert belongs to the close transaction, so either
    the session closes with its alert or neither is written.

    The stored threshold is the value used for this close, so later
    threshold changes do not alter historical alerts.
    """
    if not result.breached:
        return None

    alert = DiscrepancyAlert(
        session_id=session.id,
        operator_id=session.operator_id,
        agency_id=session.agency_id,
        difference=result.difference,
        threshold=threshold,
        created_at=session.closed_at or utcnow(),
    )
    db.session.add(alert)
    db.session.flush()

    current_app.logger.warning(
        "Cash discrepancy on session %s (operator %s, agency %s): difference=%s threshold=%s",
        session.id, session.operator_id, session.agency_id, result.difference, threshold,
    )
    return alert


def get_alert_for_session(session_id: int) -> DiscrepancyAlert | None:
    return db.session.query(DiscrepancyAlert).filter_by(session_id=session_id).first()


def list_unacknowledged_alerts(*, agency_id: int | None = None) -> list[DiscrepancyAlert]:
    """Alerts still waiting for a supervisor, newest first."""
    query = db.session.query(DiscrepancyAlert).filter(DiscrepancyAlert.acknowledged_at.is_(None))
    if agency_id is not None:
        query = query.filter(DiscrepancyAlert.agency_id == agency_id)
    return query.order_by(DiscrepancyAlert.created_at.desc(), DiscrepancyAlert.id.desc()).all()


def acknowledge_alert(alert_id: int, acknowledged_by: str) -> DiscrepancyAlert:
    """
    Mark an alert as seen by a supervisor.

    Only acknowledged_at / acknowledged_by change; difference and threshold
    stay as frozen at close time.
    """
    alert = lock_for_update(db.session.query(DiscrepancyAlert).filter_by(id=alert_id)).first()
    if not alert:
        db.session.rollback()
        raise NotFoundError("Alert not found")

    if alert.acknowledged_at is not None:
        db.session.rollback()
        raise AlertAlreadyAcknowledgedError(f"Alert {alert_id} already acknowledged")

    alert.acknowledged_at = utcnow()
    alert.acknowledged_by = acknowledged_by
    db.session.commit()

    return alert
