from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


SESSION_OPEN = "OPEN"
SESSION_CLOSED = "CLOSED"


class Till(db.Model):
    """
    Named sale point (counter) of an agency.

    DESIGN: Tills are persistent (not deleted when retired) because sessions
    reference them. A retired till cannot open new sessions.
    """
    __tablename__ = "tills"
    __table_args__ = (
        db.UniqueConstraint("agency_id", "name", name="uq_tills_agency_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    agency_id = db.Column(db.Integer, db.ForeignKey("agencies.id"), nullable=False, index=True)
    name = db.Column(db.String(128), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    agency = db.relationship("Agency", backref=db.backref("tills", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "agency_id": self.agency_id,
            "name": self.name,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class TillSession(db.Model):
    """
    One operator's working period at a till.

    LIFECYCLE:
    - OPEN: float declared, operator is selling
    - CLOSED: cash counted and reconciled (terminal, never reopened)

    All cash amounts are integers in currency minor units.
    """
    __tablename__ = "till_sessions"
    __table_args__ = (
        # One open session per operator, enforced by the database
        db.Index(
            "uq_till_sessions_one_open_per_operator",
            "operator_id",
            unique=True,
            sqlite_where=db.text("status = 'OPEN'"),
            postgresql_where=db.text("status = 'OPEN'"),
        ),
        db.Index("ix_till_sessions_agency_closed_at", "agency_id", "closed_at"),
        db.CheckConstraint("opening_cash >= 0", name="ck_till_sessions_opening_cash"),
        db.CheckConstraint(
            "status = 'OPEN' OR (closed_at IS NOT NULL AND declared_cash IS NOT NULL "
            "AND expected_cash IS NOT NULL AND difference IS NOT NULL)",
            name="ck_till_sessions_closed_fields",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    till_id = db.Column(db.Integer, db.ForeignKey("tills.id"), nullable=False, index=True)
    operator_id = db.Column(db.String(64), nullable=False, index=True)
    # Copied from the till at open time
    agency_id = db.Column(db.Integer, db.ForeignKey("agencies.id"), nullable=False, index=True)

    status = db.Column(db.String(16), nullable=False, default=SESSION_OPEN, index=True)

    opening_cash = db.Column(db.Integer, nullable=False, default=0)
    declared_cash = db.Column(db.Integer, nullable=True)
    expected_cash = db.Column(db.Integer, nullable=True)  # opening + cash sales in window
    difference = db.Column(db.Integer, nullable=True)  # declared - expected

    opened_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    closed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    notes = db.Column(db.Text, nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    till = db.relationship("Till", backref=db.backref("sessions", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_open(self) -> bool:
        return self.status == SESSION_OPEN

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "till_id": self.till_id,
            "till_name": self.till.name if self.till else None,
            "operator_id": self.operator_id,
            "agency_id": self.agency_id,
            "status": self.status,
            "opening_cash": self.opening_cash,
            "declared_cash": self.declared_cash,
            "expected_cash": self.expected_cash,
            "difference": self.difference,
            "opened_at": to_utc_z(self.opened_at),
            "closed_at": to_utc_z(self.closed_at) if self.closed_at else None,
            "notes": self.notes,
            "version_id": self.version_id,
        }


class DiscrepancyAlert(db.Model):
    """
    Cash discrepancy raised when a session closes out of tolerance.

    IMMUTABLE: difference and threshold are frozen at close time. Only the
    acknowledgement columns are written afterwards, by a supervisor.
    """
    __tablename__ = "cash_discrepancy_alerts"
    __table_args__ = (
        db.Index("ix_discrepancy_alerts_agency_ack", "agency_id", "acknowledged_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey("till_sessions.id"), nullable=False, unique=True)
    operator_id = db.Column(db.String(64), nullable=False, index=True)
    agency_id = db.Column(db.Integer, db.ForeignKey("agencies.id"), nullable=False)

    difference = db.Column(db.Integer, nullable=False)
    threshold = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    acknowledged_at = db.Column(db.DateTime(timezone=True), nullable=True)
    acknowledged_by = db.Column(db.String(64), nullable=True)

    session = db.relationship("TillSession", backref=db.backref("discrepancy_alert", uselist=False, lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "session_id": self.session_id,
            "operator_id": self.operator_id,
            "agency_id": self.agency_id,
            "difference": self.difference,
            "threshold": self.threshold,
            "created_at": to_utc_z(self.created_at),
            "acknowledged_at": to_utc_z(self.acknowledged_at) if self.acknowledged_at else None,
            "acknowledged_by": self.acknowledged_by,
        }
