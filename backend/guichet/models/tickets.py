from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


TICKET_PAID = "paid"

PAYMENT_CASH = "cash"
PAYMENT_MOBILE_MONEY = "mobile_money"
PAYMENT_CARD = "card"


class Ticket(db.Model):
    """
    Ticket sale as recorded by the ticketing module.

    READ-ONLY here: till reconciliation only aggregates these rows. The
    ticketing module owns inserts, refunds and cancellations.
    """
    __tablename__ = "tickets"
    __table_args__ = (
        db.Index("ix_tickets_seller_sold_at", "seller_id", "sold_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    reference = db.Column(db.String(64), nullable=True)
    agency_id = db.Column(db.Integer, db.ForeignKey("agencies.id"), nullable=True, index=True)
    seller_id = db.Column(db.String(64), nullable=True)

    total_amount = db.Column(db.Integer, nullable=False, default=0)
    payment_method = db.Column(db.String(32), nullable=True)
    status = db.Column(db.String(32), nullable=False, default=TICKET_PAID, index=True)

    sold_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "reference": self.reference,
            "agency_id": self.agency_id,
            "seller_id": self.seller_id,
            "total_amount": self.total_amount,
            "payment_method": self.payment_method,
            "status": self.status,
            "sold_at": to_utc_z(self.sold_at) if self.sold_at else None,
        }
