# Overview: Read-only aggregation of ticket sales over a session window.

"""
Sales aggregation for till reconciliation.

WHY: Expected closing cash depends on cash tickets sold by the operator
while the session was open. The ticket ledger belongs to the ticketing
module; nothing here writes to it.

WINDOW: [since, until). The close operation fixes `until` once, so a
ticket recorded while the close is running is either in or out, never both.

COUNTING: ticket_count counts every paid ticket regardless of payment
method; cash_total only sums cash tickets.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable

from ..extensions import db
from ..models import Ticket
from ..models.tickets import TICKET_PAID, PAYMENT_CASH


@dataclass(frozen=True)
class Sale:
    amount: int
    payment_method: str | None
    status: str


@dataclass(frozen=True)
class SalesSnapshot:
    cash_total: int = 0
    ticket_count: int = 0
    totals_by_method: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "cash_total": self.cash_total,
            "ticket_count": self.ticket_count,
            "totals_by_method": dict(self.totals_by_method),
        }


SalesReader = Callable[[str, datetime, datetime], Iterable[Sale]]


def sales_by_operator_in_window(operator_id: str, since: datetime, until: datetime) -> list[Sale]:
    """Tickets sold by the operator with since <= sold_at < until."""
    rows = db.session.query(
        Ticket.total_amount,
        Ticket.payment_method,
        Ticket.status,
    ).filter(
        Ticket.seller_id == operator_id,
        Ticket.sold_at >= since,
        Ticket.sold_at < until,
    ).order_by(Ticket.sold_at, Ticket.id).all()

    return [
        Sale(amount=int(amount or 0), payment_method=payment_method, status=status)
        for amount, payment_method, status in rows
    ]


def compute_expected_add_on(
    operator_id: str,
    since: datetime,
    until: datetime,
    *,
    sales_reader: SalesReader | None = None,
) -> SalesSnapshot:
    """
    Cash added to the till by paid sales in the window.

    Args:
        operator_id: Seller whose tickets are aggregated
        since: Session opened_at (inclusive)
        until: Close timestamp (exclusive)
        sales_reader: Ledger query, defaults to the tickets table
    """
    reader = sales_reader or sales_by_operator_in_window

    cash_total = 0
    ticket_count = 0
    totals_by_method: dict[str, int] = {}

    for sale in reader(operator_id, since, until):
        if sale.status != TICKET_PAID:
            continue
        ticket_count += 1
        method = sale.payment_method or "unknown"
        totals_by_method[method] = totals_by_method.get(method, 0) + sale.amount
        if method == PAYMENT_CASH:
            cash_total += sale.amount

    return SalesSnapshot(
        cash_total=cash_total,
        ticket_count=ticket_count,
        totals_by_method=totals_by_method,
    )
