"""
Cash reconciliation for a till session.

Pure arithmetic on integer minor units: no database, no clock, no config.
The same four inputs always give the same result.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ReconcileResult:
    expected_cash: int
    difference: int  # declared - expected; positive = surplus, negative = shortage
    breached: bool


def reconcile(opening_cash: int, add_on_cash_total: int, declared_cash: int, threshold: int) -> ReconcileResult:
    """
    Reconcile declared cash against the float plus cash sales.

    The threshold boundary is inclusive: abs(difference) == threshold breaches.
    """
    expected_cash = opening_cash + add_on_cash_total
    difference = declared_cash - expected_cash
    return ReconcileResult(
        expected_cash=expected_cash,
        difference=difference,
        breached=abs(difference) >= threshold,
    )
