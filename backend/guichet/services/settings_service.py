# Overview: Threshold configuration read at close time and its admin setter.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..errors import SettingsValidationError
from ..models import AppSetting


CASH_DISCREPANCY_THRESHOLD_KEY = "cash_discrepancy_threshold"
DEFAULT_CASH_DISCREPANCY_THRESHOLD = 5000


def _default_threshold() -> int:
    return int(current_app.config.get("CASH_DISCREPANCY_THRESHOLD_DEFAULT", DEFAULT_CASH_DISCREPANCY_THRESHOLD))


def _coerce_threshold(raw) -> int:
    if isinstance(raw, bool):
        raise SettingsValidationError(f"{CASH_DISCREPANCY_THRESHOLD_KEY}: expected integer")
    if isinstance(raw, int):
        value = raw
    elif isinstance(raw, float) and int(raw) == raw:
        value = int(raw)
    elif isinstance(raw, str):
        try:
            value = int(raw.strip())
        except ValueError:
            raise SettingsValidationError(f"{CASH_DISCREPANCY_THRESHOLD_KEY}: expected integer")
    else:
        raise SettingsValidationError(f"{CASH_DISCREPANCY_THRESHOLD_KEY}: expected integer")
    if value < 0:
        raise SettingsValidationError(f"{CASH_DISCREPANCY_THRESHOLD_KEY}: must be >= 0")
    return value


def get_threshold() -> int:
    """
    Current cash discrepancy threshold, in minor units.

    Always reads the settings table; callers must not cache the result
    across close operations.
    """
    row = db.session.query(AppSetting).filter_by(key=CASH_DISCREPANCY_THRESHOLD_KEY).first()
    if row is None or row.value is None or not row.value.strip():
        return _default_threshold()
    try:
        return _coerce_threshold(row.value)
    except SettingsValidationError:
        current_app.logger.warning(
            "Ignoring invalid %s value %r, using default", CASH_DISCREPANCY_THRESHOLD_KEY, row.value
        )
        return _default_threshold()


def set_threshold(value, *, updated_by: str | None = None) -> int:
    """Administrative setter. Returns the stored value."""
    threshold = _coerce_threshold(value)

    row = db.session.query(AppSetting).filter_by(key=CASH_DISCREPANCY_THRESHOLD_KEY).first()
    if row is None:
        row = AppSetting(
            key=CASH_DISCREPANCY_THRESHOLD_KEY,
            value=str(threshold),
            description="Absolute cash difference (minor units) that raises a discrepancy alert",
            updated_by=updated_by,
        )
        db.session.add(row)
    else:
        row.value = str(threshold)
        row.updated_by = updated_by
    db.session.commit()

    current_app.logger.info("Cash discrepancy threshold set to %s by %s", threshold, updated_by or "system")
    return threshold
