"""
Till Registry Service

WHY: Sessions can only be opened on a known, active till of an agency.

DESIGN PRINCIPLES:
- Till names are unique within an agency
- Tills are retired, never deleted (sessions keep referencing them)
- A till with an open session cannot be retired
"""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import DuplicateNameError, InvalidAgencyError, NotFoundError, TillInUseError, TillValidationError
from ..models import Agency, Till, TillSession, SESSION_OPEN
from .concurrency import lock_for_update


def create_till(name: str, agency_id: int) -> Till:
    """
    Create a new till in an agency.

    Raises:
        TillValidationError: blank name
        InvalidAgencyError: agency unknown or inactive
        DuplicateNameError: name already used in this agency
    """
    name = (name or "").strip()
    if not name:
        raise TillValidationError("Till name is required")

    agency = db.session.get(Agency, agency_id) if agency_id is not None else None
    if not agency or not agency.is_active:
        raise InvalidAgencyError("Agency not found or inactive")

    existing = db.session.query(Till).filter_by(agency_id=agency_id, name=name).first()
    if existing:
        raise DuplicateNameError(f"Till '{name}' already exists in this agency")

    till = Till(agency_id=agency_id, name=name, is_active=True)
    db.session.add(till)
    try:
        db.session.commit()
    except IntegrityError:
        # Concurrent create won the unique constraint
        db.session.rollback()
        raise DuplicateNameError(f"Till '{name}' already exists in this agency")

    return till


def list_active_tills(agency_id: int) -> list[Till]:
    """Get all active tills for an agency."""
    return db.session.query(Till).filter_by(
        agency_id=agency_id,
        is_active=True
    ).order_by(Till.name).all()


def get_till(till_id: int) -> Till:
    till = db.session.get(Till, till_id)
    if not till:
        raise NotFoundError("Till not found")
    return till


def retire_till(till_id: int) -> Till:
    """
    Retire a till (soft delete).

    Retired tills stay attached to their historical sessions but
    cannot open new ones.
    """
    till = lock_for_update(db.session.query(Till).filter_by(id=till_id)).first()
    if not till:
        db.session.rollback()
        raise NotFoundError("Till not found")

    open_session = db.session.query(TillSession).filter_by(
        till_id=till_id,
        status=SESSION_OPEN
    ).first()
    if open_session:
        db.session.rollback()
        raise TillInUseError(f"Till has an open session (session {open_session.id}). Close it first.")

    till.is_active = False
    db.session.commit()

    return till
