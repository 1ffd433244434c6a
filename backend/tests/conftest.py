"""
Pytest fixtures for guichet backend tests.

Provides an in-memory application, per-test table wipe, agencies, tills,
and a helper to record tickets in the sales ledger.
"""

import pytest

from guichet import create_app
from guichet.extensions import db
from guichet.models import Agency, Till, Ticket


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'CASH_DISCREPANCY_THRESHOLD_DEFAULT': 5000,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Fresh tables for each test."""
    with app.app_context():
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        db.session.rollback()


@pytest.fixture(scope='function')
def agency(db_session):
    agency = Agency(name="Ouagadougou Gare Routiere", code="OUA", is_active=True)
    db_session.add(agency)
    db_session.commit()
    return agency


@pytest.fixture(scope='function')
def other_agency(db_session):
    agency = Agency(name="Bobo-Dioulasso", code="BOBO", is_active=True)
    db_session.add(agency)
    db_session.commit()
    return agency


@pytest.fixture(scope='function')
def till(db_session, agency):
    till = Till(agency_id=agency.id, name="Guichet 1", is_active=True)
    db_session.add(till)
    db_session.commit()
    return till


@pytest.fixture(scope='function')
def second_till(db_session, agency):
    till = Till(agency_id=agency.id, name="Guichet 2", is_active=True)
    db_session.add(till)
    db_session.commit()
    return till


@pytest.fixture(scope='function')
def record_ticket(db_session, agency):
    """Record a ticket sale the way the ticketing module would."""
    def _record(seller_id, amount, sold_at, payment_method="cash", status="paid"):
        ticket = Ticket(
            agency_id=agency.id,
            seller_id=seller_id,
            total_amount=amount,
            payment_method=payment_method,
            status=status,
            sold_at=sold_at,
        )
        db_session.add(ticket)
        db_session.commit()
        return ticket
    return _record
