"""
HTTP surface tests: caller context headers, status codes and payloads.
"""

import logging
from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from guichet.extensions import db
from guichet.services import session_service, settings_service


def _headers(operator_id, agency_id=None, role=None):
    headers = {"X-Operator-Id": operator_id}
    if agency_id is not None:
        headers["X-Agency-Id"] = str(agency_id)
    if role:
        headers["X-Operator-Role"] = role
    return headers


@pytest.fixture
def seller(agency):
    return _headers("op-awa", agency.id, "cashier")


@pytest.fixture
def manager(agency):
    return _headers("mgr-salif", agency.id, "manager")


@pytest.fixture
def admin():
    return _headers("adm-root", role="admin")


def _backdate(session_id, minutes=1):
    session = session_service.get_session(session_id)
    session.opened_at = session.opened_at - timedelta(minutes=minutes)
    db.session.commit()
    return session.opened_at


def _open(client, till, headers, opening_cash=10000):
    """Open through the API; a successful open is moved a minute into the past."""
    resp = client.post(f"/api/tills/{till.id}/sessions/open", json={"opening_cash": opening_cash}, headers=headers)
    if resp.status_code == 201:
        _backdate(resp.get_json()["session"]["id"])
    return resp


def _close(client, session_id, headers, declared_cash, **extra):
    body = {"declared_cash": declared_cash}
    body.update(extra)
    return client.post(f"/api/sessions/{session_id}/close", json=body, headers=headers)


# =============================================================================
# CONTEXT
# =============================================================================

def test_health(client, db_session):
    resp = client.get("/api/health")

    assert resp.status_code == 200
    assert resp.get_json()["checks"]["database"]["status"] == "healthy"


def test_missing_operator_header_is_401(client, db_session, till):
    resp = client.post(f"/api/tills/{till.id}/sessions/open", json={"opening_cash": 0})
    assert resp.status_code == 401


def test_bad_agency_header_is_400(client, db_session):
    resp = client.get("/api/tills", headers={"X-Operator-Id": "op-awa", "X-Agency-Id": "abc"})
    assert resp.status_code == 400


def test_non_admin_without_agency_cannot_open(client, db_session, till):
    resp = _open(client, till, _headers("op-moussa", role="cashier"))

    assert resp.status_code == 400
    assert session_service.get_open_session("op-moussa") is None

    no_role = _open(client, till, _headers("op-moussa"))
    assert no_role.status_code == 400


def test_admin_without_agency_may_open_anywhere(client, db_session, till, admin):
    resp = _open(client, till, admin)

    assert resp.status_code == 201
    assert resp.get_json()["session"]["agency_id"] == till.agency_id


# =============================================================================
# TILLS
# =============================================================================

def test_list_tills_for_caller_agency(client, db_session, till, second_till, seller):
    resp = client.get("/api/tills", headers=seller)

    assert resp.status_code == 200
    assert [t["name"] for t in resp.get_json()["tills"]] == ["Guichet 1", "Guichet 2"]


def test_list_tills_other_agency_denied(client, db_session, till, other_agency, seller):
    resp = client.get(f"/api/tills?agency_id={other_agency.id}", headers=seller)
    assert resp.status_code == 403


def test_create_till_requires_supervisor(client, db_session, agency, seller, manager):
    denied = client.post("/api/tills", json={"name": "Guichet 3"}, headers=seller)
    assert denied.status_code == 403

    created = client.post("/api/tills", json={"name": "Guichet 3"}, headers=manager)
    assert created.status_code == 201
    assert created.get_json()["till"]["agency_id"] == agency.id

    duplicate = client.post("/api/tills", json={"name": "Guichet 3"}, headers=manager)
    assert duplicate.status_code == 409
    assert duplicate.get_json()["code"] == "DuplicateName"


def test_admin_creates_till_in_any_agency(client, db_session, other_agency, admin):
    resp = client.post("/api/tills", json={"name": "Guichet A", "agency_id": other_agency.id}, headers=admin)

    assert resp.status_code == 201
    assert resp.get_json()["till"]["agency_id"] == other_agency.id


def test_retire_till_refused_while_open(client, db_session, till, seller, manager):
    _open(client, till, seller)

    resp = client.post(f"/api/tills/{till.id}/retire", headers=manager)

    assert resp.status_code == 409
    assert resp.get_json()["code"] == "TillInUse"


# =============================================================================
# OPEN / CLOSE
# =============================================================================

def test_open_session(client, db_session, till, seller):
    resp = _open(client, till, seller, 10000)

    assert resp.status_code == 201
    session = resp.get_json()["session"]
    assert session["status"] == "OPEN"
    assert session["opening_cash"] == 10000
    assert session["operator_id"] == "op-awa"
    assert session["till_name"] == "Guichet 1"


def test_second_open_conflict_names_existing_session(client, db_session, till, second_till, seller):
    first = _open(client, till, seller).get_json()["session"]

    resp = _open(client, second_till, seller)

    assert resp.status_code == 409
    body = resp.get_json()
    assert body["code"] == "AlreadyOpen"
    assert body["open_session_id"] == first["id"]


def test_open_validation_errors(client, db_session, till, seller):
    negative = _open(client, till, seller, -5)
    assert negative.status_code == 400
    assert negative.get_json()["code"] == "NegativeAmount"

    not_int = _open(client, till, seller, "5000")
    assert not_int.status_code == 400

    missing = client.post("/api/tills/999/sessions/open", json={"opening_cash": 0}, headers=seller)
    assert missing.status_code == 404
    assert missing.get_json()["code"] == "NotFound"


def test_open_on_other_agency_till(client, db_session, till, other_agency):
    outsider = _headers("op-moussa", other_agency.id, "cashier")

    resp = _open(client, till, outsider)

    assert resp.status_code == 400
    assert resp.get_json()["code"] == "InvalidTill"


def test_close_with_shortage_returns_alert(client, db_session, till, seller, record_ticket):
    session_id = _open(client, till, seller, 5000).get_json()["session"]["id"]
    record_ticket("op-awa", 32000, session_service.get_session(session_id).opened_at)

    resp = _close(client, session_id, seller, 30000, notes="Manque")

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["session"]["status"] == "CLOSED"
    assert body["session"]["expected_cash"] == 37000
    assert body["session"]["difference"] == -7000
    assert body["session"]["notes"] == "Manque"
    assert body["alert"]["difference"] == -7000
    assert body["alert"]["threshold"] == 5000


def test_close_balanced_has_no_alert(client, db_session, till, seller):
    session_id = _open(client, till, seller, 10000).get_json()["session"]["id"]

    resp = _close(client, session_id, seller, 10000)

    assert resp.status_code == 200
    assert resp.get_json()["alert"] is None


def test_close_twice_is_conflict(client, db_session, till, seller):
    session_id = _open(client, till, seller).get_json()["session"]["id"]
    first = _close(client, session_id, seller, 10000).get_json()["session"]

    resp = _close(client, session_id, seller, 1)

    assert resp.status_code == 409
    assert resp.get_json()["code"] == "AlreadyClosed"
    assert resp.get_json()["session_id"] == session_id

    report = client.get(f"/api/sessions/{session_id}", headers=seller).get_json()
    assert report["session"]["declared_cash"] == first["declared_cash"]
    assert report["session"]["closed_at"] == first["closed_at"]


def test_close_body_validation(client, db_session, till, seller):
    session_id = _open(client, till, seller).get_json()["session"]["id"]
    url = f"/api/sessions/{session_id}/close"

    assert client.post(url, json={}, headers=seller).status_code == 400
    assert client.post(url, json={"declared_cash": 10.5}, headers=seller).status_code == 400

    negative = client.post(url, json={"declared_cash": -1}, headers=seller)
    assert negative.status_code == 400
    assert negative.get_json()["code"] == "NegativeAmount"


def test_close_time_in_body_cannot_shrink_sales_window(client, db_session, till, seller, record_ticket):
    session_id = _open(client, till, seller, 10000).get_json()["session"]["id"]
    opened_at = session_service.get_session(session_id).opened_at
    record_ticket("op-awa", 32000, opened_at)

    resp = _close(client, session_id, seller, 10000, requested_at=opened_at.isoformat() + "Z")

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["session"]["expected_cash"] == 42000
    assert body["session"]["difference"] == -32000
    assert body["alert"]["difference"] == -32000
    assert session_service.get_session(session_id).closed_at > opened_at


def test_close_time_in_body_cannot_push_close_into_future(client, db_session, till, seller):
    session_id = _open(client, till, seller).get_json()["session"]["id"]

    resp = _close(client, session_id, seller, 10000, requested_at="2999-01-01T00:00:00Z")

    assert resp.status_code == 200
    assert resp.get_json()["session"]["closed_at"] < "2999"


def test_close_unknown_session(client, db_session, seller):
    resp = client.post("/api/sessions/4242/close", json={"declared_cash": 0}, headers=seller)
    assert resp.status_code == 404


def test_only_owner_or_supervisor_closes(client, db_session, till, seller, manager, agency):
    session_id = _open(client, till, seller).get_json()["session"]["id"]
    colleague = _headers("op-issa", agency.id, "cashier")

    denied = _close(client, session_id, colleague, 10000)
    assert denied.status_code == 403

    allowed = _close(client, session_id, manager, 10000)
    assert allowed.status_code == 200


# =============================================================================
# QUERIES
# =============================================================================

def test_current_session(client, db_session, till, seller):
    empty = client.get("/api/sessions/current", headers=seller)
    assert empty.status_code == 200
    assert empty.get_json()["session"] is None

    session_id = _open(client, till, seller, 2500).get_json()["session"]["id"]

    body = client.get("/api/sessions/current", headers=seller).get_json()
    assert body["session"]["id"] == session_id
    assert body["is_closed"] is False
    assert body["expected_cash"] == 2500


def test_closed_history_is_own_for_cashiers(client, db_session, till, seller, manager, agency):
    colleague = _headers("op-issa", agency.id, "cashier")
    mine = _open(client, till, seller).get_json()["session"]["id"]
    theirs = _open(client, till, colleague).get_json()["session"]["id"]
    _close(client, mine, seller, 10000)
    _close(client, theirs, colleague, 10000)

    own = client.get("/api/sessions/closed?operator_id=op-issa", headers=seller).get_json()["sessions"]
    assert [s["id"] for s in own] == [mine]

    agency_wide = client.get("/api/sessions/closed", headers=manager).get_json()["sessions"]
    assert [s["id"] for s in agency_wide] == [theirs, mine]

    limited = client.get("/api/sessions/closed?limit=1", headers=manager).get_json()["sessions"]
    assert [s["id"] for s in limited] == [theirs]


def test_session_report_access(client, db_session, till, seller, manager, other_agency):
    session_id = _open(client, till, seller).get_json()["session"]["id"]
    outsider = _headers("mgr-bobo", other_agency.id, "manager")

    assert client.get(f"/api/sessions/{session_id}", headers=seller).status_code == 200
    assert client.get(f"/api/sessions/{session_id}", headers=manager).status_code == 200
    assert client.get(f"/api/sessions/{session_id}", headers=outsider).status_code == 403
    assert client.get("/api/sessions/99999", headers=manager).status_code == 404


def test_today_summary(client, db_session, till, seller, manager, agency):
    colleague = _headers("op-issa", agency.id, "cashier")
    closed_id = _open(client, till, seller, 10000).get_json()["session"]["id"]
    _open(client, till, colleague, 10000)
    client.post(f"/api/sessions/{closed_id}/close", json={"declared_cash": 9000}, headers=seller)

    assert client.get("/api/sessions/today", headers=seller).status_code == 403

    body = client.get("/api/sessions/today", headers=manager).get_json()
    assert body["open_count"] == 1
    assert body["closed_count"] == 1
    assert body["total_difference"] == -1000


# =============================================================================
# ALERTS / SETTINGS
# =============================================================================

def test_alerts_listed_and_acknowledged(client, db_session, till, seller, manager):
    session_id = _open(client, till, seller, 10000).get_json()["session"]["id"]
    alert_id = _close(client, session_id, seller, 2000).get_json()["alert"]["id"]

    assert client.get("/api/discrepancy-alerts", headers=seller).status_code == 403

    listing = client.get("/api/discrepancy-alerts", headers=manager).get_json()
    assert listing["count"] == 1
    assert listing["total_abs_difference"] == 8000

    acked = client.post(f"/api/discrepancy-alerts/{alert_id}/acknowledge", headers=manager)
    assert acked.status_code == 200
    assert acked.get_json()["alert"]["acknowledged_by"] == "mgr-salif"

    again = client.post(f"/api/discrepancy-alerts/{alert_id}/acknowledge", headers=manager)
    assert again.status_code == 409

    assert client.get("/api/discrepancy-alerts", headers=manager).get_json()["count"] == 0


def test_threshold_read_and_admin_update(client, db_session, seller, manager, admin):
    resp = client.get("/api/settings/cash-discrepancy-threshold", headers=seller)
    assert resp.status_code == 200
    assert resp.get_json()["value"] == 5000

    url = "/api/settings/cash-discrepancy-threshold"
    assert client.put(url, json={"value": 100}, headers=manager).status_code == 403
    assert client.put(url, json={"value": -1}, headers=admin).status_code == 400
    assert client.put(url, json={}, headers=admin).status_code == 400

    updated = client.put(url, json={"value": 2500}, headers=admin)
    assert updated.status_code == 200
    assert settings_service.get_threshold() == 2500


# =============================================================================
# STORAGE FAILURES
# =============================================================================

@pytest.mark.parametrize("target, url", [
    ("list_closed_sessions", "/api/sessions/closed"),
    ("list_sessions_opened_on", "/api/sessions/today"),
    ("get_open_session", "/api/sessions/current"),
])
def test_read_routes_log_and_answer_500(client, db_session, manager, monkeypatch, caplog, target, url):
    def unreachable(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    monkeypatch.setattr(session_service, target, unreachable)

    with caplog.at_level(logging.ERROR):
        resp = client.get(url, headers=manager)

    assert resp.status_code == 500
    assert resp.get_json() == {"error": "Internal server error"}
    assert any(record.exc_info for record in caplog.records)


def test_session_report_logs_and_answers_500(client, db_session, till, seller, monkeypatch, caplog):
    session_id = _open(client, till, seller).get_json()["session"]["id"]

    def unreachable(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    monkeypatch.setattr(session_service, "get_session_report", unreachable)

    with caplog.at_level(logging.ERROR):
        resp = client.get(f"/api/sessions/{session_id}", headers=seller)

    assert resp.status_code == 500
    assert any(record.exc_info for record in caplog.records)
