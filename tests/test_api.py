"""HTTP-level tests for the report, memo, log and auth endpoints."""

from barangay_hub.services import audit

from conftest import PASSWORD, auth_headers, logs_for

REPORT = {"category": "Road Concern", "priority": "high", "description": "pothole", "location": "Main St"}


def _create_report(client, user):
    resp = client.post("/api/reports", json=REPORT, headers=auth_headers(user))
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_submit_report(client, db, resident):
    body = _create_report(client, resident)

    assert body["status"] == "submitted"
    assert body["submittedBy"] == resident.id
    assert body["submitterName"] == "juan"
    entries = logs_for(db, "Submitted report")
    assert len(entries) == 1
    assert entries[0].module == "Reports"
    assert entries[0].user_agent == "testclient"


def test_submit_report_missing_fields(client, resident):
    resp = client.post("/api/reports", json={"category": "Road Concern"}, headers=auth_headers(resident))

    assert resp.status_code == 400
    assert resp.json()["error"] == "validation_error"


def test_submit_report_requires_authentication(client):
    resp = client.post("/api/reports", json=REPORT)

    assert resp.status_code == 401
    assert resp.json()["error"] == "authentication_required"


def test_invalid_token_is_rejected(client):
    resp = client.get("/api/reports/abc", headers={"Authorization": "Bearer not-a-token"})
    assert resp.status_code == 401


def test_submit_succeeds_when_audit_store_fails(client, resident, monkeypatch):
    def _boom(session, entry):
        raise RuntimeError("audit store unavailable")

    monkeypatch.setattr(audit, "_persist_log", _boom)

    resp = client.post("/api/reports", json=REPORT, headers=auth_headers(resident))
    assert resp.status_code == 201
    assert resp.json()["status"] == "submitted"


def test_report_reads_are_role_gated(client, resident, other_resident, official):
    report = _create_report(client, resident)

    assert client.get("/api/reports", headers=auth_headers(resident)).status_code == 403
    assert len(client.get("/api/reports", headers=auth_headers(official)).json()) == 1

    assert client.get(f"/api/reports/{report['id']}", headers=auth_headers(resident)).status_code == 200
    assert client.get(f"/api/reports/{report['id']}", headers=auth_headers(other_resident)).status_code == 403
    assert client.get("/api/reports/nope", headers=auth_headers(official)).status_code == 404

    own = client.get(f"/api/reports/user/{resident.id}", headers=auth_headers(resident))
    assert [r["id"] for r in own.json()] == [report["id"]]
    assert client.get(f"/api/reports/user/{resident.id}", headers=auth_headers(other_resident)).status_code == 403
    by_official = client.get(f"/api/reports/user/{resident.id}", headers=auth_headers(official))
    assert [r["id"] for r in by_official.json()] == [report["id"]]


def test_information_request_round_trip(client, resident, official):
    report = _create_report(client, resident)
    url = f"/api/reports/{report['id']}"

    for status in ("reviewed", "in_progress"):
        resp = client.patch(url, json={"status": status}, headers=auth_headers(official))
        assert resp.status_code == 200, resp.text

    resp = client.patch(
        url,
        json={"adminFeedback": "Please provide photo", "senderRole": "official"},
        headers=auth_headers(official),
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "validation"
    assert resp.json()["adminFeedback"] == "Please provide photo"

    messages = client.get(f"{url}/messages", headers=auth_headers(resident)).json()
    assert len(messages) == 1
    assert messages[0]["senderRole"] == "official"
    assert messages[0]["senderName"] == "pedro"

    resp = client.patch(
        url,
        json={"additionalInfo": "Here you go", "additionalInfoImages": ["https://img/1.jpg"], "senderRole": "resident"},
        headers=auth_headers(resident),
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "reviewed"

    messages = client.get(f"{url}/messages", headers=auth_headers(official)).json()
    assert [m["senderRole"] for m in messages] == ["official", "resident"]
    assert messages[1]["images"] == ["https://img/1.jpg"]


def test_patch_error_codes(client, resident, official):
    report = _create_report(client, resident)
    url = f"/api/reports/{report['id']}"

    bad = client.patch(url, json={"status": "closed"}, headers=auth_headers(official))
    assert bad.status_code == 400

    skip = client.patch(url, json={"status": "resolved"}, headers=auth_headers(official))
    assert skip.status_code == 409
    assert skip.json()["error"] == "invalid_transition"

    forbidden = client.patch(url, json={"status": "reviewed"}, headers=auth_headers(resident))
    assert forbidden.status_code == 403

    missing = client.patch("/api/reports/nope", json={"status": "reviewed"}, headers=auth_headers(official))
    assert missing.status_code == 404

    assert client.patch(url, json={"status": "reviewed"}).status_code == 401


def test_logs_are_admin_only(client, resident, official, admin):
    _create_report(client, resident)

    assert client.get("/api/logs").status_code == 401
    assert client.get("/api/logs", headers=auth_headers(official)).status_code == 403

    resp = client.get("/api/logs", params={"module": "Reports", "limit": 10}, headers=auth_headers(admin))
    assert resp.status_code == 200
    rows = resp.json()
    assert [r["action"] for r in rows] == ["Submitted report"]
    assert rows[0]["userName"] == "juan"


def test_memo_endpoints(client, resident, official, admin):
    resp = client.post(
        "/api/memos",
        json={"title": "Clean-up drive", "description": "Saturday 7AM", "category": "memo", "effectiveDate": "2026-11-01"},
        headers=auth_headers(official),
    )
    assert resp.status_code == 201
    memo = resp.json()
    assert memo["status"] == "pending"
    assert memo["issuerName"] == "pedro"

    assert client.get("/api/memos", headers=auth_headers(resident)).json() == []
    assert len(client.get("/api/memos", headers=auth_headers(official)).json()) == 1

    url = f"/api/memos/{memo['id']}"
    assert client.patch(url, json={"status": "approved"}, headers=auth_headers(official)).status_code == 403
    assert client.patch(url, json={"status": "archived"}, headers=auth_headers(admin)).status_code == 400
    assert client.patch("/api/memos/nope", json={"status": "approved"}, headers=auth_headers(admin)).status_code == 404

    resp = client.patch(url, json={"status": "approved"}, headers=auth_headers(admin))
    assert resp.status_code == 200
    assert resp.json()["status"] == "approved"
    assert [m["id"] for m in client.get("/api/memos", headers=auth_headers(resident)).json()] == [memo["id"]]

    again = client.patch(url, json={"status": "rejected"}, headers=auth_headers(admin))
    assert again.status_code == 409


def test_memo_missing_fields(client, official):
    resp = client.post("/api/memos", json={"title": "Only a title"}, headers=auth_headers(official))
    assert resp.status_code == 400


def test_login_sets_session_cookie_and_logs(client, db, resident):
    resp = client.post("/api/auth/login", json={"username": "juan", "password": PASSWORD})

    assert resp.status_code == 200
    body = resp.json()
    assert body["user"]["role"] == "resident"
    assert "brgy_session" in resp.cookies
    assert len(logs_for(db, "User logged in")) == 1

    # the cookie alone authenticates follow-up requests
    me = client.get("/api/auth/me")
    assert me.status_code == 200
    assert me.json()["username"] == "juan"

    out = client.post("/api/auth/logout")
    assert out.status_code == 200
    assert len(logs_for(db, "User logged out")) == 1


def test_failed_logins_are_audited(client, db, resident):
    assert client.post("/api/auth/login", json={"username": "juan", "password": "wrong-pass"}).status_code == 401
    assert client.post("/api/auth/login", json={"username": "ghost", "password": "whatever"}).status_code == 401
    assert client.post("/api/auth/login", json={"username": "juan"}).status_code == 400

    entries = logs_for(db, "Failed login attempt")
    assert sorted(e.metadata_json["reason"] for e in entries) == ["Invalid password", "User not found"]
    assert {e.user_name for e in entries} == {"juan", "ghost"}


def test_admin_manages_users(client, db, official, admin):
    payload = {"username": "kagawad", "password": "longenough", "role": "official", "fullName": "Kagawad Reyes"}

    assert client.post("/api/users", json=payload, headers=auth_headers(official)).status_code == 403

    resp = client.post("/api/users", json=payload, headers=auth_headers(admin))
    assert resp.status_code == 201
    assert resp.json()["role"] == "official"
    assert resp.json()["fullName"] == "Kagawad Reyes"
    assert len(logs_for(db, "Created user account")) == 1

    dup = client.post("/api/users", json=payload, headers=auth_headers(admin))
    assert dup.status_code == 400

    officials = client.get("/api/users", params={"role": "official"}, headers=auth_headers(admin)).json()
    assert {u["username"] for u in officials} == {"pedro", "kagawad"}

    login = client.post("/api/auth/login", json={"username": "kagawad", "password": "longenough"})
    assert login.status_code == 200
