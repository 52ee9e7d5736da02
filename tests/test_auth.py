from __future__ import annotations

from conftest import login


def test_login_and_me(client, seeded_users):
    resp = login(client, "nikos", "techpass1")
    assert resp.status_code == 200
    assert resp.get_json()["user"]["role"] == "user"

    resp = client.get("/auth/me")
    assert resp.status_code == 200
    assert resp.get_json()["user"]["name"] == "nikos"


def test_protected_views_require_login(client):
    for url in ("/dashboard/", "/statistics/", "/logs/tables?table_date=2025-01-01", "/auth/me"):
        resp = client.get(url)
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "Login required"


def test_missing_credentials(client):
    resp = client.post("/auth/login", json={"username": "", "password": ""})
    assert resp.status_code == 400


def test_failed_login_reports_remaining_attempts(app, client, seeded_users):
    resp = login(client, "nikos", "wrong")
    assert resp.status_code == 401
    assert "4 attempt(s) remaining" in resp.get_json()["error"]
    assert app.failed_login_tracker.get_attempts("nikos") == 1


def test_lockout_after_repeated_failures(app, client, seeded_users):
    responses = [login(client, "nikos", "wrong") for _ in range(app.config["LOGIN_MAX_ATTEMPTS"])]
    assert [resp.status_code for resp in responses[:-1]] == [401] * (len(responses) - 1)
    # The attempt that trips the lockout is already refused as locked.
    assert responses[-1].status_code == 429
    assert "locked" in responses[-1].get_json()["error"]

    # Even the right password is refused while locked.
    resp = login(client, "nikos", "techpass1")
    assert resp.status_code == 429


def test_successful_login_resets_counter(app, client, seeded_users):
    login(client, "nikos", "wrong")
    resp = login(client, "nikos", "techpass1")
    assert resp.status_code == 200
    assert app.failed_login_tracker.get_attempts("nikos") == 0


def test_logout(client, seeded_users):
    login(client, "nikos", "techpass1")
    resp = client.post("/auth/logout")
    assert resp.status_code == 200
    assert client.get("/auth/me").status_code == 401


def test_csrf_token_endpoint(client):
    resp = client.get("/auth/csrf-token")
    assert resp.status_code == 200
    assert resp.get_json()["csrf_token"]
