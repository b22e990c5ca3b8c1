from models.audit_log import AuditLog
from tests.conftest import PASSWORD

MINUTE = 60


def _attempt(client, email, password="wrong-password1"):
    return client.post("/api/auth/login", json={"email": email, "password": password})


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.get_json() == {"status": "ok"}
    assert resp.headers["X-Frame-Options"] == "DENY"


def test_register_then_login(client):
    resp = client.post("/api/auth/register", json={
        "email": "  Parent@Example.com ",
        "password": PASSWORD,
        "first_name": "Pat",
    })
    assert resp.status_code == 201

    resp = client.post("/api/auth/login", json={"email": "parent@example.com", "password": PASSWORD})
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["user"]["email"] == "parent@example.com"
    assert body["user"]["role"] == "member"


def test_register_rejects_duplicate_and_weak_password(client, make_user):
    make_user("dup@example.com")
    resp = client.post("/api/auth/register", json={"email": "dup@example.com", "password": PASSWORD})
    assert resp.status_code == 409

    resp = client.post("/api/auth/register", json={"email": "new@example.com", "password": "short"})
    assert resp.status_code == 400
    assert resp.get_json()["details"]


def test_bad_password_is_401_and_audited(client, make_user):
    user = make_user("leader@example.com")
    resp = _attempt(client, "leader@example.com")
    assert resp.status_code == 401
    assert resp.get_json()["error"] == "Invalid credentials"

    row = AuditLog.query.filter_by(action="LOGIN_FAIL").one()
    assert row.user_id == user.id


def test_lockout_scenario(client, make_user, clock):
    make_user("a@x.com")

    for _ in range(4):
        assert _attempt(client, "a@x.com").status_code == 401
        clock.advance(10)

    # fifth failure still answers 401 but arms the lockout
    assert _attempt(client, "a@x.com").status_code == 401

    # even the right password is refused while locked
    resp = _attempt(client, "a@x.com", PASSWORD)
    assert resp.status_code == 429
    assert resp.get_json()["retry_after_seconds"] > 0
    assert AuditLog.query.filter_by(action="LOGIN_LOCKED").count() == 1

    clock.advance(16 * MINUTE)
    assert _attempt(client, "a@x.com", PASSWORD).status_code == 200


def test_success_clears_failures(app, client, make_user):
    make_user("a@x.com")
    for _ in range(3):
        _attempt(client, "a@x.com")

    assert _attempt(client, "a@x.com", PASSWORD).status_code == 200
    assert app.extensions["login_guard"].attempts("a@x.com") == 0


def test_lockout_is_per_email(client, make_user):
    make_user("a@x.com")
    make_user("b@x.com")
    for _ in range(5):
        _attempt(client, "a@x.com")

    assert _attempt(client, "a@x.com", PASSWORD).status_code == 429
    assert _attempt(client, "b@x.com", PASSWORD).status_code == 200


def test_login_rate_limit(app, client, make_user):
    app.config["LOGIN_RATE_MAX_REQUESTS"] = 2
    make_user("a@x.com")

    assert _attempt(client, "a@x.com", PASSWORD).status_code == 200
    assert _attempt(client, "a@x.com", PASSWORD).status_code == 200
    resp = _attempt(client, "a@x.com", PASSWORD)
    assert resp.status_code == 429
    assert resp.get_json()["retry_after_seconds"] >= 1


def test_me_and_logout(client, make_user, troop, add_member, login):
    user = make_user("a@x.com", role="parent")
    add_member(troop, user, role="assistant", den="Bears")

    assert client.get("/api/auth/me").status_code == 401

    login("a@x.com")
    body = client.get("/api/auth/me").get_json()
    assert body["user"]["role"] == "parent"
    assert body["troops"] == [{"troop_id": troop.id, "troop_role": "assistant", "den": "Bears"}]

    assert client.post("/api/auth/logout").status_code == 200
    assert client.get("/api/auth/me").status_code == 401


def test_blank_email_is_rejected_before_lockout(app, client):
    for body in ({"password": "x"}, {"email": "   ", "password": "x"}):
        resp = client.post("/api/auth/login", json=body)
        assert resp.status_code == 400

    assert app.extensions["login_guard"].attempts("") == 0
    assert AuditLog.query.filter_by(action="LOGIN_FAIL").count() == 0


def test_locked_response_has_positive_retry_after(client, make_user, clock):
    make_user("a@x.com")
    for _ in range(5):
        _attempt(client, "a@x.com")

    # half a second left in the window
    clock.advance(15 * MINUTE - 0.5)
    resp = _attempt(client, "a@x.com", PASSWORD)
    assert resp.status_code == 429
    assert resp.get_json()["retry_after_seconds"] == 1


def test_idle_session_is_rejected(app, client, make_user, login):
    make_user("a@x.com")
    login("a@x.com")
    assert client.get("/api/auth/me").status_code == 200

    app.config["IDLE_TIMEOUT_SECONDS"] = 0
    assert client.get("/api/auth/me").status_code == 401
