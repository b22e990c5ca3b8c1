import pytest

from models import db
from models.audit_log import AuditLog
from models.privilege_override import PrivilegeOverride
from models.troop import Troop


@pytest.fixture
def leader(make_user, troop, add_member):
    user = make_user("leader@example.com", first_name="Lee")
    add_member(troop, user, role="troop_leader")
    return user


@pytest.fixture
def parent(make_user, troop, add_member):
    user = make_user("parent@example.com", role="parent", first_name="Pat")
    add_member(troop, user, role="parent")
    return user


def _url(troop, user):
    return f"/api/troop/{troop.id}/members/{user.id}/privileges"


def test_leader_reads_member_privileges(client, login, troop, leader, parent):
    login("leader@example.com")
    resp = client.get(_url(troop, parent))
    assert resp.status_code == 200

    body = resp.get_json()
    assert body["member"]["troop_role"] == "parent"
    privileges = {p["code"]: p for p in body["privileges"]}
    assert privileges["view_sales"]["scope"] == "H"
    assert not any(p["is_override"] for p in body["privileges"])


def test_parent_cannot_manage_privileges(client, login, troop, leader, parent):
    login("parent@example.com")
    resp = client.get(_url(troop, leader))
    assert resp.status_code == 403
    assert resp.get_json()["privilege"] == "manage_privileges"
    assert AuditLog.query.filter_by(action="PRIVILEGE_DENIED").count() == 1


def test_non_member_leader_is_denied(client, login, leader, parent):
    other = Troop(troop_number="9999")
    db.session.add(other)
    db.session.commit()

    login("leader@example.com")
    resp = client.get(f"/api/troop/{other.id}/members/{parent.id}/privileges")
    assert resp.status_code == 403


def test_admin_base_role_applies_to_any_troop(client, login, make_user, troop, parent):
    make_user("root@example.com", role="admin")
    login("root@example.com")
    assert client.get(_url(troop, parent)).status_code == 200


def test_unauthenticated_is_401(client, troop, parent):
    assert client.get(_url(troop, parent)).status_code == 401


def test_put_overrides_and_default_removal(client, login, troop, leader, parent):
    login("leader@example.com")

    resp = client.put(_url(troop, parent), json={"overrides": [
        {"code": "view_roster", "scope": "T"},
        {"code": "view_sales", "scope": "H"},  # equals the default
    ]})
    assert resp.status_code == 200
    privileges = {p["code"]: p for p in resp.get_json()["privileges"]}
    assert privileges["view_roster"]["scope"] == "T"
    assert privileges["view_roster"]["is_override"] is True
    assert PrivilegeOverride.query.count() == 1

    # setting it back to the default removes the stored override
    resp = client.put(_url(troop, parent), json={"overrides": [{"code": "view_roster", "scope": "none"}]})
    assert resp.status_code == 200
    assert PrivilegeOverride.query.count() == 0


def test_put_validation(client, login, troop, leader, parent):
    login("leader@example.com")

    assert client.put(_url(troop, parent), json={"overrides": "T"}).status_code == 400

    resp = client.put(_url(troop, parent), json={"overrides": [{"code": "launch_rockets", "scope": "T"}]})
    assert resp.status_code == 400
    assert "launch_rockets" in resp.get_json()["error"]

    resp = client.put(_url(troop, parent), json={"overrides": [{"code": "view_roster", "scope": "X"}]})
    assert resp.status_code == 400


def test_cannot_edit_own_privileges(client, login, troop, leader):
    login("leader@example.com")
    resp = client.put(_url(troop, leader), json={"overrides": []})
    assert resp.status_code == 403


def test_unknown_member_is_404(client, login, make_user, troop, leader):
    stranger = make_user("stranger@example.com")
    login("leader@example.com")
    assert client.get(_url(troop, stranger)).status_code == 404


def test_override_grants_access(client, login, troop, leader, parent):
    login("leader@example.com")
    client.put(_url(troop, parent), json={"overrides": [{"code": "manage_privileges", "scope": "T"}]})
    client.post("/api/auth/logout")

    login("parent@example.com")
    assert client.get(_url(troop, leader)).status_code == 200


def test_delete_resets_overrides(client, login, troop, leader, parent):
    login("leader@example.com")
    client.put(_url(troop, parent), json={"overrides": [
        {"code": "view_roster", "scope": "T"},
        {"code": "manage_events", "scope": "D"},
    ]})

    resp = client.delete(_url(troop, parent))
    assert resp.status_code == 200
    assert resp.get_json()["removed"] == 2
    assert PrivilegeOverride.query.count() == 0


def test_my_privileges_merges_base_and_troop_role(client, login, make_user, troop, add_member):
    user = make_user("both@example.com", role="parent")
    add_member(troop, user, role="assistant")
    login("both@example.com")

    privileges = client.get(f"/api/troop/{troop.id}/privileges/me").get_json()["privileges"]
    assert privileges["view_roster"] == "T"
    assert privileges["view_sales"] == "H"
    assert privileges["view_scout_profiles"] == "D"
    assert privileges["manage_members"] == "none"


def test_my_privileges_outside_troop_is_none(client, login, make_user, troop):
    make_user("leader2@example.com", role="troop_leader")
    login("leader2@example.com")

    privileges = client.get(f"/api/troop/{troop.id}/privileges/me").get_json()["privileges"]
    assert set(privileges.values()) == {"none"}


def test_catalog_and_system_roles(client, login, make_user, leader):
    login("leader@example.com")
    body = client.get("/api/privileges/catalog").get_json()
    assert len(body["privileges"]) == 32
    assert body["scopes"]["D"] == "Den/Patrol"

    assert client.get("/api/system/roles").status_code == 403

    client.post("/api/auth/logout")
    make_user("root@example.com", role="admin")
    login("root@example.com")
    roles = client.get("/api/system/roles").get_json()["roles"]
    assert roles["troop_leader"]["manage_members"] == "T"
    assert roles["member"]["manage_members"] == "none"


def test_put_repeated_code_last_entry_wins(client, login, troop, leader, parent):
    login("leader@example.com")

    resp = client.put(_url(troop, parent), json={"overrides": [
        {"code": "view_roster", "scope": "T"},
        {"code": "view_roster", "scope": "none"},
    ]})
    assert resp.status_code == 200
    assert PrivilegeOverride.query.count() == 0

    resp = client.put(_url(troop, parent), json={"overrides": [
        {"code": "view_roster", "scope": "none"},
        {"code": "view_roster", "scope": "D"},
    ]})
    assert resp.status_code == 200
    row = PrivilegeOverride.query.one()
    assert (row.privilege_code, row.scope) == ("view_roster", "D")


def test_any_troop_privileges_take_broadest_across_troops(client, login, make_user, troop, add_member):
    second = Troop(troop_number="5678")
    db.session.add(second)
    db.session.commit()

    user = make_user("multi@example.com")
    add_member(troop, user, role="parent")
    add_member(second, user, role="cookie_leader")
    login("multi@example.com")

    privileges = client.get("/api/privileges/me").get_json()["privileges"]
    # cookie_leader in the second troop beats parent in the first
    assert privileges["view_sales"] == "T"
    assert privileges["view_troop_sales"] == "T"
    # parent-only grant survives the merge
    assert privileges["view_scout_profiles"] == "H"
    assert privileges["manage_privileges"] == "none"


def test_any_troop_ignores_inactive_memberships(client, login, make_user, troop, add_member):
    user = make_user("former@example.com")
    add_member(troop, user, role="troop_leader", status="inactive")
    login("former@example.com")

    privileges = client.get("/api/privileges/me").get_json()["privileges"]
    assert set(privileges.values()) == {"none"}
    assert client.get("/api/privileges/catalog").status_code == 403


def test_catalog_requires_manage_privileges_in_some_troop(client, login, make_user, troop, parent):
    login("parent@example.com")
    resp = client.get("/api/privileges/catalog")
    assert resp.status_code == 403
    assert resp.get_json()["privilege"] == "manage_privileges"

    client.post("/api/auth/logout")
    make_user("root@example.com", role="admin")
    login("root@example.com")
    assert client.get("/api/privileges/catalog").status_code == 200


def test_catalog_requires_login(client):
    assert client.get("/api/privileges/catalog").status_code == 401
    assert client.get("/api/privileges/me").status_code == 401
