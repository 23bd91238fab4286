import pytest

from backend.services import admin_gate
from backend.services.errors import AdminLocked, AdminNotConfigured, AdminRejected, InvalidInput
from backend.services.settings import get_setting

from factories import ADMIN_KEY


def test_passphrase_is_stored_hashed(db_session):
    admin_gate.set_passphrase(db_session, "scoop123")
    db_session.commit()

    stored = get_setting(db_session, admin_gate.PASSPHRASE_KEY)
    assert "scoop123" not in stored
    assert stored.startswith("pbkdf2:sha256:1000$")
    admin_gate.verify(db_session, "scoop123")


def test_same_passphrase_gets_a_fresh_salt(db_session):
    admin_gate.set_passphrase(db_session, "scoop123")
    first = get_setting(db_session, admin_gate.PASSPHRASE_KEY)
    admin_gate.set_passphrase(db_session, "scoop123")

    assert get_setting(db_session, admin_gate.PASSPHRASE_KEY) != first
    admin_gate.verify(db_session, "scoop123")


def test_not_configured_then_wrong_then_right(db_session):
    with pytest.raises(AdminNotConfigured):
        admin_gate.verify(db_session, "anything")

    admin_gate.set_passphrase(db_session, "scoop123")
    with pytest.raises(AdminRejected):
        admin_gate.verify(db_session, "scoop124")
    with pytest.raises(AdminRejected):
        admin_gate.verify(db_session, None)

    admin_gate.verify(db_session, "scoop123")
    assert get_setting(db_session, admin_gate.LOCKOUT_KEY)["failures"] == 0


def test_lockout_after_repeated_failures(db_session):
    admin_gate.set_passphrase(db_session, "scoop123")

    for _ in range(3):
        with pytest.raises(AdminRejected):
            admin_gate.verify(db_session, "nope", max_failures=3, lockout_minutes=15)

    # even the right passphrase is refused while locked
    with pytest.raises(AdminLocked):
        admin_gate.verify(db_session, "scoop123", max_failures=3, lockout_minutes=15)


def test_change_passphrase_rules(db_session):
    admin_gate.set_passphrase(db_session, "scoop123")

    with pytest.raises(InvalidInput, match="do not match"):
        admin_gate.change_passphrase(db_session, current="scoop123", new="gelato", confirm="gelatO")
    with pytest.raises(InvalidInput, match="at least 4"):
        admin_gate.change_passphrase(db_session, current="scoop123", new="abc", confirm="abc")
    with pytest.raises(AdminRejected):
        admin_gate.change_passphrase(db_session, current="wrong", new="gelato", confirm="gelato")

    admin_gate.change_passphrase(db_session, current="scoop123", new="gelato", confirm="gelato")
    admin_gate.verify(db_session, "gelato")


# ---------- API ----------
def test_api_verify_status_codes(client, db_session):
    assert client.get("/v1/admin/status").json() == {"configured": False}
    assert client.post("/v1/admin/verify", headers={"X-Admin-Key": "x"}).status_code == 403

    admin_gate.set_passphrase(db_session, ADMIN_KEY)
    db_session.commit()

    assert client.post("/v1/admin/verify", headers={"X-Admin-Key": "x"}).status_code == 401
    ok = client.post("/v1/admin/verify", headers={"X-Admin-Key": ADMIN_KEY})
    assert ok.status_code == 200
    assert ok.json() == {"ok": True}


def test_api_failures_are_counted_across_requests(client, admin_headers):
    # default limit is 5 attempts
    for _ in range(5):
        assert client.post("/v1/admin/verify", headers={"X-Admin-Key": "bad"}).status_code == 401

    locked = client.post("/v1/admin/verify", headers=admin_headers)
    assert locked.status_code == 423


def test_api_change_passphrase(client, admin_headers):
    r = client.put(
        "/v1/admin/passphrase",
        json={"current": ADMIN_KEY, "new": "ab", "confirm": "ab"},
    )
    assert r.status_code == 400

    r = client.put(
        "/v1/admin/passphrase",
        json={"current": ADMIN_KEY, "new": "new-secret", "confirm": "new-secret"},
    )
    assert r.status_code == 200

    assert client.post("/v1/admin/verify", headers=admin_headers).status_code == 401
    assert client.post("/v1/admin/verify", headers={"X-Admin-Key": "new-secret"}).status_code == 200
