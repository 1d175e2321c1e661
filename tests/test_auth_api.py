from datetime import timedelta

from flask_jwt_extended import create_access_token

from models import db
from models.audit_log import AuditLog
from models.revoked_token import RevokedToken
from models.user import User

from conftest import PASSWORD


def _login(client, email, password=PASSWORD):
    return client.post("/auth/login", json={"email": email, "password": password})


def test_health_and_security_headers(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.get_json() == {"status": "ok"}
    assert r.headers["X-Content-Type-Options"] == "nosniff"
    assert r.headers["X-Frame-Options"] == "DENY"


def test_register_creates_customer(client):
    r = client.post("/auth/register", json={
        "name": "Ana Guest",
        "email": "  Ana@Example.com ",
        "password": "Secret123",
        "confirm_password": "Secret123",
    })
    assert r.status_code == 201
    body = r.get_json()
    assert body["email"] == "ana@example.com"
    assert body["role"] == "customer"
    assert "password_hash" not in body


def test_register_rejects_duplicates_and_bad_input(client, customer):
    r = client.post("/auth/register", json={
        "name": "Again",
        "email": "GUEST@example.com",
        "password": "Secret123",
        "confirm_password": "Secret123",
    })
    assert r.status_code == 409
    assert r.get_json() == {"error": "Email already registered"}

    r = client.post("/auth/register", json={
        "name": "A",
        "email": "not-an-email",
        "password": "short",
        "confirm_password": "other",
    })
    assert r.status_code == 400
    details = r.get_json()["details"]
    assert "Invalid email" in details
    assert "Passwords do not match" in details
    assert "Password must be at least 8 characters" in details


def test_wrong_password(client, customer):
    r = _login(client, customer.email, "Wrong-pass1")
    assert r.status_code == 401
    assert r.get_json() == {"error": "Invalid credentials"}
    assert AuditLog.query.filter_by(action="LOGIN_FAIL").count() == 1


def test_unknown_email_looks_like_wrong_password(client):
    r = _login(client, "nobody@example.com")
    assert r.status_code == 401
    assert r.get_json() == {"error": "Invalid credentials"}


def test_login_requires_both_fields(client):
    assert client.post("/auth/login", json={"email": "guest@example.com"}).status_code == 400


def test_disabled_account(client, make_user):
    user = make_user(is_active=False)
    r = _login(client, user.email)
    assert r.status_code == 403
    assert r.get_json() == {"error": "Account disabled"}


def test_lockout_after_repeated_failures(client, customer):
    # TestConfig locks on the third failure
    assert _login(client, customer.email, "Wrong-pass1").status_code == 401
    assert _login(client, customer.email, "Wrong-pass1").status_code == 401

    r = _login(client, customer.email, "Wrong-pass1")
    assert r.status_code == 429
    assert r.get_json()["retry_after_seconds"] > 0

    # still locked even with the right password
    assert _login(client, customer.email).status_code == 429


def test_successful_login_resets_failures(client, customer):
    _login(client, customer.email, "Wrong-pass1")
    _login(client, customer.email, "Wrong-pass1")
    assert _login(client, customer.email).status_code == 200
    assert _login(client, customer.email, "Wrong-pass1").status_code == 401


def test_cookie_session_with_csrf(client, customer):
    r = _login(client, "GUEST@example.com")
    assert r.status_code == 200
    body = r.get_json()
    assert body["user"]["email"] == "guest@example.com"
    assert body["token"]

    assert client.get_cookie("token") is not None
    csrf = client.get_cookie("csrf_token").value

    r = client.get("/auth/me")
    assert r.status_code == 200
    assert r.get_json()["id"] == customer.id

    # cookie-authenticated writes must echo the CSRF cookie
    r = client.post("/auth/logout")
    assert r.status_code == 403
    assert r.get_json() == {"error": "CSRF validation failed"}

    r = client.post("/auth/logout", headers={"X-CSRF-Token": csrf})
    assert r.status_code == 200
    assert RevokedToken.query.count() == 1

    assert client.get("/auth/me").status_code == 401

    # the old token is dead even when replayed as a bearer token
    r = client.get("/auth/me", headers={"Authorization": f"Bearer {body['token']}"})
    assert r.status_code == 401
    assert r.get_json() == {"error": "Invalid or expired token"}


def test_bearer_requests_skip_csrf(client, room, customer, auth_headers):
    r = client.post("/bookings", headers=auth_headers(customer), json={
        "room_id": room.id, "check_in": "2024-06-01", "check_out": "2024-06-02",
    })
    assert r.status_code == 201


def test_garbage_and_expired_tokens(client, customer):
    r = client.get("/auth/me", headers={"Authorization": "Bearer not.a.token"})
    assert r.status_code == 401
    assert r.get_json() == {"error": "Invalid or expired token"}

    expired = create_access_token(identity=str(customer.id), expires_delta=timedelta(seconds=-1))
    r = client.get("/auth/me", headers={"Authorization": f"Bearer {expired}"})
    assert r.status_code == 401

    assert client.get("/auth/me").status_code == 401


def test_role_is_read_from_database_not_token(client, admin, auth_headers):
    headers = auth_headers(admin)
    assert client.get("/admin/stats", headers=headers).status_code == 200

    admin.role = "customer"
    db.session.commit()
    assert client.get("/admin/stats", headers=headers).status_code == 403


def test_disabled_user_token_stops_working(client, customer, auth_headers):
    headers = auth_headers(customer)
    db.session.get(User, customer.id).is_active = False
    db.session.commit()
    assert client.get("/auth/me", headers=headers).status_code == 401


def test_update_own_name(client, customer, auth_headers):
    r = client.put("/auth/me", json={"name": "New Name"}, headers=auth_headers(customer))
    assert r.status_code == 200
    assert r.get_json()["name"] == "New Name"
    assert AuditLog.query.filter_by(action="PROFILE_UPDATE").count() == 1


def test_change_own_password(client, customer, auth_headers):
    headers = auth_headers(customer)

    r = client.put("/auth/me", json={
        "current_password": "Wrong-pass1", "new_password": "Another456", "confirm_password": "Another456",
    }, headers=headers)
    assert r.status_code == 401

    r = client.put("/auth/me", json={
        "current_password": PASSWORD, "new_password": "weak", "confirm_password": "weak",
    }, headers=headers)
    assert r.status_code == 400

    r = client.put("/auth/me", json={
        "current_password": PASSWORD, "new_password": "Another456", "confirm_password": "Another456",
    }, headers=headers)
    assert r.status_code == 200

    assert _login(client, customer.email).status_code == 401
    assert _login(client, customer.email, "Another456").status_code == 200


def test_profile_update_needs_fields_and_login(client, customer, auth_headers):
    assert client.put("/auth/me", json={}, headers=auth_headers(customer)).status_code == 400
    assert client.put("/auth/me", json={"name": "X Y"}).status_code == 401
