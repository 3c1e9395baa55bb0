from datetime import timedelta

from sqlalchemy import update
from sqlalchemy.future import select

from agency_api.config import settings
from agency_api.models.admin import AdminSession
from agency_api.services.session import encode_session_cookie
from agency_api.utils.dates import utcnow

from conftest import SUPER_EMAIL, SUPER_PASSWORD, login, run_db


def session_rows():
    async def work(session):
        result = await session.execute(select(AdminSession))
        return result.scalars().all()
    return run_db(work)


def test_valid_login_sets_http_only_cookie(client):
    response = login(client, email="  Owner@Agency.TEST ", password=SUPER_PASSWORD)

    assert response.status_code == 200
    assert response.json()["email"] == SUPER_EMAIL
    set_cookie = response.headers["set-cookie"]
    assert set_cookie.startswith(f"{settings.SESSION_COOKIE_NAME}=")
    assert "HttpOnly" in set_cookie
    assert "samesite=lax" in set_cookie.lower()
    assert "Max-Age=604800" in set_cookie
    assert "Secure" not in set_cookie
    assert len(session_rows()) == 1


def test_remember_me_extends_cookie_lifetime(client):
    response = login(client, remember_me=True)
    assert "Max-Age=2592000" in response.headers["set-cookie"]
    assert session_rows()[0].remember is True


def test_invalid_password_is_rejected_without_cookie(client):
    response = login(client, password="wrong-password")

    assert response.status_code == 401
    assert response.json()["detail"] == "Ongeldige inloggegevens. Controleer je e-mail en wachtwoord."
    assert "set-cookie" not in response.headers
    assert session_rows() == []


def test_unknown_email_gets_same_message(client):
    response = login(client, email="nobody@agency.test")
    assert response.status_code == 401
    assert response.json()["detail"] == "Ongeldige inloggegevens. Controleer je e-mail en wachtwoord."


def test_login_validation_error_is_400(client):
    response = client.post("/api/auth/login", json={"email": "", "password": "x"})
    assert response.status_code == 400
    body = response.json()
    assert body["detail"] == "Ongeldige invoer"
    assert body["errors"][0]["field"] == "email"


def test_eleventh_login_within_window_is_rate_limited(client):
    for _ in range(10):
        assert login(client, password="wrong-password").status_code == 401

    response = login(client)
    assert response.status_code == 429
    assert response.json()["detail"] == "Te veel aanvragen. Probeer het later opnieuw."
    assert response.headers["X-RateLimit-Remaining"] == "0"
    assert int(response.headers["Retry-After"]) > 0


def test_login_quota_is_per_address(client):
    for _ in range(10):
        client.post(
            "/api/auth/login",
            json={"email": SUPER_EMAIL, "password": "wrong-password"},
            headers={"X-Forwarded-For": "203.0.113.9"},
        )
    response = client.post(
        "/api/auth/login",
        json={"email": SUPER_EMAIL, "password": SUPER_PASSWORD},
        headers={"X-Forwarded-For": "203.0.113.10"},
    )
    assert response.status_code == 200


def test_session_endpoint(client):
    assert client.get("/api/auth/session").status_code == 401
    assert client.get("/api/auth/session").json() == {"ok": False}

    login(client)
    body = client.get("/api/auth/session").json()
    assert body["ok"] is True
    assert body["email"] == SUPER_EMAIL
    assert body["role"] == "super_admin"
    assert body["permissions"] == {"leads": True, "customers": True, "analytics": True, "manage_users": True}


def test_logout_revokes_server_side_session(client):
    login(client)
    cookie = client.cookies.get(settings.SESSION_COOKIE_NAME)

    assert client.post("/api/auth/logout").status_code == 200
    assert session_rows() == []

    client.cookies.clear()
    client.cookies.set(settings.SESSION_COOKIE_NAME, cookie)
    assert client.get("/api/auth/session").status_code == 401


def test_logout_without_session_is_ok(client):
    assert client.post("/api/auth/logout").json() == {"success": True}


def test_forged_cookie_is_rejected(client):
    login(client)
    token = session_rows()[0].token
    forged = encode_session_cookie(SUPER_EMAIL, token, utcnow() + timedelta(days=1)) + "x"

    client.cookies.clear()
    client.cookies.set(settings.SESSION_COOKIE_NAME, forged)
    assert client.get("/api/auth/session").status_code == 401


def test_signed_cookie_for_unknown_token_is_rejected(client):
    cookie = encode_session_cookie(SUPER_EMAIL, "0" * 64, utcnow() + timedelta(days=1))
    client.cookies.set(settings.SESSION_COOKIE_NAME, cookie)
    assert client.get("/api/leads").status_code == 401


def test_expired_session_row_is_removed(client):
    login(client)

    async def expire(session):
        await session.execute(update(AdminSession).values(expires_at=utcnow() - timedelta(minutes=1)))
        await session.commit()
    run_db(expire)

    assert client.get("/api/auth/session").status_code == 401
    assert session_rows() == []


def test_test_login_disabled_by_default(client):
    assert client.post("/api/auth/test-login").status_code == 404


def test_test_login_issues_real_session(client, monkeypatch):
    monkeypatch.setattr(settings, "ENABLE_TEST_LOGIN", True)
    monkeypatch.setattr(settings, "TEST_ADMIN_EMAIL", SUPER_EMAIL)
    monkeypatch.setattr(settings, "TEST_ADMIN_PASSWORD", SUPER_PASSWORD)

    response = client.post("/api/auth/test-login")
    assert response.status_code == 200
    assert len(session_rows()) == 1
    assert client.get("/api/auth/session").json()["ok"] is True


def test_test_login_refused_in_production(client, monkeypatch):
    monkeypatch.setattr(settings, "ENABLE_TEST_LOGIN", True)
    monkeypatch.setattr(settings, "TEST_ADMIN_EMAIL", SUPER_EMAIL)
    monkeypatch.setattr(settings, "TEST_ADMIN_PASSWORD", SUPER_PASSWORD)
    monkeypatch.setattr(settings, "ENVIRONMENT", "production")

    assert client.post("/api/auth/test-login").status_code == 404
    assert session_rows() == []


def test_debug_endpoint_hidden_unless_enabled(client, monkeypatch):
    assert client.get("/api/debug/auth").status_code == 404

    monkeypatch.setattr(settings, "ENABLE_DEBUG_ENDPOINT", True)
    login(client)
    body = client.get("/api/debug/auth").json()
    assert body["cookie"] == {"present": True, "signature_valid": True, "session_valid": True}
    assert body["settings"]["AUTH_SECRET_KEY"] is True
    assert settings.AUTH_SECRET_KEY not in str(body)


def test_failed_login_logs_normalized_email(client, monkeypatch):
    warnings = []

    async def record(target="", message="", data=None, is_console=None):
        warnings.append((message, data))

    monkeypatch.setattr(client.app.state.log, "log_warning", record)
    assert login(client, "  Owner@Agency.TEST ", "wrong-password").status_code == 401
    assert ("Failed login", {"email": SUPER_EMAIL}) in warnings

    assert login(client, "  Owner@Agency.TEST ", SUPER_PASSWORD).status_code == 200
