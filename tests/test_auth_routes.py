from urllib.parse import parse_qs, urlparse

import pytest
from fastapi.testclient import TestClient

from app.security.session import ACCESS_COOKIE, CODE_VERIFIER_COOKIE, REFRESH_COOKIE
from app.services import auth_service
from app.services.auth_service import AuthSession, InvalidCredentials

from tests.helpers import make_token

SESSION = AuthSession(
    access_token="access-1",
    refresh_token="refresh-1",
    token_type="bearer",
    expires_in=3600,
    expires_at=1900000000,
    user={"id": "user-1"},
)


def test_login_page_renders_localized_form(web_client: TestClient):
    response = web_client.get("/es/iniciar-sesion?next=/es/reservaciones")

    assert response.status_code == 200
    assert 'action="/es/iniciar-sesion"' in response.text
    assert 'name="next" value="/es/reservaciones"' in response.text


def test_login_validation_errors_are_rendered(web_client: TestClient):
    response = web_client.post("/en/login", data={"email": "bad", "password": ""})

    assert response.status_code == 400
    assert "Please correct the errors below." in response.text
    assert "Please enter a valid email address." in response.text
    assert "Password is required." in response.text


def test_login_backend_rejection_shows_backend_message(web_client: TestClient, monkeypatch: pytest.MonkeyPatch):
    async def reject(email, password):
        raise InvalidCredentials("Invalid login credentials")

    monkeypatch.setattr(auth_service, "sign_in_with_password", reject)

    response = web_client.post("/en/login", data={"email": "guest@littlelemon.com", "password": "wrong"})

    assert response.status_code == 400
    assert "Invalid login credentials" in response.text


def test_login_success_sets_cookies_and_follows_safe_next(web_client: TestClient, monkeypatch: pytest.MonkeyPatch):
    async def accept(email, password):
        return SESSION

    monkeypatch.setattr(auth_service, "sign_in_with_password", accept)

    response = web_client.post(
        "/es/iniciar-sesion",
        data={"email": "guest@littlelemon.com", "password": "secret1", "next": "/es/reservaciones"},
        follow_redirects=False,
    )

    assert response.status_code == 303
    assert response.headers["location"] == "/es/reservaciones"
    assert response.cookies.get(ACCESS_COOKIE) == "access-1"
    assert response.cookies.get(REFRESH_COOKIE) == "refresh-1"


def test_login_ignores_external_next(web_client: TestClient, monkeypatch: pytest.MonkeyPatch):
    async def accept(email, password):
        return SESSION

    monkeypatch.setattr(auth_service, "sign_in_with_password", accept)

    response = web_client.post(
        "/en/login",
        data={"email": "guest@littlelemon.com", "password": "secret1", "next": "//evil.test"},
        follow_redirects=False,
    )

    assert response.headers["location"] == "/en"


def test_login_is_rate_limited(web_client: TestClient):
    for _ in range(5):
        web_client.post("/en/login", data={"email": "bad", "password": ""})

    response = web_client.post("/en/login", data={"email": "bad", "password": ""})

    assert response.status_code == 429
    assert "Too many attempts" in response.text


def test_cross_origin_post_is_refused(web_client: TestClient):
    response = web_client.post(
        "/en/login",
        data={"email": "guest@littlelemon.com", "password": "secret1"},
        headers={"origin": "https://evil.test"},
    )

    assert response.status_code == 403


def test_signup_success_stores_code_verifier(web_client: TestClient, monkeypatch: pytest.MonkeyPatch):
    captured = {}

    async def fake_sign_up(email, password, *, email_redirect_to, code_challenge=None):
        captured.update(email=email, redirect=email_redirect_to, challenge=code_challenge)
        return auth_service.SignUpResult(user={"id": "user-2"})

    monkeypatch.setattr(auth_service, "sign_up", fake_sign_up)

    response = web_client.post(
        "/es/signup",
        data={"email": "new@littlelemon.com", "password": "secret1", "confirmPassword": "secret1"},
    )

    assert response.status_code == 200
    assert "Revisa tu correo" in response.text
    assert captured["redirect"].endswith("/es/auth/callback")
    assert captured["challenge"]
    assert response.cookies.get(CODE_VERIFIER_COOKIE)


def test_signup_password_mismatch(web_client: TestClient):
    response = web_client.post(
        "/en/signup",
        data={"email": "new@littlelemon.com", "password": "secret1", "confirmPassword": "secret2"},
    )

    assert response.status_code == 400
    assert "Passwords do not match." in response.text


def test_logout_clears_session_and_redirects_to_login(signed_in_client: TestClient, monkeypatch: pytest.MonkeyPatch):
    revoked = []

    async def fake_sign_out(access_token):
        revoked.append(access_token)

    monkeypatch.setattr(auth_service, "sign_out", fake_sign_out)

    response = signed_in_client.post("/es/logout", follow_redirects=False)

    assert response.status_code == 303
    assert response.headers["location"] == "/es/iniciar-sesion"
    assert len(revoked) == 1
    cleared = [header for header in response.headers.get_list("set-cookie") if header.startswith(ACCESS_COOKIE)]
    assert cleared and "Max-Age=0" in cleared[-1]


def _session_cookie_headers(response):
    return [
        header
        for header in response.headers.get_list("set-cookie")
        if header.startswith((ACCESS_COOKIE, REFRESH_COOKIE))
    ]


@pytest.fixture(name="refreshing_client")
def refreshing_client_fixture(web_client: TestClient, monkeypatch: pytest.MonkeyPatch):
    async def fake_refresh(refresh_token: str):
        assert refresh_token == "old-refresh"
        return AuthSession(
            access_token=make_token(sub="user-old"),
            refresh_token="old-refresh-2",
            token_type="bearer",
            expires_in=3600,
            expires_at=0,
            user={"id": "user-old"},
        )

    monkeypatch.setattr(auth_service, "refresh_session", fake_refresh)
    web_client.cookies.set(ACCESS_COOKIE, make_token(exp_offset=-60, sub="user-old"))
    web_client.cookies.set(REFRESH_COOKIE, "old-refresh")
    return web_client


def test_logout_after_refresh_does_not_restore_session(
    refreshing_client: TestClient, monkeypatch: pytest.MonkeyPatch
):
    async def fake_sign_out(access_token):
        return None

    monkeypatch.setattr(auth_service, "sign_out", fake_sign_out)

    response = refreshing_client.post("/en/logout", follow_redirects=False)

    assert response.status_code == 303
    headers = _session_cookie_headers(response)
    assert len(headers) == 2
    assert all("Max-Age=0" in header for header in headers)
    assert not any("old-refresh-2" in header for header in headers)


def test_login_after_refresh_keeps_new_account_cookies(
    refreshing_client: TestClient, monkeypatch: pytest.MonkeyPatch
):
    async def accept(email, password):
        return SESSION

    monkeypatch.setattr(auth_service, "sign_in_with_password", accept)

    response = refreshing_client.post(
        "/en/login",
        data={"email": "other@littlelemon.com", "password": "secret1"},
        follow_redirects=False,
    )

    assert response.status_code == 303
    refresh_headers = [
        header for header in response.headers.get_list("set-cookie") if header.startswith(REFRESH_COOKIE)
    ]
    assert len(refresh_headers) == 1
    assert refresh_headers[0].startswith(f"{REFRESH_COOKIE}=refresh-1;")
    assert response.cookies.get(ACCESS_COOKIE) == "access-1"


def test_callback_after_refresh_keeps_verified_session(
    refreshing_client: TestClient, monkeypatch: pytest.MonkeyPatch
):
    async def fake_verify(token_hash, otp_type):
        return SESSION

    monkeypatch.setattr(auth_service, "verify_otp", fake_verify)

    response = refreshing_client.get("/en/auth/callback?token_hash=hash-1&type=signup", follow_redirects=False)

    assert response.status_code == 307
    assert response.cookies.get(ACCESS_COOKIE) == "access-1"
    assert response.cookies.get(REFRESH_COOKIE) == "refresh-1"



def test_callback_verifies_email_and_redirects_to_next(web_client: TestClient, monkeypatch: pytest.MonkeyPatch):
    async def fake_verify(token_hash, otp_type):
        assert (token_hash, otp_type) == ("hash-1", "signup")
        return SESSION

    monkeypatch.setattr(auth_service, "verify_otp", fake_verify)

    response = web_client.get(
        "/en/auth/callback?token_hash=hash-1&type=signup&next=/en/reservations", follow_redirects=False
    )

    assert response.status_code == 307
    assert response.headers["location"] == "/en/reservations"
    assert response.cookies.get(ACCESS_COOKIE) == "access-1"


def test_callback_code_without_verifier_fails(web_client: TestClient):
    response = web_client.get("/es/auth/callback?code=abc", follow_redirects=False)

    location = urlparse(response.headers["location"])
    assert location.path == "/es/auth/error"
    query = parse_qs(location.query)
    assert query["error"] == ["OAuthFailed"]
    assert query["message"]


def test_unprefixed_callback_uses_locale_query(web_client: TestClient):
    response = web_client.get("/auth/callback?locale=es", follow_redirects=False)

    location = urlparse(response.headers["location"])
    assert location.path == "/es/auth/error"
    assert parse_qs(location.query)["error"] == ["MissingParameters"]


@pytest.mark.parametrize(
    "query, expected",
    [
        ("?message=Custom%20message", "Custom message"),
        ("?error=VerificationFailed", "The verification link is invalid or has expired."),
        ("?error=NotAKey", "An error occurred during authentication."),
        ("", "An error occurred during authentication."),
    ],
)
def test_auth_error_page_message(web_client: TestClient, query: str, expected: str):
    response = web_client.get(f"/en/auth/error{query}")

    assert response.status_code == 200
    assert expected in response.text
