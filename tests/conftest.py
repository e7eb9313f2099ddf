import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.security.guards import reset_rate_limits
from app.security.session import ACCESS_COOKIE, REFRESH_COOKIE
from app.services import auth_service

from tests.helpers import make_token


@pytest.fixture(autouse=True)
def _reset_rate_limits():
    reset_rate_limits()
    yield
    reset_rate_limits()


@pytest.fixture(name="web_client")
def web_client_fixture():
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="signed_in_client")
def signed_in_client_fixture(web_client: TestClient, monkeypatch: pytest.MonkeyPatch):
    user = {"id": "user-1", "email": "guest@littlelemon.com"}

    async def fake_get_user(access_token: str):
        return user if access_token else None

    monkeypatch.setattr(auth_service, "get_user", fake_get_user)
    web_client.cookies.set(ACCESS_COOKIE, make_token())
    web_client.cookies.set(REFRESH_COOKIE, "refresh-1")
    web_client.user = user  # type: ignore[attr-defined]
    return web_client
