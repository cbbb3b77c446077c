from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from hunting_buddy.app.core.auth import (
    AuthUser,
    authenticate_user,
    authorize_permissions,
    get_request_cookies,
)
from hunting_buddy.app.core.errors import (
    UnauthenticatedError,
    UnauthorizedError,
    register_error_handlers,
)
from hunting_buddy.app.core.security import TOKEN_COOKIE_NAME, create_access_token
from tests.conftest import USER_ID, make_settings


@pytest.fixture
def settings():
    return make_settings()


def make_request(settings, cookies=None, parsed_cookies=None):
    """Build a mock request carrying the given cookies."""
    request = MagicMock()
    request.url.path = "/api/v1/jobs"
    request.app.state.settings = settings
    request.cookies = cookies or {}
    request.state = SimpleNamespace()
    if parsed_cookies is not None:
        request.state.cookies = parsed_cookies
    return request


# --- get_request_cookies ---


def test_get_request_cookies_prefers_parsed_cookies(settings):
    request = make_request(settings, cookies={"token": "raw"}, parsed_cookies={"token": "parsed"})

    assert get_request_cookies(request) == {"token": "parsed"}


def test_get_request_cookies_falls_back_to_request(settings):
    request = make_request(settings, cookies={"token": "raw"})

    assert get_request_cookies(request) == {"token": "raw"}


# --- authenticate_user ---


def test_authenticate_user_success(settings):
    token = create_access_token({"userId": USER_ID, "role": "user"}, settings)
    request = make_request(settings, parsed_cookies={TOKEN_COOKIE_NAME: token})

    user = authenticate_user(request)

    assert user == AuthUser(user_id=USER_ID, role="user")
    assert request.state.user is user


def test_authenticate_user_defaults_role(settings):
    token = create_access_token({"userId": USER_ID}, settings)
    request = make_request(settings, parsed_cookies={TOKEN_COOKIE_NAME: token})

    assert authenticate_user(request).role == "user"


def test_authenticate_user_without_cookie(settings):
    request = make_request(settings, parsed_cookies={})

    with pytest.raises(UnauthenticatedError):
        authenticate_user(request)

    assert not hasattr(request.state, "user")


def test_authenticate_user_with_empty_cookie(settings):
    request = make_request(settings, parsed_cookies={TOKEN_COOKIE_NAME: ""})

    with pytest.raises(UnauthenticatedError):
        authenticate_user(request)


def test_authenticate_user_with_logout_marker(settings):
    """Test that the value written on logout is not accepted as a credential."""
    request = make_request(settings, parsed_cookies={TOKEN_COOKIE_NAME: "logout"})

    with pytest.raises(UnauthenticatedError):
        authenticate_user(request)


# --- authorize_permissions ---


def create_permissions_test_app(settings) -> FastAPI:
    app = FastAPI()
    app.state.settings = settings
    register_error_handlers(app)

    @app.get("/admin-only")
    async def admin_only(user: AuthUser = Depends(authorize_permissions("admin"))):
        return {"userId": user.user_id}

    return app


def test_authorize_permissions_admits_listed_role(settings):
    client = TestClient(create_permissions_test_app(settings))
    client.cookies.set(
        TOKEN_COOKIE_NAME,
        create_access_token({"userId": USER_ID, "role": "admin"}, settings),
    )

    response = client.get("/admin-only")

    assert response.status_code == 200
    assert response.json() == {"userId": USER_ID}


def test_authorize_permissions_rejects_other_roles(settings):
    client = TestClient(create_permissions_test_app(settings))
    client.cookies.set(
        TOKEN_COOKIE_NAME,
        create_access_token({"userId": USER_ID, "role": "user"}, settings),
    )

    response = client.get("/admin-only")

    assert response.status_code == 403
    assert response.json() == {"msg": "unauthorized to access this route"}


def test_authorize_permissions_requires_authentication(settings):
    client = TestClient(create_permissions_test_app(settings))

    response = client.get("/admin-only")

    assert response.status_code == 401


def test_check_permissions_direct_call():
    check_permissions = authorize_permissions("admin")

    with pytest.raises(UnauthorizedError):
        check_permissions(AuthUser(user_id=USER_ID, role="user"))

    admin = AuthUser(user_id=USER_ID, role="admin")
    assert check_permissions(admin) is admin
