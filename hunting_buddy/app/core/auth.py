import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Request

from hunting_buddy.app.core.errors import UnauthenticatedError, UnauthorizedError
from hunting_buddy.app.core.security import TOKEN_COOKIE_NAME, decode_access_token

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthUser:
    """Identity attached to a request that passed the authentication gate."""

    user_id: str
    role: str


def get_request_cookies(request: Request) -> dict[str, str]:
    """Return the cookies parsed by the cookie-parser stage.

    Falls back to Starlette's own parsing when the stage did not run, which is
    the case for routers mounted on a bare test application.
    """
    cookies = getattr(request.state, "cookies", None)
    if cookies is None:
        cookies = request.cookies
    return cookies


def authenticate_user(request: Request) -> AuthUser:
    """Authentication gate for the protected router groups.

    Args:
        request (Request): The incoming request; the credential is the `token` cookie.

    Returns:
        AuthUser: The authenticated identity, also attached to `request.state.user`.

    Raises:
        UnauthenticatedError: If the cookie is missing or the token is invalid or expired.

    Notes:
        1. Read the `token` cookie from the parsed cookies.
        2. If no token is present, raise UnauthenticatedError.
        3. Decode the JWT with the secret key and algorithm from the application settings;
           any decoding failure raises UnauthenticatedError.
        4. Attach the identity to `request.state.user` and return it.
        5. No database access; persisted state is never modified.

    """
    token = get_request_cookies(request).get(TOKEN_COOKIE_NAME)
    if not token:
        _msg = f"No credential on request to {request.url.path}"
        log.debug(_msg)
        raise UnauthenticatedError()

    settings = request.app.state.settings
    payload = decode_access_token(token, settings)

    user = AuthUser(user_id=str(payload["userId"]), role=payload.get("role", "user"))
    request.state.user = user
    _msg = f"Authenticated user {user.user_id} for {request.url.path}"
    log.debug(_msg)
    return user


def authorize_permissions(*roles: str) -> Callable[..., AuthUser]:
    """Build a dependency that only admits users holding one of `roles`.

    Args:
        *roles (str): Role names allowed through, e.g. "admin".

    Returns:
        Callable[..., AuthUser]: A FastAPI dependency.

    Notes:
        1. The returned dependency resolves `authenticate_user` first; FastAPI caches
           that result, so the gate runs once per request.
        2. If the user's role is not listed, a warning is logged and
           UnauthorizedError (403) is raised.

    """

    def check_permissions(user: Annotated[AuthUser, Depends(authenticate_user)]) -> AuthUser:
        if user.role not in roles:
            _msg = f"User {user.user_id} with role {user.role} denied; requires {roles}"
            log.warning(_msg)
            raise UnauthorizedError("unauthorized to access this route")
        return user

    return check_permissions
