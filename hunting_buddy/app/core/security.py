import logging
from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt
from jose import JWTError, jwt

from hunting_buddy.app.core.config import Settings
from hunting_buddy.app.core.errors import UnauthenticatedError

log = logging.getLogger(__name__)

TOKEN_COOKIE_NAME = "token"


def create_access_token(
    data: dict,
    settings: Settings,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a JWT access token.

    Args:
        data (dict): The claims to encode in the token (`userId`, `role`).
        settings (Settings): The application settings object.
        expires_delta (timedelta | None): Custom expiration time for the token. If None,
            `settings.jwt_expires_in_minutes` is used.

    Returns:
        str: The encoded JWT token as a string.

    Notes:
        1. Copy the data to avoid modifying the original.
        2. Set expiration time based on expires_delta or the configured default.
        3. Encode the data with the secret key and algorithm.
        4. No database or network access in this function.

    """
    _msg = "Creating access token"
    log.debug(_msg)
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(UTC) + expires_delta
    else:
        expire = datetime.now(UTC) + timedelta(
            minutes=settings.jwt_expires_in_minutes,
        )
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(
        to_encode,
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )
    return encoded_jwt


def decode_access_token(token: str, settings: Settings) -> dict[str, Any]:
    """Validate a JWT access token and return its claims.

    Args:
        token (str): The encoded token taken from the request cookie.
        settings (Settings): The application settings object.

    Returns:
        dict[str, Any]: The decoded claims.

    Raises:
        UnauthenticatedError: If the signature, expiry or claims are invalid.

    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as e:
        _msg = f"Token decoding failed: {e}"
        log.debug(_msg)
        raise UnauthenticatedError() from e

    if not payload.get("userId"):
        raise UnauthenticatedError()
    return payload


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a login attempt against the stored bcrypt hash.

    Args:
        plain_password (str): The password submitted to the login route.
        hashed_password (str): The `password` field of the stored user document.

    Returns:
        bool: Whether the password matches.

    Notes:
        1. bcrypt is CPU-bound; the login route calls this in the threadpool.

    """
    return bcrypt.checkpw(
        plain_password.encode("utf-8"),
        hashed_password.encode("utf-8"),
    )


def get_password_hash(password: str) -> str:
    """Hash a password for storage on a new user document.

    A fresh salt is generated for every call, so equal passwords never share a hash.
    """
    _msg = "Hashing password for a new account"
    log.debug(_msg)
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt())
    return hashed.decode("utf-8")
