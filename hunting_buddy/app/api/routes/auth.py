import logging
from datetime import UTC, datetime, timedelta
from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from pymongo.asynchronous.database import AsyncDatabase
from starlette.concurrency import run_in_threadpool

from hunting_buddy.app.api.dependencies import get_app_settings
from hunting_buddy.app.api.routes.route_logic import user_crud
from hunting_buddy.app.core.config import Settings
from hunting_buddy.app.core.errors import BadRequestError, UnauthenticatedError
from hunting_buddy.app.core.security import (
    TOKEN_COOKIE_NAME,
    create_access_token,
    verify_password,
)
from hunting_buddy.app.database.database import get_db
from hunting_buddy.app.schemas.user import LoginRequest, RegisterRequest

log = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    user: RegisterRequest,
    db: Annotated[AsyncDatabase, Depends(get_db)],
) -> dict[str, str]:
    """Register a new account.

    Args:
        user (RegisterRequest): Profile fields and password for the new account.
        db (AsyncDatabase): The database handle.

    Returns:
        dict[str, str]: ``{"msg": "user created"}``.

    Raises:
        BadRequestError: If the email address is already registered.

    Notes:
        1. Check whether the email already exists; if so, raise a 400 error.
        2. Create the user; the first account ever created receives the admin role.
        3. Database access: reads and writes the users collection.

    """
    _msg = f"Starting register for email: {user.email}"
    log.debug(_msg)

    if await user_crud.get_user_by_email(db, user.email) is not None:
        _msg = f"Email {user.email} already registered"
        log.debug(_msg)
        raise BadRequestError("email already exists")

    await user_crud.create_user(db, user)
    return {"msg": "user created"}


@router.post("/login")
async def login(
    credentials: LoginRequest,
    response: Response,
    db: Annotated[AsyncDatabase, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> dict[str, str]:
    """Authenticate a user and set the access token cookie.

    Args:
        credentials (LoginRequest): Email and password.
        response (Response): The outgoing response, used to set the cookie.
        db (AsyncDatabase): The database handle.
        settings (Settings): Application settings used for token creation.

    Returns:
        dict[str, str]: ``{"msg": "user logged in"}``.

    Raises:
        UnauthenticatedError: If the email is unknown or the password is wrong.

    Notes:
        1. Look the user up by email and verify the password with bcrypt in the threadpool.
        2. Issue a JWT carrying `userId` and `role`.
        3. Set it as an HttpOnly `token` cookie expiring with the token; the cookie is
           marked Secure in production.
        4. Database access: reads the users collection.

    """
    _msg = f"Starting login for email: {credentials.email}"
    log.debug(_msg)

    user = await user_crud.get_user_by_email(db, credentials.email)
    is_valid = user is not None and await run_in_threadpool(
        verify_password,
        credentials.password,
        user["password"],
    )
    if not is_valid:
        _msg = f"Authentication failed for email: {credentials.email}"
        log.debug(_msg)
        raise UnauthenticatedError("invalid credentials")

    lifetime = timedelta(minutes=settings.jwt_expires_in_minutes)
    token = create_access_token(
        data={"userId": str(user["_id"]), "role": user.get("role", "user")},
        settings=settings,
        expires_delta=lifetime,
    )
    response.set_cookie(
        key=TOKEN_COOKIE_NAME,
        value=token,
        httponly=True,
        expires=datetime.now(UTC) + lifetime,
        secure=settings.is_production,
    )
    return {"msg": "user logged in"}


@router.get("/logout")
async def logout(response: Response) -> dict[str, str]:
    """Expire the access token cookie."""
    response.set_cookie(
        key=TOKEN_COOKIE_NAME,
        value="logout",
        httponly=True,
        expires=datetime.now(UTC),
    )
    return {"msg": "user logged out!"}
