import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, File, Form, UploadFile
from pydantic import EmailStr
from pymongo.asynchronous.database import AsyncDatabase

from hunting_buddy.app.api.routes.fallback import add_not_found_route
from hunting_buddy.app.api.routes.route_logic import job_crud, user_crud
from hunting_buddy.app.core import uploads
from hunting_buddy.app.core.auth import AuthUser, authenticate_user, authorize_permissions
from hunting_buddy.app.core.errors import BadRequestError, NotFoundError
from hunting_buddy.app.database.database import get_db
from hunting_buddy.app.schemas.user import Role, UserUpdate

log = logging.getLogger(__name__)

router = APIRouter(tags=["users"])


@router.get("/current-user")
async def get_current_user(
    db: Annotated[AsyncDatabase, Depends(get_db)],
    current_user: Annotated[AuthUser, Depends(authenticate_user)],
) -> dict[str, Any]:
    """Return the authenticated user's profile without the password hash.

    Raises:
        NotFoundError: If the account behind a valid token no longer exists.

    """
    user = await user_crud.get_user_by_id(db, current_user.user_id)
    if user is None:
        raise NotFoundError(f"no user with id {current_user.user_id}")
    return {"user": user_crud.user_to_json(user)}


@router.get("/admin/app-stats")
async def get_application_stats(
    db: Annotated[AsyncDatabase, Depends(get_db)],
    admin: Annotated[AuthUser, Depends(authorize_permissions(Role.ADMIN.value))],
) -> dict[str, int]:
    """Count all users and jobs. Admin only."""
    _msg = f"Admin {admin.user_id} requested application stats"
    log.debug(_msg)
    users = await user_crud.count_users(db)
    jobs = await job_crud.count_jobs(db)
    return {"users": users, "jobs": jobs}


@router.patch("/update-user")
async def update_user(
    db: Annotated[AsyncDatabase, Depends(get_db)],
    current_user: Annotated[AuthUser, Depends(authenticate_user)],
    name: Annotated[str, Form()],
    email: Annotated[EmailStr, Form()],
    last_name: Annotated[str, Form(alias="lastName")],
    location: Annotated[str, Form()],
    avatar: Annotated[UploadFile | None, File()] = None,
) -> dict[str, str]:
    """Update the current user's profile and, optionally, their avatar.

    Args:
        db (AsyncDatabase): The database handle.
        current_user (AuthUser): The authenticated identity.
        name (str): First name.
        email (EmailStr): Email address; must not belong to another account.
        last_name (str): Last name, sent as `lastName`.
        location (str): Location.
        avatar (UploadFile | None): Optional image of at most 0.5 MB.

    Returns:
        dict[str, str]: ``{"msg": "update user"}``.

    Raises:
        BadRequestError: If the email is taken, or the avatar is not an image or too large.
        NotFoundError: If the account no longer exists.

    Notes:
        1. Validate the profile fields and check the email is not used by someone else.
        2. If an avatar is supplied, validate and upload it before touching the database.
        3. Store the profile changes, including the new avatar URL and public id.
        4. If an avatar replaced an earlier one, destroy the earlier image.
        5. Network access: Cloudinary upload and destroy. Database access: users collection.

    """
    profile = UserUpdate(name=name, email=email, last_name=last_name, location=location)

    existing = await user_crud.get_user_by_email(db, profile.email)
    if existing is not None and str(existing["_id"]) != current_user.user_id:
        raise BadRequestError("email already exists")

    changes = profile.model_dump(mode="json", by_alias=True)

    if avatar is not None and avatar.filename:
        content_type = avatar.content_type or ""
        if not content_type.startswith("image/"):
            raise BadRequestError("please provide a valid image file")
        content = await avatar.read()
        if len(content) > uploads.MAX_AVATAR_BYTES:
            raise BadRequestError("image size too large")
        image = await uploads.upload_image(content, content_type)
        changes.update({"avatar": image.url, "avatarPublicId": image.public_id})

    previous = await user_crud.update_user(db, current_user.user_id, changes)
    if previous is None:
        raise NotFoundError(f"no user with id {current_user.user_id}")

    if "avatarPublicId" in changes and previous.get("avatarPublicId"):
        await uploads.destroy_image(previous["avatarPublicId"])

    _msg = f"Updated user {current_user.user_id}"
    log.debug(_msg)
    return {"msg": "update user"}


add_not_found_route(router)
