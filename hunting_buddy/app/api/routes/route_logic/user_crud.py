import logging
from datetime import UTC, datetime
from typing import Any

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.asynchronous.database import AsyncDatabase
from starlette.concurrency import run_in_threadpool

from hunting_buddy.app.core.security import get_password_hash
from hunting_buddy.app.database.database import USERS_COLLECTION
from hunting_buddy.app.database.documents import serialize_document
from hunting_buddy.app.schemas.user import RegisterRequest, Role

log = logging.getLogger(__name__)


def user_to_json(document: dict[str, Any]) -> dict[str, Any]:
    """Serialize a user document without its password hash."""
    user = serialize_document(document)
    user.pop("password", None)
    return user


async def get_user_by_email(db: AsyncDatabase, email: str) -> dict[str, Any] | None:
    """Retrieve a raw user document by email address.

    Args:
        db (AsyncDatabase): The database handle.
        email (str): The email address to search for, compared case-insensitively.

    Returns:
        dict[str, Any] | None: The stored document including the password hash, or None.

    Notes:
        1. Emails are stored lower-cased, so the lookup lower-cases its input.
        2. Database access: reads from the users collection.

    """
    _msg = f"Querying database for email: {email}"
    log.debug(_msg)
    return await db[USERS_COLLECTION].find_one({"email": email.lower()})


async def get_user_by_id(db: AsyncDatabase, user_id: str) -> dict[str, Any] | None:
    return await db[USERS_COLLECTION].find_one({"_id": ObjectId(user_id)})


async def count_users(db: AsyncDatabase) -> int:
    return await db[USERS_COLLECTION].count_documents({})


async def create_user(db: AsyncDatabase, user_data: RegisterRequest) -> dict[str, Any]:
    """Create a new user with a hashed password.

    Args:
        db (AsyncDatabase): The database handle.
        user_data (RegisterRequest): The validated registration fields.

    Returns:
        dict[str, Any]: The created user, serialized, without the password.

    Notes:
        1. The very first account becomes an admin; all later ones are users.
        2. Hash the password with bcrypt in the threadpool.
        3. Database access: reads and writes the users collection.

    """
    role = Role.ADMIN if await count_users(db) == 0 else Role.USER

    _msg = f"Hashing password for user: {user_data.email}"
    log.debug(_msg)
    hashed_password = await run_in_threadpool(get_password_hash, user_data.password)

    now = datetime.now(UTC)
    document = user_data.model_dump(mode="json", by_alias=True, exclude={"password"})
    document.update(
        {
            "email": user_data.email.lower(),
            "password": hashed_password,
            "role": role.value,
            "createdAt": now,
            "updatedAt": now,
        },
    )
    result = await db[USERS_COLLECTION].insert_one(document)
    document["_id"] = result.inserted_id

    _msg = f"Created user {result.inserted_id} with role {role.value}"
    log.info(_msg)
    return user_to_json(document)


async def update_user(
    db: AsyncDatabase,
    user_id: str,
    changes: dict[str, Any],
) -> dict[str, Any] | None:
    """Update a user's profile fields.

    Args:
        db (AsyncDatabase): The database handle.
        user_id (str): The id of the user to update.
        changes (dict[str, Any]): Stored field names mapped to their new values.

    Returns:
        dict[str, Any] | None: The document as it was before the update, so the caller
            can clean up a replaced avatar, or None if the user does not exist.

    Notes:
        1. The password and role can never be changed through this function.
        2. Database access: writes to the users collection.

    """
    update = {k: v for k, v in changes.items() if k not in ("password", "role")}
    if "email" in update:
        update["email"] = update["email"].lower()
    update["updatedAt"] = datetime.now(UTC)
    return await db[USERS_COLLECTION].find_one_and_update(
        {"_id": ObjectId(user_id)},
        {"$set": update},
        return_document=ReturnDocument.BEFORE,
    )
