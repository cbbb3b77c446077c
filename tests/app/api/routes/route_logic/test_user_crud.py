from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from bson import ObjectId
from pymongo import ReturnDocument

from hunting_buddy.app.api.routes.route_logic import user_crud
from hunting_buddy.app.schemas.user import RegisterRequest
from tests.conftest import USER_ID


@pytest.fixture
def users():
    """Fixture for a mock users collection."""
    collection = MagicMock()
    collection.find_one = AsyncMock()
    collection.insert_one = AsyncMock(
        return_value=MagicMock(inserted_id=ObjectId(USER_ID)),
    )
    collection.count_documents = AsyncMock(return_value=0)
    collection.find_one_and_update = AsyncMock()
    return collection


@pytest.fixture
def db(users):
    database = MagicMock()
    database.__getitem__.return_value = users
    return database


@pytest.fixture
def registration():
    return RegisterRequest(
        name="Katie",
        email="Katie@Example.com",
        password="secret123",
        lastName="Loesch",
        location="London",
    )


def test_user_to_json_strips_password():
    document = {"_id": ObjectId(USER_ID), "name": "Katie", "password": "hashed"}

    assert user_crud.user_to_json(document) == {"_id": USER_ID, "name": "Katie"}


@pytest.mark.asyncio
async def test_get_user_by_email_is_case_insensitive(db, users):
    users.find_one.return_value = {"_id": ObjectId(USER_ID)}

    result = await user_crud.get_user_by_email(db, "Katie@Example.COM")

    db.__getitem__.assert_called_with("users")
    users.find_one.assert_awaited_once_with({"email": "katie@example.com"})
    assert result == {"_id": ObjectId(USER_ID)}


@pytest.mark.asyncio
async def test_get_user_by_id(db, users):
    users.find_one.return_value = None

    assert await user_crud.get_user_by_id(db, USER_ID) is None
    users.find_one.assert_awaited_once_with({"_id": ObjectId(USER_ID)})


@pytest.mark.asyncio
async def test_first_user_becomes_admin(db, users, registration):
    users.count_documents.return_value = 0

    with patch(f"{user_crud.__name__}.get_password_hash", return_value="hashed") as mock_hash:
        result = await user_crud.create_user(db, registration)

    mock_hash.assert_called_once_with("secret123")
    stored = users.insert_one.await_args.args[0]
    assert stored["role"] == "admin"
    assert stored["password"] == "hashed"
    assert stored["email"] == "katie@example.com"
    assert stored["lastName"] == "Loesch"
    assert "password" not in result
    assert result["_id"] == USER_ID


@pytest.mark.asyncio
async def test_later_users_are_not_admin(db, users, registration):
    users.count_documents.return_value = 3

    with patch(f"{user_crud.__name__}.get_password_hash", return_value="hashed"):
        result = await user_crud.create_user(db, registration)

    assert users.insert_one.await_args.args[0]["role"] == "user"
    assert result["role"] == "user"


@pytest.mark.asyncio
async def test_update_user_never_changes_password_or_role(db, users):
    previous = {"_id": ObjectId(USER_ID), "avatarPublicId": "old123"}
    users.find_one_and_update.return_value = previous

    result = await user_crud.update_user(
        db,
        USER_ID,
        {"name": "Kate", "email": "Kate@Example.com", "password": "x", "role": "admin"},
    )

    query, update = users.find_one_and_update.await_args.args
    assert query == {"_id": ObjectId(USER_ID)}
    assert set(update["$set"]) == {"name", "email", "updatedAt"}
    assert update["$set"]["email"] == "kate@example.com"
    assert users.find_one_and_update.await_args.kwargs["return_document"] is ReturnDocument.BEFORE
    assert result is previous
