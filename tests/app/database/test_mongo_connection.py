from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from bson import ObjectId
from pymongo.errors import ServerSelectionTimeoutError

from hunting_buddy.app.core.errors import BadRequestError
from hunting_buddy.app.database.database import (
    MongoConnection,
    connect_to_database,
    get_db,
)
from hunting_buddy.app.database.documents import parse_object_id, serialize_document
from tests.conftest import JOB_ID, USER_ID, make_settings


@pytest.fixture
def mock_client():
    client = MagicMock()
    client.admin.command = AsyncMock(return_value={"ok": 1.0})
    client.close = AsyncMock()
    return client


@pytest.mark.asyncio
async def test_connect_to_database_success(mock_client):
    settings = make_settings()
    with patch(
        "hunting_buddy.app.database.database.AsyncMongoClient",
        return_value=mock_client,
    ) as mock_client_cls:
        connection = await connect_to_database(settings)

    mock_client_cls.assert_called_once_with(settings.mongo_url)
    mock_client.get_default_database.assert_called_once_with(default="hunting_buddy")
    mock_client.admin.command.assert_awaited_once_with("ping")
    assert connection.client is mock_client
    assert connection.db is mock_client.get_default_database.return_value
    mock_client.close.assert_not_awaited()


@pytest.mark.asyncio
async def test_connect_to_database_ping_failure_closes_client(mock_client):
    mock_client.admin.command.side_effect = ServerSelectionTimeoutError("no servers")
    with patch(
        "hunting_buddy.app.database.database.AsyncMongoClient",
        return_value=mock_client,
    ):
        with pytest.raises(ServerSelectionTimeoutError):
            await connect_to_database(make_settings())

    mock_client.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_mongo_connection_close(mock_client):
    connection = MongoConnection(client=mock_client, db=MagicMock())

    await connection.close()

    mock_client.close.assert_awaited_once()


def test_get_db():
    request = MagicMock()

    assert get_db(request) is request.app.state.db


# --- Document helpers ---


def test_parse_object_id():
    assert parse_object_id(JOB_ID) == ObjectId(JOB_ID)


@pytest.mark.parametrize("value", ["not-an-id", "123", ""])
def test_parse_object_id_invalid(value):
    with pytest.raises(BadRequestError) as exc_info:
        parse_object_id(value)

    assert exc_info.value.msg == "invalid MongoDB id"


def test_serialize_document():
    created = datetime(2024, 3, 1, 12, 30, tzinfo=UTC)
    document = {
        "_id": ObjectId(JOB_ID),
        "createdBy": ObjectId(USER_ID),
        "createdAt": created,
        "company": "Acme",
        "history": [{"by": ObjectId(USER_ID), "at": created}],
    }

    assert serialize_document(document) == {
        "_id": JOB_ID,
        "createdBy": USER_ID,
        "createdAt": "2024-03-01T12:30:00+00:00",
        "company": "Acme",
        "history": [{"by": USER_ID, "at": "2024-03-01T12:30:00+00:00"}],
    }
