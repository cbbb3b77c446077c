import logging
from dataclasses import dataclass

from fastapi import Request
from pymongo import AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase

from hunting_buddy.app.core.config import Settings

log = logging.getLogger(__name__)

JOBS_COLLECTION = "jobs"
USERS_COLLECTION = "users"


@dataclass
class MongoConnection:
    """An open client together with the database the application uses."""

    client: AsyncMongoClient
    db: AsyncDatabase

    async def close(self) -> None:
        _msg = "Closing database client"
        log.debug(_msg)
        await self.client.close()


async def connect_to_database(settings: Settings) -> MongoConnection:
    """Open a client to the document store and verify it is reachable.

    Args:
        settings (Settings): The application settings holding `mongo_url`.

    Returns:
        MongoConnection: The connected client and selected database.

    Raises:
        PyMongoError: If the server cannot be reached or rejects the ping.
        ConfigurationError: If the connection string is malformed.

    Notes:
        1. Create an `AsyncMongoClient` from the configured connection string.
        2. Select the database named in the URL, or `settings.mongo_db_name`.
        3. Issue a `ping` so connection failures surface here rather than on the
           first request.
        4. On any failure, close the client and re-raise.
        5. Network access: connects to the MongoDB server.

    """
    _msg = "Connecting to database"
    log.debug(_msg)
    client = AsyncMongoClient(settings.mongo_url)
    try:
        db = client.get_default_database(default=settings.mongo_db_name)
        await client.admin.command("ping")
    except Exception:
        await client.close()
        raise

    _msg = f"Connected to database '{db.name}'"
    log.info(_msg)
    return MongoConnection(client=client, db=db)


def get_db(request: Request) -> AsyncDatabase:
    """Dependency to provide the database handle to route handlers.

    Args:
        request (Request): The incoming request; the database lives on `app.state`.

    Returns:
        AsyncDatabase: The database selected at startup.

    Notes:
        1. The lifecycle controller stores the handle on `app.state.db` before the
           listener is bound, so every dispatched request finds it.
        2. No network access in this function itself.

    """
    return request.app.state.db
