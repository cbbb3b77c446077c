"""Connection management for the MongoDB document store.

Functions:
    connect_to_database: Opens an `AsyncMongoClient` and verifies it with a ping.
    get_db: FastAPI dependency returning the database handle stored on `app.state`.

"""

from .database import MongoConnection, connect_to_database, get_db

__all__ = ["MongoConnection", "connect_to_database", "get_db"]
