import logging
from collections.abc import Awaitable, Callable, Iterable
from enum import Enum
from typing import Protocol

import uvicorn
from fastapi import FastAPI

from hunting_buddy.app.core.config import Settings
from hunting_buddy.app.core.errors import FatalStartupError
from hunting_buddy.app.core.uploads import configure_cloudinary
from hunting_buddy.app.database.database import MongoConnection, connect_to_database

log = logging.getLogger(__name__)


class LifecycleState(str, Enum):
    UNCONFIGURED = "unconfigured"
    CONFIGURED = "configured"
    DB_CONNECTING = "db_connecting"
    LISTENING = "listening"
    FAILED = "failed"


class Server(Protocol):
    async def serve(self) -> None: ...


def build_uvicorn_server(app: FastAPI, settings: Settings) -> Server:
    """Create the uvicorn server bound to the configured host and port.

    Uvicorn's own access log and Server header are disabled; access logging is a
    middleware stage and response headers belong to the security stage.
    """
    config = uvicorn.Config(
        app,
        host=settings.host,
        port=settings.port,
        log_config=None,
        access_log=False,
        server_header=False,
    )
    return uvicorn.Server(config)


class ServerLifecycle:
    """Drive the process from configuration to a listening server.

    States move ``UNCONFIGURED -> CONFIGURED -> DB_CONNECTING -> LISTENING``, or
    ``DB_CONNECTING -> FAILED`` when the database cannot be reached. The server is
    never constructed, and so never binds its socket, unless the connection succeeded.

    Args:
        settings (Settings): The process-wide settings.
        app_factory (Callable[[Settings], FastAPI]): Builds the application.
        connect (Callable[[Settings], Awaitable[MongoConnection]]): Opens the database.
        server_factory (Callable[[FastAPI, Settings], Server]): Builds the listener.
        initializers (Iterable[Callable[[Settings], None]]): External service set-up run
            before the application is built.

    """

    def __init__(
        self,
        settings: Settings,
        app_factory: Callable[[Settings], FastAPI],
        connect: Callable[[Settings], Awaitable[MongoConnection]] = connect_to_database,
        server_factory: Callable[[FastAPI, Settings], Server] = build_uvicorn_server,
        initializers: Iterable[Callable[[Settings], None]] = (configure_cloudinary,),
    ):
        self.settings = settings
        self.app_factory = app_factory
        self.connect = connect
        self.server_factory = server_factory
        self.initializers = tuple(initializers)
        self.state = LifecycleState.UNCONFIGURED
        self.app: FastAPI | None = None
        self.connection: MongoConnection | None = None

    def _transition(self, state: LifecycleState) -> None:
        _msg = f"Lifecycle {self.state.value} -> {state.value}"
        log.debug(_msg)
        self.state = state

    def configure(self) -> FastAPI:
        """Run the external service initializers and build the application."""
        if self.state is not LifecycleState.UNCONFIGURED:
            raise RuntimeError(f"cannot configure from state {self.state.value}")

        for initialize in self.initializers:
            initialize(self.settings)
        self.app = self.app_factory(self.settings)
        self._transition(LifecycleState.CONFIGURED)
        return self.app

    async def connect_database(self) -> MongoConnection:
        """Connect to the document store and attach it to the application.

        Raises:
            FatalStartupError: If the connection fails. The state becomes FAILED.

        """
        if self.state is not LifecycleState.CONFIGURED:
            raise RuntimeError(f"cannot connect from state {self.state.value}")

        self._transition(LifecycleState.DB_CONNECTING)
        try:
            connection = await self.connect(self.settings)
        except Exception as e:
            _msg = f"Database connection failed: {e}"
            log.exception(_msg)
            self._transition(LifecycleState.FAILED)
            raise FatalStartupError(_msg) from e

        self.connection = connection
        self.app.state.db = connection.db
        return connection

    async def start(self) -> None:
        """Configure if needed, connect, then serve until shutdown.

        Raises:
            FatalStartupError: If the database connection fails; no server is built.

        Notes:
            1. Configure the application when still UNCONFIGURED.
            2. Connect to the database; failure leaves the process in FAILED.
            3. Build the server and enter LISTENING, then serve until signalled.
            4. Close the database client once serving stops.

        """
        if self.state is LifecycleState.UNCONFIGURED:
            self.configure()

        connection = await self.connect_database()
        try:
            server = self.server_factory(self.app, self.settings)
            self._transition(LifecycleState.LISTENING)
            _msg = f"server running on port {self.settings.port}..."
            log.info(_msg)
            await server.serve()
        finally:
            await connection.close()
