import asyncio
import logging
import sys

import click
from fastapi import Depends, FastAPI, Response
from pydantic import ValidationError

from hunting_buddy.app.api.routes.auth import router as auth_router
from hunting_buddy.app.api.routes.fallback import ALL_METHODS, not_found
from hunting_buddy.app.api.routes.job import router as job_router
from hunting_buddy.app.api.routes.user import router as user_router
from hunting_buddy.app.core.auth import authenticate_user
from hunting_buddy.app.core.config import Settings, configure_logging, load_settings
from hunting_buddy.app.core.errors import FatalStartupError, register_error_handlers
from hunting_buddy.app.core.lifecycle import ServerLifecycle
from hunting_buddy.app.middleware import install_middleware

log = logging.getLogger(__name__)


def create_app(settings: Settings) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings (Settings): The process-wide settings, stored on `app.state.settings`.

    Returns:
        FastAPI: The configured FastAPI application instance.

    Notes:
        1. Initialize a new FastAPI application; no state is shared between calls.
        2. Install the middleware chain in its fixed order.
        3. Mount the jobs and users routers behind the authentication gate and the
           auth router without it.
        4. Register the test-cookie endpoint and, last, the catch-all 404 route.
        5. Install the error layer as exception handlers.
        6. No database or network access; the lifecycle controller attaches the
           database before the server starts.

    """
    _msg = "Creating FastAPI application"
    log.debug(_msg)

    app = FastAPI(title="Hunting Buddy API")
    app.state.settings = settings

    install_middleware(app, settings)

    gate = [Depends(authenticate_user)]
    app.include_router(job_router, prefix="/api/v1/jobs", dependencies=gate)
    app.include_router(user_router, prefix="/api/v1/users", dependencies=gate)
    app.include_router(auth_router, prefix="/api/v1/auth")

    @app.get("/api/v1/test-cookie")
    async def test_cookie(response: Response) -> dict[str, str]:
        """Set a diagnostic cookie usable from cross-site requests."""
        response.set_cookie(
            key="testCookie",
            value="value",
            httponly=True,
            secure=False,
            samesite="none",
        )
        return {"msg": "cookie sent"}

    app.add_api_route(
        "/{path:path}",
        not_found,
        methods=ALL_METHODS,
        include_in_schema=False,
    )

    register_error_handlers(app)

    _msg = "FastAPI application created successfully"
    log.debug(_msg)
    return app


def run_server(settings: Settings) -> None:
    """Connect to the database, then serve until the process is signalled.

    Exits the process with status 1 if the database connection fails; the
    listener is never bound in that case.
    """
    lifecycle = ServerLifecycle(settings, app_factory=create_app)
    try:
        asyncio.run(lifecycle.start())
    except FatalStartupError:
        sys.exit(1)


@click.command()
@click.option(
    "--env-file",
    default=".env",
    show_default=True,
    help="Dotenv file read in addition to the process environment.",
)
def main(env_file: str):
    """Run the Hunting Buddy API server."""
    try:
        settings = load_settings(env_file)
    except ValidationError as e:
        click.echo(f"Invalid configuration: {e}", err=True)
        sys.exit(1)

    configure_logging(settings)
    run_server(settings)


if __name__ == "__main__":
    main()
