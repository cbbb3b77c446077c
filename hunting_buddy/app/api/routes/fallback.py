import logging

from fastapi import APIRouter, Request

from hunting_buddy.app.core.errors import NotFoundError

log = logging.getLogger(__name__)

ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


async def not_found(request: Request) -> None:
    """Reject a request that no registered route matched."""
    _msg = f"No route for {request.method} {request.url.path}"
    log.debug(_msg)
    raise NotFoundError()


def add_not_found_route(router: APIRouter) -> None:
    """Register a catch-all 404 route for every method and path on `router`.

    Must be called after all other routes of the router are registered. When the
    router carries dependencies (such as the authentication gate), they run before
    the 404 is produced.
    """
    router.add_api_route(
        "/{path:path}",
        not_found,
        methods=ALL_METHODS,
        include_in_schema=False,
    )
