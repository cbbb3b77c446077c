import logging
from typing import Annotated, Any

from fastapi import Depends, Request
from pymongo.asynchronous.database import AsyncDatabase

from hunting_buddy.app.api.routes.route_logic import job_crud
from hunting_buddy.app.core.auth import AuthUser, authenticate_user
from hunting_buddy.app.core.config import Settings
from hunting_buddy.app.core.errors import NotFoundError, UnauthorizedError
from hunting_buddy.app.database.database import get_db
from hunting_buddy.app.database.documents import parse_object_id
from hunting_buddy.app.schemas.user import Role

log = logging.getLogger(__name__)


def get_app_settings(request: Request) -> Settings:
    """Return the settings the application was built with."""
    return request.app.state.settings


async def get_job_for_user(
    job_id: str,
    db: Annotated[AsyncDatabase, Depends(get_db)],
    current_user: Annotated[AuthUser, Depends(authenticate_user)],
) -> dict[str, Any]:
    """
    Dependency to get a specific job the current user may access.

    Args:
        job_id (str): The job id from the request path.
        db (AsyncDatabase): The database handle dependency.
        current_user (AuthUser): The identity attached by the authentication gate.

    Returns:
        dict[str, Any]: The serialized job.

    Raises:
        BadRequestError: If `job_id` is not a valid ObjectId.
        NotFoundError: If no job has that id.
        UnauthorizedError: If the job belongs to another user and the caller is not an admin.

    Notes:
        1. Parse the id and load the job.
        2. Owners and admins are admitted; everyone else receives 403.

    """
    object_id = parse_object_id(job_id)
    job = await job_crud.get_job(db, object_id)
    if job is None:
        raise NotFoundError(f"no job with id {job_id}")

    if current_user.role != Role.ADMIN.value and job["createdBy"] != current_user.user_id:
        _msg = f"User {current_user.user_id} denied access to job {job_id}"
        log.warning(_msg)
        raise UnauthorizedError()

    return job
