import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, status
from pymongo.asynchronous.database import AsyncDatabase

from hunting_buddy.app.api.dependencies import get_job_for_user
from hunting_buddy.app.api.routes.fallback import add_not_found_route
from hunting_buddy.app.api.routes.route_logic import job_crud
from hunting_buddy.app.core.auth import AuthUser, authenticate_user
from hunting_buddy.app.core.errors import NotFoundError
from hunting_buddy.app.database.database import get_db
from hunting_buddy.app.database.documents import parse_object_id
from hunting_buddy.app.schemas.job import JobCreate, JobUpdate

log = logging.getLogger(__name__)

router = APIRouter(tags=["jobs"])


@router.get("")
@router.get("/", include_in_schema=False)
async def get_all_jobs(
    db: Annotated[AsyncDatabase, Depends(get_db)],
    current_user: Annotated[AuthUser, Depends(authenticate_user)],
) -> dict[str, Any]:
    """List the current user's jobs, newest first."""
    jobs = await job_crud.list_jobs(db, current_user.user_id)
    return {"jobs": jobs}


@router.post("", status_code=status.HTTP_201_CREATED)
@router.post("/", status_code=status.HTTP_201_CREATED, include_in_schema=False)
async def create_job(
    job: JobCreate,
    db: Annotated[AsyncDatabase, Depends(get_db)],
    current_user: Annotated[AuthUser, Depends(authenticate_user)],
) -> dict[str, Any]:
    """Create a job owned by the current user.

    Args:
        job (JobCreate): The validated job fields.
        db (AsyncDatabase): The database handle.
        current_user (AuthUser): The authenticated identity.

    Returns:
        dict[str, Any]: ``{"job": ...}`` with the stored document.

    """
    _msg = f"Creating job for user {current_user.user_id}"
    log.debug(_msg)
    created = await job_crud.create_job(db, current_user.user_id, job)
    return {"job": created}


@router.get("/stats")
async def show_stats(
    db: Annotated[AsyncDatabase, Depends(get_db)],
    current_user: Annotated[AuthUser, Depends(authenticate_user)],
) -> dict[str, Any]:
    """Return per-status counts and monthly application counts."""
    return await job_crud.get_job_stats(db, current_user.user_id)


@router.get("/{job_id}")
async def get_job(
    job: Annotated[dict[str, Any], Depends(get_job_for_user)],
) -> dict[str, Any]:
    return {"job": job}


@router.patch("/{job_id}")
async def update_job(
    changes: JobUpdate,
    job: Annotated[dict[str, Any], Depends(get_job_for_user)],
    db: Annotated[AsyncDatabase, Depends(get_db)],
) -> dict[str, Any]:
    """Apply a partial update to a job the caller may access.

    Args:
        changes (JobUpdate): Fields to change; omitted fields are left untouched.
        job (dict[str, Any]): The job, loaded and access-checked by `get_job_for_user`.
        db (AsyncDatabase): The database handle.

    Returns:
        dict[str, Any]: ``{"msg": "job modified", "job": ...}`` with the updated document.

    Raises:
        NotFoundError: If the job was deleted between the access check and the update.

    """
    updated = await job_crud.update_job(db, parse_object_id(job["_id"]), changes)
    if updated is None:
        raise NotFoundError(f"no job with id {job['_id']}")
    return {"msg": "job modified", "job": updated}


@router.delete("/{job_id}")
async def delete_job(
    job: Annotated[dict[str, Any], Depends(get_job_for_user)],
    db: Annotated[AsyncDatabase, Depends(get_db)],
) -> dict[str, Any]:
    removed = await job_crud.delete_job(db, parse_object_id(job["_id"]))
    if removed is None:
        raise NotFoundError(f"no job with id {job['_id']}")
    return {"msg": "job deleted", "job": removed}


add_not_found_route(router)
