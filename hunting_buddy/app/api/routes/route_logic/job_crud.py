import logging
from datetime import UTC, datetime
from typing import Any

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.asynchronous.database import AsyncDatabase

from hunting_buddy.app.database.database import JOBS_COLLECTION
from hunting_buddy.app.database.documents import serialize_document
from hunting_buddy.app.schemas.job import JobCreate, JobStatus, JobUpdate

log = logging.getLogger(__name__)

MONTHS_OF_STATS = 6


async def list_jobs(db: AsyncDatabase, user_id: str) -> list[dict[str, Any]]:
    """Retrieve all jobs created by a user, newest first.

    Args:
        db (AsyncDatabase): The database handle.
        user_id (str): The id of the owning user.

    Returns:
        list[dict[str, Any]]: The serialized job documents.

    Notes:
        1. Filter the jobs collection on `createdBy`.
        2. Sort by `createdAt` descending.
        3. Database access: reads from the jobs collection.

    """
    _msg = f"Listing jobs for user {user_id}"
    log.debug(_msg)
    cursor = db[JOBS_COLLECTION].find({"createdBy": ObjectId(user_id)}).sort(
        "createdAt",
        -1,
    )
    documents = await cursor.to_list()
    return [serialize_document(document) for document in documents]


async def create_job(db: AsyncDatabase, user_id: str, job: JobCreate) -> dict[str, Any]:
    """Insert a new job owned by `user_id`.

    Args:
        db (AsyncDatabase): The database handle.
        user_id (str): The id of the user creating the job.
        job (JobCreate): The validated job fields.

    Returns:
        dict[str, Any]: The stored job, serialized.

    Notes:
        1. Store the fields in camelCase along with `createdBy` and timestamps.
        2. Database access: writes to the jobs collection.

    """
    now = datetime.now(UTC)
    document = job.model_dump(mode="json", by_alias=True)
    document.update(
        {"createdBy": ObjectId(user_id), "createdAt": now, "updatedAt": now},
    )
    result = await db[JOBS_COLLECTION].insert_one(document)
    document["_id"] = result.inserted_id

    _msg = f"Created job {result.inserted_id} for user {user_id}"
    log.debug(_msg)
    return serialize_document(document)


async def get_job(db: AsyncDatabase, job_id: ObjectId) -> dict[str, Any] | None:
    """Retrieve a single job by id, or None when it does not exist."""
    document = await db[JOBS_COLLECTION].find_one({"_id": job_id})
    return serialize_document(document) if document else None


async def update_job(
    db: AsyncDatabase,
    job_id: ObjectId,
    changes: JobUpdate,
) -> dict[str, Any] | None:
    """Apply a partial update to a job and return the updated document.

    Args:
        db (AsyncDatabase): The database handle.
        job_id (ObjectId): The id of the job to update.
        changes (JobUpdate): The fields supplied by the client.

    Returns:
        dict[str, Any] | None: The updated job, or None if it no longer exists.

    Notes:
        1. Only fields explicitly set by the client are written.
        2. `updatedAt` is always refreshed.
        3. Database access: writes to the jobs collection.

    """
    update = changes.model_dump(mode="json", by_alias=True, exclude_unset=True)
    update["updatedAt"] = datetime.now(UTC)
    document = await db[JOBS_COLLECTION].find_one_and_update(
        {"_id": job_id},
        {"$set": update},
        return_document=ReturnDocument.AFTER,
    )
    return serialize_document(document) if document else None


async def delete_job(db: AsyncDatabase, job_id: ObjectId) -> dict[str, Any] | None:
    """Delete a job and return the removed document."""
    document = await db[JOBS_COLLECTION].find_one_and_delete({"_id": job_id})
    return serialize_document(document) if document else None


async def count_jobs(db: AsyncDatabase) -> int:
    return await db[JOBS_COLLECTION].count_documents({})


async def get_job_stats(db: AsyncDatabase, user_id: str) -> dict[str, Any]:
    """Summarize a user's jobs by status and by month of application.

    Args:
        db (AsyncDatabase): The database handle.
        user_id (str): The id of the owning user.

    Returns:
        dict[str, Any]: `defaultStats` with a count per status (zero when absent) and
            `monthlyApplications` with the six most recent months that have
            applications, oldest first, labelled like "Mar 2024".

    Notes:
        1. Group the user's jobs by `jobStatus`.
        2. Group the user's jobs by year and month of `createdAt`, keep the six latest.
        3. Database access: runs two aggregations on the jobs collection.

    """
    owner = ObjectId(user_id)
    jobs = db[JOBS_COLLECTION]

    status_cursor = await jobs.aggregate(
        [
            {"$match": {"createdBy": owner}},
            {"$group": {"_id": "$jobStatus", "count": {"$sum": 1}}},
        ],
    )
    status_counts = {row["_id"]: row["count"] for row in await status_cursor.to_list()}
    default_stats = {status.value: status_counts.get(status.value, 0) for status in JobStatus}

    monthly_cursor = await jobs.aggregate(
        [
            {"$match": {"createdBy": owner}},
            {
                "$group": {
                    "_id": {
                        "year": {"$year": "$createdAt"},
                        "month": {"$month": "$createdAt"},
                    },
                    "count": {"$sum": 1},
                },
            },
            {"$sort": {"_id.year": -1, "_id.month": -1}},
            {"$limit": MONTHS_OF_STATS},
        ],
    )
    monthly_applications = [
        {
            "date": datetime(row["_id"]["year"], row["_id"]["month"], 1).strftime("%b %Y"),
            "count": row["count"],
        }
        for row in await monthly_cursor.to_list()
    ]
    monthly_applications.reverse()

    return {"defaultStats": default_stats, "monthlyApplications": monthly_applications}
