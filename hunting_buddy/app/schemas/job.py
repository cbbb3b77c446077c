import logging
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

log = logging.getLogger(__name__)


class JobStatus(str, Enum):
    PENDING = "pending"
    INTERVIEW = "interview"
    DECLINED = "declined"


class JobType(str, Enum):
    FULL_TIME = "full-time"
    PART_TIME = "part-time"
    INTERNSHIP = "internship"


class JobCreate(BaseModel):
    """Schema for creating a job application entry.

    Field names are exposed in camelCase (`jobStatus`, `jobType`, `jobLocation`)
    to match the client and the stored documents.

    Attributes:
        company (str): Name of the hiring company.
        position (str): Title of the position applied for.
        job_status (JobStatus): Current stage of the application.
        job_type (JobType): Employment type of the position.
        job_location (str): Where the job is based.

    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    company: str = Field(min_length=1, max_length=100)
    position: str = Field(min_length=1, max_length=100)
    job_status: JobStatus = JobStatus.PENDING
    job_type: JobType = JobType.FULL_TIME
    job_location: str = Field(default="my city", min_length=1, max_length=100)


class JobUpdate(BaseModel):
    """Schema for a partial update of a job application entry.

    Only fields present in the request are changed.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    company: str | None = Field(default=None, min_length=1, max_length=100)
    position: str | None = Field(default=None, min_length=1, max_length=100)
    job_status: JobStatus | None = None
    job_type: JobType | None = None
    job_location: str | None = Field(default=None, min_length=1, max_length=100)

    @field_validator("*", mode="before")
    @classmethod
    def reject_null(cls, value):
        """Omitting a field leaves it unchanged; sending null is rejected."""
        if value is None:
            raise ValueError("must not be null")
        return value
