import logging
from enum import Enum

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

log = logging.getLogger(__name__)


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"


class UserBase(BaseModel):
    """Base user schema with the profile fields shared by registration and updates.

    Attributes:
        name (str): First name shown in the client.
        email (EmailStr): Unique email address used to log in.
        last_name (str): Last name, exposed as `lastName`.
        location (str): Free-text location of the user.

    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    name: str = Field(min_length=1, max_length=50)
    email: EmailStr
    last_name: str = Field(min_length=1, max_length=50)
    location: str = Field(min_length=1, max_length=100)


class RegisterRequest(UserBase):
    """User registration schema with password.

    Attributes:
        password (str): Plain text password, hashed before storage and never returned.

    Notes:
        1. The password must be at least 8 characters long.
        2. The role is not accepted from the client; the first account becomes admin.

    """

    password: str = Field(min_length=8, max_length=128)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class UserUpdate(UserBase):
    """Profile fields accepted by the update-user form."""
