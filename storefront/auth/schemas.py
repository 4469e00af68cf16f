"""
Request models for the authentication endpoints.

Unknown fields are dropped; every failing field is reported, not just the first.
"""
import re
from typing import Optional

from pydantic import EmailStr, Field, field_validator, model_validator

from storefront.auth.hashing import MAX_PASSWORD_BYTES
from storefront.database.models import Role
from storefront.validation import CamelModel

# Lowercase, uppercase, digit and one special character, at least 8 long
PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*[0-9])(?=.*[!@#$%^&*])")
NAME_PATTERN = re.compile(r"^[a-zA-ZÀ-ÿ\s-]+$")

PASSWORD_RULE = "Password must contain a lowercase letter, an uppercase letter, a digit and a special character"
PASSWORD_LENGTH_RULE = f"Password must be at most {MAX_PASSWORD_BYTES} bytes long"
NAME_RULE = "Name may only contain letters, spaces and hyphens"


def _check_password(value: str) -> str:
    if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(PASSWORD_LENGTH_RULE)
    if not PASSWORD_PATTERN.match(value):
        raise ValueError(PASSWORD_RULE)
    return value


def _check_name(value: Optional[str]) -> Optional[str]:
    if value is not None and not NAME_PATTERN.match(value):
        raise ValueError(NAME_RULE)
    return value


class RegisterRequest(CamelModel):
    """Model for user registration."""
    email: EmailStr
    password: str = Field(..., min_length=8)
    name: str = Field(..., min_length=2, max_length=100)
    role: Role = Role.USER

    @field_validator("password")
    @classmethod
    def password_must_be_strong(cls, v):
        return _check_password(v)

    @field_validator("name")
    @classmethod
    def name_must_be_valid(cls, v):
        return _check_name(v)


class LoginRequest(CamelModel):
    """Model for user login."""
    email: EmailStr
    password: str = Field(..., min_length=1)


class UpdateProfileRequest(CamelModel):
    """Model for updating the caller's profile."""
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    email: Optional[EmailStr] = None

    @field_validator("name")
    @classmethod
    def name_must_be_valid(cls, v):
        return _check_name(v)

    @model_validator(mode="after")
    def at_least_one_field(self):
        if self.name is None and self.email is None:
            raise ValueError("At least one field must be provided")
        return self


class ChangePasswordRequest(CamelModel):
    """Model for changing the caller's password."""
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8)
    confirm_password: str

    @field_validator("new_password")
    @classmethod
    def new_password_must_be_strong(cls, v):
        return _check_password(v)

    @model_validator(mode="after")
    def passwords_match(self):
        if self.new_password != self.confirm_password:
            raise ValueError("Password confirmation does not match")
        return self
