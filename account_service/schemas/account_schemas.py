"""
Account-related Pydantic schemas for request validation and response shaping.
Request models form the validation gate: they run before any service call.
"""
from typing import Optional, Any
from datetime import datetime
from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Accepts and emits camelCase keys while keeping snake_case attributes."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _required(value: Any, message: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(message)
    return value


def _password(value: Any, label: str) -> str:
    # bcrypt cannot hash NUL bytes
    value = _required(value, f"{label} is required")
    if "\x00" in value:
        raise ValueError(f"{label} must not contain null characters")
    return value


def _email(value: Any) -> str:
    value = _required(value, "Email is required").strip()
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        raise ValueError("Email is invalid")
    return value


class RegistrationRequest(CamelModel):
    """Registration request schema."""

    email: str = Field(..., description="Email address, stored lowercase")
    username: str = Field(..., description="Lowercase username, at least 3 characters")
    password: str = Field(..., description="Plaintext password")
    full_name: Optional[str] = Field(None, description="Display name")

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "email": "shreya@example.com",
                "username": "shreya",
                "password": "mypassword123",
                "fullName": "Shreya Rao"
            }
        }
    )

    @field_validator("email", mode="before")
    @classmethod
    def validate_email_address(cls, v):
        return _email(v)

    @field_validator("username", mode="before")
    @classmethod
    def validate_username(cls, v):
        v = _required(v, "Username is required").strip()
        if v != v.lower():
            raise ValueError("Username must be in lower case")
        if len(v) < 3:
            raise ValueError("Username must be at least 3 characters long")
        return v

    @field_validator("password", mode="before")
    @classmethod
    def validate_password(cls, v):
        return _password(v, "Password")

    @field_validator("full_name", mode="before")
    @classmethod
    def trim_full_name(cls, v):
        if isinstance(v, str):
            return v.strip() or None
        return v


class LoginRequest(CamelModel):
    """Login with either username or email plus password."""

    email: Optional[str] = Field(None, description="Email address")
    username: Optional[str] = Field(None, description="Username")
    password: str = Field(..., description="Plaintext password")

    @field_validator("email", "username", mode="before")
    @classmethod
    def trim_identifier(cls, v):
        if isinstance(v, str):
            return v.strip() or None
        return v

    @field_validator("password", mode="before")
    @classmethod
    def validate_password(cls, v):
        return _password(v, "Password")

    @model_validator(mode="after")
    def identifier_present(self):
        if not self.email and not self.username:
            raise ValueError("Username or email is required")
        return self


class ForgotPasswordRequest(CamelModel):
    email: str

    @field_validator("email", mode="before")
    @classmethod
    def validate_email_address(cls, v):
        return _email(v)


class ResetForgottenPasswordRequest(CamelModel):
    new_password: str

    @field_validator("new_password", mode="before")
    @classmethod
    def validate_new_password(cls, v):
        return _password(v, "New password")


class ChangePasswordRequest(CamelModel):
    old_password: str
    new_password: str

    @field_validator("old_password", mode="before")
    @classmethod
    def validate_old_password(cls, v):
        return _password(v, "Old password")

    @field_validator("new_password", mode="before")
    @classmethod
    def validate_new_password(cls, v):
        return _password(v, "New password")


class RefreshTokenRequest(CamelModel):
    """Body fallback when the refresh token cookie is absent."""

    refresh_token: Optional[str] = None


class AvatarResponse(CamelModel):
    url: str
    local_path: str = ""


class AccountResponse(CamelModel):
    """
    Sanitized account view.

    Built from the ORM row; only the fields declared here are read, so the
    password hash, refresh token and token hash/expiry pairs never appear.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: int
    username: str
    email: str
    full_name: Optional[str] = None
    avatar: AvatarResponse
    is_email_verified: bool
    created_at: datetime
    updated_at: datetime


class SessionTokens(CamelModel):
    access_token: str
    refresh_token: str


class ApiResponse(CamelModel):
    """Uniform success envelope."""

    status_code: int
    data: Any = None
    message: str = "Success"
    success: bool = True


class ErrorResponse(CamelModel):
    """Uniform error envelope."""

    status_code: int
    data: Any = None
    message: str
    success: bool = False
    errors: list = Field(default_factory=list)
