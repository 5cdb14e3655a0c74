"""
Pydantic schemas for request/response validation.
"""
from .account_schemas import (
    RegistrationRequest,
    LoginRequest,
    ForgotPasswordRequest,
    ResetForgottenPasswordRequest,
    ChangePasswordRequest,
    RefreshTokenRequest,
    AvatarResponse,
    AccountResponse,
    SessionTokens,
    ApiResponse,
    ErrorResponse
)

__all__ = [
    "RegistrationRequest",
    "LoginRequest",
    "ForgotPasswordRequest",
    "ResetForgottenPasswordRequest",
    "ChangePasswordRequest",
    "RefreshTokenRequest",
    "AvatarResponse",
    "AccountResponse",
    "SessionTokens",
    "ApiResponse",
    "ErrorResponse"
]
