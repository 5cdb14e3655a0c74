"""
Account endpoints: registration, sessions, email verification and passwords.
"""
from typing import Optional
from fastapi import APIRouter, Body, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import Settings
from ..core.database import get_db
from ..core.exceptions import UnauthorizedError
from ..schemas.account_schemas import (
    ApiResponse,
    ChangePasswordRequest,
    ErrorResponse,
    ForgotPasswordRequest,
    LoginRequest,
    RefreshTokenRequest,
    RegistrationRequest,
    ResetForgottenPasswordRequest,
    SessionTokens,
)
from ..services.account_service import AccountService
from .deps import (
    ACCESS_COOKIE,
    REFRESH_COOKIE,
    get_account_service,
    get_current_account_id,
    get_settings_dependency,
)

router = APIRouter(prefix="/users", tags=["users"])

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def _base_url(request: Request) -> str:
    return str(request.base_url).rstrip("/")


def _set_session_cookies(response: Response, tokens: SessionTokens, settings: Settings) -> None:
    response.set_cookie(
        key=ACCESS_COOKIE,
        value=tokens.access_token,
        httponly=True,
        secure=settings.secure_cookies,
        samesite="lax",
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        path="/",
    )
    response.set_cookie(
        key=REFRESH_COOKIE,
        value=tokens.refresh_token,
        httponly=True,
        secure=settings.secure_cookies,
        samesite="lax",
        max_age=settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 3600,
        path="/",
    )


def _clear_session_cookies(response: Response, settings: Settings) -> None:
    for key in (ACCESS_COOKIE, REFRESH_COOKIE):
        response.delete_cookie(key=key, path="/", secure=settings.secure_cookies, samesite="lax")


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse,
    responses=ERROR_RESPONSES
)
async def register(
    request: Request,
    registration_data: RegistrationRequest,
    db: AsyncSession = Depends(get_db),
    account_service: AccountService = Depends(get_account_service)
):
    """
    Register a new account.

    - **email**: unique email address
    - **username**: unique lowercase username, at least 3 characters
    - **password**: account password
    - **fullName**: optional display name

    A verification link is mailed to the address; the account starts unverified.
    """
    account = await account_service.register(
        db=db,
        email=registration_data.email,
        username=registration_data.username,
        password=registration_data.password,
        full_name=registration_data.full_name,
        base_url=_base_url(request)
    )
    return ApiResponse(
        status_code=status.HTTP_201_CREATED,
        data={"user": account.model_dump(by_alias=True, mode="json")},
        message="User registered successfully and verification email has been sent on your email"
    )


@router.post("/login", response_model=ApiResponse, responses=ERROR_RESPONSES)
async def login(
    response: Response,
    login_data: LoginRequest,
    db: AsyncSession = Depends(get_db),
    account_service: AccountService = Depends(get_account_service),
    settings: Settings = Depends(get_settings_dependency)
):
    """Authenticate with username or email and password; sets session cookies."""
    account, tokens = await account_service.login(
        db=db,
        password=login_data.password,
        email=login_data.email,
        username=login_data.username
    )
    _set_session_cookies(response, tokens, settings)
    return ApiResponse(
        status_code=status.HTTP_200_OK,
        data={
            "user": account.model_dump(by_alias=True, mode="json"),
            **tokens.model_dump(by_alias=True),
        },
        message="User logged in successfully"
    )


@router.post("/logout", response_model=ApiResponse, responses=ERROR_RESPONSES)
async def logout(
    response: Response,
    account_id: int = Depends(get_current_account_id),
    db: AsyncSession = Depends(get_db),
    account_service: AccountService = Depends(get_account_service),
    settings: Settings = Depends(get_settings_dependency)
):
    await account_service.logout(db, account_id)
    _clear_session_cookies(response, settings)
    return ApiResponse(status_code=status.HTTP_200_OK, data={}, message="User logged out")


@router.get("/current-user", response_model=ApiResponse, responses=ERROR_RESPONSES)
async def current_user(
    account_id: int = Depends(get_current_account_id),
    db: AsyncSession = Depends(get_db),
    account_service: AccountService = Depends(get_account_service)
):
    account = await account_service.get_account_view(db, account_id)
    return ApiResponse(
        status_code=status.HTTP_200_OK,
        data={"user": account.model_dump(by_alias=True, mode="json")},
        message="Current user fetched successfully"
    )


@router.get("/verify-email/{verification_token}", response_model=ApiResponse, responses=ERROR_RESPONSES)
async def verify_email(
    verification_token: str,
    db: AsyncSession = Depends(get_db),
    account_service: AccountService = Depends(get_account_service)
):
    """Consume the token from the verification link."""
    await account_service.verify_email(db, verification_token)
    return ApiResponse(
        status_code=status.HTTP_200_OK,
        data={"isEmailVerified": True},
        message="Email is verified"
    )


@router.post("/resend-email-verification", response_model=ApiResponse, responses=ERROR_RESPONSES)
async def resend_email_verification(
    request: Request,
    account_id: int = Depends(get_current_account_id),
    db: AsyncSession = Depends(get_db),
    account_service: AccountService = Depends(get_account_service)
):
    await account_service.resend_email_verification(db, account_id, _base_url(request))
    return ApiResponse(
        status_code=status.HTTP_200_OK,
        data={},
        message="Mail has been sent to your email ID"
    )


@router.post("/refresh-token", response_model=ApiResponse, responses=ERROR_RESPONSES)
async def refresh_access_token(
    request: Request,
    response: Response,
    body: Optional[RefreshTokenRequest] = Body(None),
    db: AsyncSession = Depends(get_db),
    account_service: AccountService = Depends(get_account_service),
    settings: Settings = Depends(get_settings_dependency)
):
    """Rotate the refresh token taken from the cookie or the request body."""
    incoming = request.cookies.get(REFRESH_COOKIE) or (body.refresh_token if body else None)
    if not incoming:
        raise UnauthorizedError("Unauthorized access")

    tokens = await account_service.refresh_session(db, incoming)
    _set_session_cookies(response, tokens, settings)
    return ApiResponse(
        status_code=status.HTTP_200_OK,
        data=tokens.model_dump(by_alias=True),
        message="Access token refreshed"
    )


@router.post("/forgot-password", response_model=ApiResponse, responses=ERROR_RESPONSES)
async def forgot_password(
    payload: ForgotPasswordRequest,
    db: AsyncSession = Depends(get_db),
    account_service: AccountService = Depends(get_account_service)
):
    await account_service.request_password_reset(db, payload.email)
    return ApiResponse(
        status_code=status.HTTP_200_OK,
        data={},
        message="If the email is registered, a password reset link has been sent"
    )


@router.post("/reset-password/{reset_token}", response_model=ApiResponse, responses=ERROR_RESPONSES)
async def reset_forgotten_password(
    reset_token: str,
    payload: ResetForgottenPasswordRequest,
    db: AsyncSession = Depends(get_db),
    account_service: AccountService = Depends(get_account_service)
):
    await account_service.reset_forgotten_password(db, reset_token, payload.new_password)
    return ApiResponse(
        status_code=status.HTTP_200_OK,
        data={},
        message="Password reset successfully"
    )


@router.post("/change-password", response_model=ApiResponse, responses=ERROR_RESPONSES)
async def change_current_password(
    payload: ChangePasswordRequest,
    account_id: int = Depends(get_current_account_id),
    db: AsyncSession = Depends(get_db),
    account_service: AccountService = Depends(get_account_service)
):
    await account_service.change_current_password(
        db, account_id, payload.old_password, payload.new_password
    )
    return ApiResponse(
        status_code=status.HTTP_200_OK,
        data={},
        message="Password changed successfully"
    )
