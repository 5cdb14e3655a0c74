"""
Dependency injection for FastAPI endpoints.
Provides the wired account service, settings and the authenticated account id.
"""
from typing import Optional
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
import structlog

from ..core.config import Settings
from ..core.exceptions import UnauthorizedError
from ..services.account_service import AccountService

logger = structlog.get_logger()
security = HTTPBearer(auto_error=False)

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"


def get_settings_dependency(request: Request) -> Settings:
    return request.app.state.settings


def get_account_service(request: Request) -> AccountService:
    return request.app.state.account_service


async def get_current_account_id(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    account_service: AccountService = Depends(get_account_service)
) -> int:
    """
    Resolve the caller from a bearer header or the access token cookie.

    Raises:
        UnauthorizedError: no token, or the token does not validate
    """
    token = credentials.credentials if credentials else request.cookies.get(ACCESS_COOKIE)
    if not token:
        logger.debug("Request without access token", path=request.url.path)
        raise UnauthorizedError("Unauthorized request")

    payload = account_service.token_service.decode_access_token(token)
    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise UnauthorizedError("Invalid access token")
