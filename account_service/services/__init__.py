"""
Service layer for the account service.
"""
from .account_service import AccountService
from .auth.token_service import SingleUseToken, TokenService
from .notification_service import EmailDispatcher, MailContent

__all__ = [
    "AccountService",
    "TokenService",
    "SingleUseToken",
    "EmailDispatcher",
    "MailContent"
]
