"""
Authentication building blocks used by the account lifecycle.
"""

from .token_service import SingleUseToken, TokenService

__all__ = [
    "SingleUseToken",
    "TokenService"
]
