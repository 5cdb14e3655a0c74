"""
Test data factories.
"""
from .account_factory import AccountFactory, VerifiedAccountFactory, DEFAULT_PASSWORD

__all__ = [
    "AccountFactory",
    "VerifiedAccountFactory",
    "DEFAULT_PASSWORD"
]
