"""
Repository implementations following the Repository pattern.
Provides the data access layer for accounts.
"""

from .account_repository import AccountRepository, normalize_identifier

__all__ = [
    "AccountRepository",
    "normalize_identifier"
]
