"""
Database models for the account service.
"""
from .base import Base, BaseModel
from .account import Account

__all__ = [
    "Base",
    "BaseModel",
    "Account"
]
