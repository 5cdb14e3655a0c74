"""
Interfaces for dependency abstraction across the service layer.
"""

from .repository_interface import IAccountRepository
from .notification_interface import INotificationDispatcher

__all__ = [
    "IAccountRepository",
    "INotificationDispatcher"
]
