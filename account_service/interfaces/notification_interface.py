"""
Notification interface used by the account lifecycle to reach users.
"""

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ..services.notification_service import MailContent


@runtime_checkable
class INotificationDispatcher(Protocol):
    """Protocol for outbound user notifications."""

    async def send(self, to: str, subject: str, content: "MailContent") -> bool:
        """
        Deliver a message.

        Returns False on any delivery failure; implementations never raise.
        """
        ...
