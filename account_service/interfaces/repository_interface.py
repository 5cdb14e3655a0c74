"""
Repository interfaces for dependency abstraction.
Defines the data access contract the account lifecycle depends on.
"""

from typing import Any, Optional, Protocol, runtime_checkable
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.account import Account


@runtime_checkable
class IAccountRepository(Protocol):
    """Protocol for account persistence operations."""

    async def find_by_username_or_email(
        self,
        db: AsyncSession,
        username: str,
        email: str
    ) -> Optional[Account]:
        """Return any account owning either identifier."""
        ...

    async def find_by_identifier(
        self,
        db: AsyncSession,
        username: Optional[str] = None,
        email: Optional[str] = None
    ) -> Optional[Account]:
        """Login lookup by whichever identifier was supplied."""
        ...

    async def find_by_id(self, db: AsyncSession, account_id: int) -> Optional[Account]:
        ...

    async def find_by_email_verification_hash(
        self,
        db: AsyncSession,
        token_hash: str
    ) -> Optional[Account]:
        ...

    async def find_by_forgot_password_hash(
        self,
        db: AsyncSession,
        token_hash: str
    ) -> Optional[Account]:
        ...

    async def create(self, db: AsyncSession, **fields: Any) -> Account:
        """
        Insert a new account.

        Raises:
            ConflictError: a unique index rejected the username or email
        """
        ...

    async def save(
        self,
        db: AsyncSession,
        account: Account,
        skip_validation: bool = False
    ) -> Account:
        """Persist changes made to an already loaded account."""
        ...
