"""
Account repository implementation following the Repository pattern.
Owns identifier normalization and translates unique-index violations into
typed conflicts. Never hashes passwords; callers hand it finished digests.
"""

from typing import Any, Optional
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
import structlog

from ..core.exceptions import ConflictError, InternalError
from ..interfaces.repository_interface import IAccountRepository
from ..models.account import Account

logger = structlog.get_logger()

UNIQUE_VIOLATION_SQLSTATE = "23505"
UNIQUE_VIOLATION_MARKERS = ("duplicate key", "unique constraint")


def normalize_identifier(value: str) -> str:
    """Trim and lowercase a username or email."""
    return value.strip().lower()


def is_unique_violation(error: IntegrityError) -> bool:
    """
    Whether an insert or update lost to the username/email unique indexes.

    Postgres drivers expose SQLSTATE 23505; SQLite only reports it in the
    message text.
    """
    driver_error = getattr(error, "orig", None)
    code = getattr(driver_error, "sqlstate", None) or getattr(driver_error, "pgcode", None)
    if code == UNIQUE_VIOLATION_SQLSTATE:
        return True
    text = str(driver_error if driver_error is not None else error).lower()
    return any(marker in text for marker in UNIQUE_VIOLATION_MARKERS)


class AccountRepository(IAccountRepository):
    """Repository for account data access operations."""

    async def find_by_username_or_email(
        self,
        db: AsyncSession,
        username: str,
        email: str
    ) -> Optional[Account]:
        query = select(Account).where(
            or_(
                Account.username == normalize_identifier(username),
                Account.email == normalize_identifier(email)
            )
        ).limit(1)
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def find_by_identifier(
        self,
        db: AsyncSession,
        username: Optional[str] = None,
        email: Optional[str] = None
    ) -> Optional[Account]:
        """
        Find the account matching a login identifier.

        Email wins when both are supplied, mirroring how the login form is
        usually filled in.
        """
        if email:
            condition = Account.email == normalize_identifier(email)
        elif username:
            condition = Account.username == normalize_identifier(username)
        else:
            return None

        result = await db.execute(select(Account).where(condition))
        return result.scalar_one_or_none()

    async def find_by_id(self, db: AsyncSession, account_id: int) -> Optional[Account]:
        result = await db.execute(select(Account).where(Account.id == account_id))
        return result.scalar_one_or_none()

    async def find_by_email_verification_hash(
        self,
        db: AsyncSession,
        token_hash: str
    ) -> Optional[Account]:
        result = await db.execute(
            select(Account).where(Account.email_verification_token_hash == token_hash)
        )
        return result.scalars().first()

    async def find_by_forgot_password_hash(
        self,
        db: AsyncSession,
        token_hash: str
    ) -> Optional[Account]:
        result = await db.execute(
            select(Account).where(Account.forgot_password_token_hash == token_hash)
        )
        return result.scalars().first()

    async def create(self, db: AsyncSession, **fields: Any) -> Account:
        """
        Create a new account.

        Args:
            db: Database session
            **fields: Column values; ``username`` and ``email`` are normalized
                and ``password_hash`` must already be a digest

        Returns:
            Created account instance

        Raises:
            ConflictError: username or email is already taken
        """
        fields["username"] = normalize_identifier(fields["username"])
        fields["email"] = normalize_identifier(fields["email"])
        if fields.get("full_name") is not None:
            fields["full_name"] = fields["full_name"].strip() or None

        account = Account(**fields)
        self._validate(account)

        db.add(account)
        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            if is_unique_violation(e):
                logger.info("Account creation lost uniqueness race", username=fields["username"])
                raise ConflictError("User with email or username already exists") from e
            raise
        await db.refresh(account)

        logger.info("Account created", account_id=account.id)
        return account

    async def save(
        self,
        db: AsyncSession,
        account: Account,
        skip_validation: bool = False
    ) -> Account:
        """
        Persist a partial update.

        Args:
            db: Database session
            account: Loaded account carrying the changes
            skip_validation: Skip the record invariants check, for updates
                that only touch token fields

        Returns:
            The saved account
        """
        if not skip_validation:
            self._validate(account)

        db.add(account)
        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            if is_unique_violation(e):
                raise ConflictError("User with email or username already exists") from e
            raise
        return account

    @staticmethod
    def _validate(account: Account) -> None:
        errors = account.validation_errors()
        if errors:
            logger.error("Account failed validation", account_id=account.id, errors=errors)
            raise InternalError("Account record is inconsistent")


__all__ = ["AccountRepository", "normalize_identifier", "is_unique_violation"]
