"""
Account lifecycle service.

Orchestrates registration, email verification, session token issuance and
the password flows on top of the account repository, the token service and
the notification dispatcher. Raises typed errors from ``core.exceptions``;
mapping them to HTTP responses is the API layer's job.
"""

from typing import Optional, Tuple
from datetime import datetime, timezone
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from ..core.config import Settings
from ..core.exceptions import (
    ConflictError,
    InternalError,
    NotFoundOrExpiredError,
    UnauthorizedError,
)
from ..core.security import SecurityService
from ..interfaces.notification_interface import INotificationDispatcher
from ..interfaces.repository_interface import IAccountRepository
from ..models.account import Account
from ..repositories.account_repository import normalize_identifier
from ..schemas.account_schemas import AccountResponse, SessionTokens
from .auth.token_service import TokenService
from .notification_service import (
    MailContent,
    email_verification_content,
    forgot_password_content,
)

logger = structlog.get_logger()

VERIFY_EMAIL_SUBJECT = "Please verify your email"
FORGOT_PASSWORD_SUBJECT = "Password reset request"


class AccountService:
    """Service responsible for the account lifecycle."""

    def __init__(
        self,
        settings: Settings,
        account_repository: IAccountRepository,
        token_service: TokenService,
        notifier: INotificationDispatcher
    ):
        self.account_repository = account_repository
        self.token_service = token_service
        self.notifier = notifier
        self.api_prefix = settings.API_V1_STR
        self.forgot_password_redirect_url = settings.FORGOT_PASSWORD_REDIRECT_URL.rstrip("/")

    async def register(
        self,
        db: AsyncSession,
        email: str,
        username: str,
        password: str,
        base_url: str,
        full_name: Optional[str] = None
    ) -> AccountResponse:
        """
        Register a new account and send its verification email.

        Args:
            db: Database session
            email: Email address
            username: Username
            password: Plaintext password
            base_url: Scheme and host the verification link should point at
            full_name: Optional display name

        Returns:
            Sanitized view of the created account

        Raises:
            ConflictError: username or email already taken
            InternalError: the account could not be read back after creation
        """
        email = normalize_identifier(email)
        username = normalize_identifier(username)

        existing = await self.account_repository.find_by_username_or_email(db, username, email)
        if existing:
            raise ConflictError("User with email or username already exists")

        account = await self.account_repository.create(
            db,
            email=email,
            username=username,
            full_name=full_name,
            password_hash=self._hash_new_password(password),
            is_email_verified=False
        )

        verification = self.token_service.mint_single_use_token()
        account.set_email_verification(verification.hashed, verification.expiry)
        await self.account_repository.save(db, account, skip_validation=True)

        await self._send_verification_email(account, verification.plaintext, base_url)

        created = await self.account_repository.find_by_id(db, account.id)
        if created is None:
            logger.error("Registered account missing on re-read", account_id=account.id)
            raise InternalError("Something went wrong while registering a user")

        logger.info("Account registered", account_id=created.id)
        return AccountResponse.model_validate(created)

    async def issue_session_tokens(self, db: AsyncSession, account_id: int) -> SessionTokens:
        """
        Mint an access/refresh pair and store the refresh token.

        The stored refresh token is overwritten, so only the newest one stays
        valid. Every failure surfaces as ``InternalError``.
        """
        try:
            account = await self.account_repository.find_by_id(db, account_id)
            if account is None:
                raise LookupError(f"account {account_id} not found")

            access_token = self.token_service.mint_access_token(
                account.id, account.email, account.username
            )
            refresh_token = self.token_service.mint_refresh_token(account.id)

            account.refresh_token = refresh_token
            await self.account_repository.save(db, account, skip_validation=True)
        except Exception as e:
            logger.error("Session token issuance failed", account_id=account_id, error=str(e))
            raise InternalError(
                "Something went wrong while generating access and refresh token"
            ) from e

        return SessionTokens(access_token=access_token, refresh_token=refresh_token)

    async def verify_email(self, db: AsyncSession, plaintext_token: str) -> AccountResponse:
        """
        Consume an email verification token.

        Raises:
            NotFoundOrExpiredError: unknown, already used or expired token
        """
        token_hash = self.token_service.hash_single_use_token(plaintext_token)
        account = await self.account_repository.find_by_email_verification_hash(db, token_hash)
        if account is None:
            logger.info("Email verification token not found")
            raise NotFoundOrExpiredError()

        if Account.token_expired(account.email_verification_expiry, self._now()):
            logger.info("Email verification token expired", account_id=account.id)
            raise NotFoundOrExpiredError()

        account.is_email_verified = True
        account.clear_email_verification()
        await self.account_repository.save(db, account, skip_validation=True)

        logger.info("Email verified", account_id=account.id)
        return AccountResponse.model_validate(account)

    async def resend_email_verification(
        self,
        db: AsyncSession,
        account_id: int,
        base_url: str
    ) -> None:
        """Replace any pending verification token and mail a fresh one."""
        account = await self._get_account(db, account_id)
        if account.is_email_verified:
            raise ConflictError("Email is already verified")

        verification = self.token_service.mint_single_use_token()
        account.set_email_verification(verification.hashed, verification.expiry)
        await self.account_repository.save(db, account, skip_validation=True)

        await self._send_verification_email(account, verification.plaintext, base_url)
        logger.info("Email verification re-sent", account_id=account.id)

    async def login(
        self,
        db: AsyncSession,
        password: str,
        email: Optional[str] = None,
        username: Optional[str] = None
    ) -> Tuple[AccountResponse, SessionTokens]:
        """
        Check credentials and open a session.

        Raises:
            UnauthorizedError: unknown account or wrong password
        """
        account = await self.account_repository.find_by_identifier(
            db, username=username, email=email
        )
        if account is None or not SecurityService.verify_password(password, account.password_hash):
            logger.info("Login rejected", account_id=account.id if account else None)
            raise UnauthorizedError("Invalid user credentials")

        if SecurityService.needs_rehash(account.password_hash):
            self._set_password(account, password)
            await self.account_repository.save(db, account)

        tokens = await self.issue_session_tokens(db, account.id)
        logger.info("Login succeeded", account_id=account.id)
        return AccountResponse.model_validate(account), tokens

    async def refresh_session(self, db: AsyncSession, refresh_token: str) -> SessionTokens:
        """
        Rotate a refresh token.

        The presented token has to be the one currently stored on the
        account; anything older was superseded and is rejected.
        """
        payload = self.token_service.decode_refresh_token(refresh_token)

        try:
            account_id = int(payload["sub"])
        except (KeyError, TypeError, ValueError):
            raise UnauthorizedError("Invalid refresh token")

        account = await self.account_repository.find_by_id(db, account_id)
        if account is None:
            raise UnauthorizedError("Invalid refresh token")

        stored = account.refresh_token
        if not stored or not SecurityService.tokens_match(refresh_token, stored):
            logger.info("Stale refresh token presented", account_id=account.id)
            raise UnauthorizedError("Refresh token is expired or used")

        return await self.issue_session_tokens(db, account.id)

    async def logout(self, db: AsyncSession, account_id: int) -> None:
        """End the account's session by dropping its refresh token."""
        account = await self._get_account(db, account_id)
        account.refresh_token = None
        await self.account_repository.save(db, account, skip_validation=True)
        logger.info("Logged out", account_id=account.id)

    async def request_password_reset(self, db: AsyncSession, email: str) -> None:
        """
        Mail a password reset link if the address belongs to an account.

        The caller sees the same outcome either way so the endpoint cannot be
        used to probe for registered addresses.
        """
        account = await self.account_repository.find_by_identifier(db, email=email)
        if account is None:
            logger.info("Password reset requested for unknown email")
            return

        reset = self.token_service.mint_single_use_token()
        account.set_forgot_password(reset.hashed, reset.expiry)
        await self.account_repository.save(db, account, skip_validation=True)

        reset_url = f"{self.forgot_password_redirect_url}/{reset.plaintext}"
        await self._dispatch(
            account,
            FORGOT_PASSWORD_SUBJECT,
            forgot_password_content(account.username, reset_url)
        )
        logger.info("Password reset requested", account_id=account.id)

    async def reset_forgotten_password(
        self,
        db: AsyncSession,
        plaintext_token: str,
        new_password: str
    ) -> None:
        """
        Consume a password reset token and set the new password.

        The active session is ended as well.

        Raises:
            NotFoundOrExpiredError: unknown, already used or expired token
        """
        token_hash = self.token_service.hash_single_use_token(plaintext_token)
        account = await self.account_repository.find_by_forgot_password_hash(db, token_hash)
        if account is None:
            logger.info("Password reset token not found")
            raise NotFoundOrExpiredError()

        if Account.token_expired(account.forgot_password_expiry, self._now()):
            logger.info("Password reset token expired", account_id=account.id)
            raise NotFoundOrExpiredError()

        self._set_password(account, new_password)
        account.clear_forgot_password()
        account.refresh_token = None
        await self.account_repository.save(db, account)
        logger.info("Password reset completed", account_id=account.id)

    async def change_current_password(
        self,
        db: AsyncSession,
        account_id: int,
        old_password: str,
        new_password: str
    ) -> None:
        """
        Change the password of a signed-in account.

        Raises:
            UnauthorizedError: old password does not match
        """
        account = await self._get_account(db, account_id)
        if not SecurityService.verify_password(old_password, account.password_hash):
            raise UnauthorizedError("Invalid old password")

        self._set_password(account, new_password)
        await self.account_repository.save(db, account)
        logger.info("Password changed", account_id=account.id)

    async def get_account_view(self, db: AsyncSession, account_id: int) -> AccountResponse:
        account = await self._get_account(db, account_id)
        return AccountResponse.model_validate(account)

    async def _get_account(self, db: AsyncSession, account_id: int) -> Account:
        account = await self.account_repository.find_by_id(db, account_id)
        if account is None:
            raise UnauthorizedError("Invalid access token")
        return account

    @staticmethod
    def _hash_new_password(password: str) -> str:
        return SecurityService.get_password_hash(password)

    def _set_password(self, account: Account, password: str) -> None:
        # The only place a stored password changes; the repository never hashes.
        account.password_hash = self._hash_new_password(password)

    async def _send_verification_email(
        self,
        account: Account,
        plaintext_token: str,
        base_url: str
    ) -> None:
        verification_url = (
            f"{base_url.rstrip('/')}{self.api_prefix}/users/verify-email/{plaintext_token}"
        )
        await self._dispatch(
            account,
            VERIFY_EMAIL_SUBJECT,
            email_verification_content(account.username, verification_url)
        )

    async def _dispatch(self, account: Account, subject: str, content: MailContent) -> None:
        try:
            delivered = await self.notifier.send(account.email, subject, content)
        except Exception as e:
            logger.error("Notification dispatch raised", account_id=account.id, error=str(e))
            return
        if not delivered:
            logger.warning("Notification not delivered", account_id=account.id, subject=subject)

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

