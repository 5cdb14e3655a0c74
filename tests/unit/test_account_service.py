"""
Unit tests for AccountService with mocked persistence and notifications.
"""
from unittest.mock import AsyncMock, MagicMock
import pytest

from account_service.core.exceptions import ConflictError, InternalError, UnauthorizedError
from account_service.core.security import SecurityService
from account_service.services.account_service import (
    AccountService,
    FORGOT_PASSWORD_SUBJECT,
    VERIFY_EMAIL_SUBJECT,
)
from tests.factories import AccountFactory, DEFAULT_PASSWORD, VerifiedAccountFactory


class TestAccountService:
    """Test suite for AccountService class."""

    @pytest.fixture
    def repository(self):
        return AsyncMock()

    @pytest.fixture
    def mock_notifier(self):
        notifier = AsyncMock()
        notifier.send.return_value = True
        return notifier

    @pytest.fixture
    def service(self, settings, repository, token_service, mock_notifier):
        """Create AccountService instance with mocked dependencies."""
        return AccountService(
            settings=settings,
            account_repository=repository,
            token_service=token_service,
            notifier=mock_notifier
        )

    @pytest.fixture
    def db(self):
        return MagicMock()

    @pytest.mark.unit
    async def test_register_success(self, service, repository, mock_notifier, db):
        """Test registration stores a digest and mails the plaintext link."""
        # Arrange
        account = AccountFactory(username="shreya", email="shreya@example.com")
        repository.find_by_username_or_email.return_value = None
        repository.create.return_value = account
        repository.find_by_id.return_value = account

        # Act
        result = await service.register(
            db=db,
            email=" Shreya@Example.com ",
            username="shreya",
            password="mypassword123",
            base_url="http://test/"
        )

        # Assert
        assert result.id == account.id
        assert result.is_email_verified is False

        create_kwargs = repository.create.call_args.kwargs
        assert create_kwargs["email"] == "shreya@example.com"
        assert create_kwargs["password_hash"] != "mypassword123"
        assert SecurityService.verify_password("mypassword123", create_kwargs["password_hash"])

        to, subject, content = mock_notifier.send.call_args.args
        assert to == "shreya@example.com"
        assert subject == VERIFY_EMAIL_SUBJECT
        assert content.link.startswith("http://test/api/v1/users/verify-email/")
        plaintext = content.link.rsplit("/", 1)[-1]
        assert account.email_verification_token_hash == SecurityService.hash_token(plaintext)
        assert account.email_verification_expiry is not None

    @pytest.mark.unit
    async def test_register_conflict(self, service, repository, mock_notifier, db):
        """Test registration with a taken username or email."""
        # Arrange
        repository.find_by_username_or_email.return_value = AccountFactory()

        # Act & Assert
        with pytest.raises(ConflictError) as exc_info:
            await service.register(
                db=db, email="taken@example.com", username="taken",
                password="mypassword123", base_url="http://test"
            )

        assert exc_info.value.status_code == 409
        assert exc_info.value.message == "User with email or username already exists"
        repository.create.assert_not_called()
        mock_notifier.send.assert_not_called()

    @pytest.mark.unit
    async def test_register_lost_insert_race(self, service, repository, mock_notifier, db):
        """The pre-check passes but the insert hits the unique index."""
        # Arrange
        repository.find_by_username_or_email.return_value = None
        repository.create.side_effect = ConflictError("User with email or username already exists")

        # Act & Assert
        with pytest.raises(ConflictError) as exc_info:
            await service.register(
                db=db, email="racer@example.com", username="racer",
                password="mypassword123", base_url="http://test"
            )

        assert exc_info.value.message == "User with email or username already exists"
        repository.create.assert_awaited_once()
        repository.save.assert_not_called()
        mock_notifier.send.assert_not_called()

    @pytest.mark.unit
    async def test_register_survives_notifier_errors(self, service, repository, mock_notifier, db):
        """A failing notifier never fails the registration."""
        # Arrange
        account = AccountFactory()
        repository.find_by_username_or_email.return_value = None
        repository.create.return_value = account
        repository.find_by_id.return_value = account
        mock_notifier.send.side_effect = RuntimeError("smtp down")

        # Act
        result = await service.register(
            db=db, email=account.email, username=account.username,
            password="mypassword123", base_url="http://test"
        )

        # Assert
        assert result.username == account.username

    @pytest.mark.unit
    async def test_register_missing_on_reread(self, service, repository, db):
        account = AccountFactory()
        repository.find_by_username_or_email.return_value = None
        repository.create.return_value = account
        repository.find_by_id.return_value = None

        with pytest.raises(InternalError) as exc_info:
            await service.register(
                db=db, email=account.email, username=account.username,
                password="mypassword123", base_url="http://test"
            )

        assert exc_info.value.message == "Something went wrong while registering a user"

    @pytest.mark.unit
    async def test_issue_session_tokens_stores_refresh_token(self, service, repository, token_service, db):
        """Test the minted refresh token becomes the stored one."""
        # Arrange
        account = AccountFactory()
        repository.find_by_id.return_value = account

        # Act
        tokens = await service.issue_session_tokens(db, account.id)

        # Assert
        assert account.refresh_token == tokens.refresh_token
        assert token_service.decode_access_token(tokens.access_token)["sub"] == str(account.id)
        assert token_service.decode_refresh_token(tokens.refresh_token)["sub"] == str(account.id)
        repository.save.assert_awaited_once()

    @pytest.mark.unit
    @pytest.mark.parametrize("failure", ["missing", "save"])
    async def test_issue_session_tokens_failure(self, service, repository, db, failure):
        """Every failure surfaces as the same internal error."""
        # Arrange
        if failure == "missing":
            repository.find_by_id.return_value = None
        else:
            repository.find_by_id.return_value = AccountFactory()
            repository.save.side_effect = RuntimeError("database unavailable")

        # Act & Assert
        with pytest.raises(InternalError) as exc_info:
            await service.issue_session_tokens(db, 42)

        assert exc_info.value.status_code == 500
        assert exc_info.value.message == (
            "Something went wrong while generating access and refresh token"
        )

    @pytest.mark.unit
    async def test_login_unknown_account(self, service, repository, db):
        repository.find_by_identifier.return_value = None

        with pytest.raises(UnauthorizedError) as exc_info:
            await service.login(db, password="mypassword123", username="ghost")

        assert exc_info.value.message == "Invalid user credentials"

    @pytest.mark.unit
    async def test_login_wrong_password(self, service, repository, db):
        repository.find_by_identifier.return_value = AccountFactory()

        with pytest.raises(UnauthorizedError) as exc_info:
            await service.login(db, password="wrong-password", email="user@example.com")

        assert exc_info.value.message == "Invalid user credentials"
        repository.save.assert_not_called()

    @pytest.mark.unit
    async def test_login_success(self, service, repository, db):
        """Test credentials check and session issuance."""
        # Arrange
        account = VerifiedAccountFactory()
        repository.find_by_identifier.return_value = account
        repository.find_by_id.return_value = account

        # Act
        view, tokens = await service.login(db, password=DEFAULT_PASSWORD, username=account.username)

        # Assert
        assert view.id == account.id
        assert account.refresh_token == tokens.refresh_token
        repository.find_by_identifier.assert_awaited_once_with(
            db, username=account.username, email=None
        )

    @pytest.mark.unit
    async def test_resend_for_verified_account(self, service, repository, mock_notifier, db):
        repository.find_by_id.return_value = VerifiedAccountFactory()

        with pytest.raises(ConflictError) as exc_info:
            await service.resend_email_verification(db, 1, "http://test")

        assert exc_info.value.message == "Email is already verified"
        mock_notifier.send.assert_not_called()

    @pytest.mark.unit
    async def test_password_reset_for_unknown_email_is_silent(self, service, repository, mock_notifier, db):
        """Unknown addresses produce no error and no email."""
        repository.find_by_identifier.return_value = None

        await service.request_password_reset(db, "ghost@example.com")

        mock_notifier.send.assert_not_called()
        repository.save.assert_not_called()

    @pytest.mark.unit
    async def test_password_reset_link_targets_frontend(self, service, repository, mock_notifier, settings, db):
        account = AccountFactory()
        repository.find_by_identifier.return_value = account

        await service.request_password_reset(db, account.email)

        to, subject, content = mock_notifier.send.call_args.args
        assert to == account.email
        assert subject == FORGOT_PASSWORD_SUBJECT
        assert content.link.startswith(settings.FORGOT_PASSWORD_REDIRECT_URL + "/")
        plaintext = content.link.rsplit("/", 1)[-1]
        assert account.forgot_password_token_hash == SecurityService.hash_token(plaintext)

    @pytest.mark.unit
    async def test_change_password_wrong_old_password(self, service, repository, db):
        account = AccountFactory()
        original_hash = account.password_hash
        repository.find_by_id.return_value = account

        with pytest.raises(UnauthorizedError) as exc_info:
            await service.change_current_password(db, account.id, "not-it", "new-password-1")

        assert exc_info.value.message == "Invalid old password"
        assert account.password_hash == original_hash

    @pytest.mark.unit
    async def test_operations_on_deleted_account(self, service, repository, db):
        """An access token for a vanished account is treated as invalid."""
        repository.find_by_id.return_value = None

        with pytest.raises(UnauthorizedError):
            await service.get_account_view(db, 99)
