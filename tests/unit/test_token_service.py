"""
Unit tests for TokenService: JWT minting/validation and single-use tokens.
"""
from datetime import datetime, timedelta, timezone
import pytest
from jose import jwt

from account_service.core.exceptions import UnauthorizedError
from account_service.core.security import SecurityService
from account_service.services.auth.token_service import SINGLE_USE_TOKEN_BYTES


class TestAccessTokens:
    """Test suite for access tokens."""

    @pytest.mark.unit
    def test_access_token_carries_identity_claims(self, token_service):
        """Test access token round trip."""
        # Act
        token = token_service.mint_access_token(7, "shreya@example.com", "shreya")
        payload = token_service.decode_access_token(token)

        # Assert
        assert payload["sub"] == "7"
        assert payload["email"] == "shreya@example.com"
        assert payload["username"] == "shreya"
        assert payload["type"] == "access"
        assert payload["exp"] - payload["iat"] == 15 * 60

    @pytest.mark.unit
    def test_expired_access_token_rejected(self, token_service, settings):
        """Test expired tokens fail validation."""
        # Arrange
        past = datetime.now(timezone.utc) - timedelta(hours=1)
        token = jwt.encode(
            {"sub": "7", "type": "access", "iat": past, "exp": past + timedelta(minutes=15)},
            settings.ACCESS_TOKEN_SECRET,
            algorithm=settings.JWT_ALGORITHM
        )

        # Act & Assert
        with pytest.raises(UnauthorizedError) as exc_info:
            token_service.decode_access_token(token)
        assert exc_info.value.message == "Invalid access token"

    @pytest.mark.unit
    def test_foreign_signature_rejected(self, token_service, settings):
        """Tokens signed with any other key are refused."""
        token = jwt.encode(
            {"sub": "7", "type": "access"},
            "some-other-signing-key-nobody-configured-here",
            algorithm=settings.JWT_ALGORITHM
        )

        with pytest.raises(UnauthorizedError):
            token_service.decode_access_token(token)


class TestRefreshTokens:
    """Test suite for refresh tokens."""

    @pytest.mark.unit
    def test_refresh_token_claims(self, token_service):
        token = token_service.mint_refresh_token(7)
        payload = token_service.decode_refresh_token(token)

        assert payload["sub"] == "7"
        assert payload["type"] == "refresh"
        assert "email" not in payload
        assert payload["exp"] - payload["iat"] == 7 * 24 * 3600

    @pytest.mark.unit
    def test_refresh_tokens_are_unique(self, token_service):
        assert token_service.mint_refresh_token(7) != token_service.mint_refresh_token(7)

    @pytest.mark.unit
    def test_tokens_not_interchangeable(self, token_service):
        """Each token kind is signed with its own secret."""
        # Arrange
        access = token_service.mint_access_token(7, "shreya@example.com", "shreya")
        refresh = token_service.mint_refresh_token(7)

        # Act & Assert
        with pytest.raises(UnauthorizedError) as exc_info:
            token_service.decode_access_token(refresh)
        assert exc_info.value.status_code == 401

        with pytest.raises(UnauthorizedError) as exc_info:
            token_service.decode_refresh_token(access)
        assert exc_info.value.message == "Invalid refresh token"

    @pytest.mark.unit
    def test_wrong_type_claim_rejected(self, token_service, settings):
        """A refresh-signed token claiming to be an access token is refused."""
        token = jwt.encode(
            {"sub": "7", "type": "access"},
            settings.REFRESH_TOKEN_SECRET,
            algorithm=settings.JWT_ALGORITHM
        )

        with pytest.raises(UnauthorizedError):
            token_service.decode_refresh_token(token)


class TestSingleUseTokens:
    """Test suite for verification and reset tokens."""

    @pytest.mark.unit
    def test_single_use_token_shape(self, token_service):
        """Test plaintext, digest and expiry of a fresh token."""
        # Arrange
        before = datetime.now(timezone.utc)

        # Act
        token = token_service.mint_single_use_token()

        # Assert
        assert len(token.plaintext) == SINGLE_USE_TOKEN_BYTES * 2
        int(token.plaintext, 16)
        assert token.hashed == SecurityService.hash_token(token.plaintext)
        assert token.hashed != token.plaintext
        assert before + timedelta(minutes=20) <= token.expiry
        assert token.expiry <= datetime.now(timezone.utc) + timedelta(minutes=20)

    @pytest.mark.unit
    def test_single_use_tokens_differ(self, token_service):
        first = token_service.mint_single_use_token()
        second = token_service.mint_single_use_token()

        assert first.plaintext != second.plaintext
        assert first.hashed != second.hashed
