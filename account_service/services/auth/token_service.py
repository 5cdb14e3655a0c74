"""
Token service focused solely on token minting and validation.
Signs access and refresh JWTs with separate secrets and produces the random
single-use tokens behind email verification and password reset links.
"""

from typing import Any, Dict, NamedTuple
from datetime import datetime, timedelta, timezone
import secrets
from jose import JWTError, jwt
import structlog

from ...core.config import Settings
from ...core.exceptions import UnauthorizedError
from ...core.security import SecurityService

logger = structlog.get_logger()

SINGLE_USE_TOKEN_BYTES = 20


class SingleUseToken(NamedTuple):
    """Plaintext goes to the user; only ``hashed`` and ``expiry`` are stored."""

    plaintext: str
    hashed: str
    expiry: datetime


class TokenService:
    """Service responsible for access, refresh and single-use tokens."""

    def __init__(self, settings: Settings):
        self._access_secret = settings.ACCESS_TOKEN_SECRET
        self._refresh_secret = settings.REFRESH_TOKEN_SECRET
        self.algorithm = settings.JWT_ALGORITHM
        self.access_token_ttl = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        self.refresh_token_ttl = timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
        self.single_use_token_ttl = timedelta(minutes=settings.SINGLE_USE_TOKEN_EXPIRE_MINUTES)

    def mint_access_token(self, account_id: int, email: str, username: str) -> str:
        """
        Create a short-lived access token.

        Args:
            account_id: Account ID
            email: Account email
            username: Account username

        Returns:
            Signed JWT carrying the identity claims
        """
        now = datetime.now(timezone.utc)
        claims = {
            "sub": str(account_id),
            "email": email,
            "username": username,
            "type": "access",
            "iat": now,
            "exp": now + self.access_token_ttl,
        }
        token = jwt.encode(claims, self._access_secret, algorithm=self.algorithm)
        logger.debug("Access token minted", account_id=account_id)
        return token

    def mint_refresh_token(self, account_id: int) -> str:
        """
        Create a long-lived refresh token.

        Only the account id is embedded; ``jti`` keeps tokens minted within
        the same second distinct.
        """
        now = datetime.now(timezone.utc)
        claims = {
            "sub": str(account_id),
            "type": "refresh",
            "jti": secrets.token_urlsafe(16),
            "iat": now,
            "exp": now + self.refresh_token_ttl,
        }
        token = jwt.encode(claims, self._refresh_secret, algorithm=self.algorithm)
        logger.debug("Refresh token minted", account_id=account_id)
        return token

    def mint_single_use_token(self) -> SingleUseToken:
        """Generate a random verification/reset token with its stored digest."""
        plaintext = secrets.token_hex(SINGLE_USE_TOKEN_BYTES)
        return SingleUseToken(
            plaintext=plaintext,
            hashed=self.hash_single_use_token(plaintext),
            expiry=datetime.now(timezone.utc) + self.single_use_token_ttl,
        )

    @staticmethod
    def hash_single_use_token(plaintext: str) -> str:
        return SecurityService.hash_token(plaintext)

    def decode_access_token(self, token: str) -> Dict[str, Any]:
        """Validate an access token and return its claims."""
        return self._decode(token, self._access_secret, "access")

    def decode_refresh_token(self, token: str) -> Dict[str, Any]:
        """Validate a refresh token and return its claims."""
        return self._decode(token, self._refresh_secret, "refresh")

    def _decode(self, token: str, secret: str, expected_type: str) -> Dict[str, Any]:
        try:
            payload = jwt.decode(token, secret, algorithms=[self.algorithm])
        except JWTError as e:
            logger.debug("Token validation failed", token_type=expected_type, error=str(e))
            raise UnauthorizedError(f"Invalid {expected_type} token")

        if payload.get("type") != expected_type or not payload.get("sub"):
            raise UnauthorizedError(f"Invalid {expected_type} token")
        return payload
