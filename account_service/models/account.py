"""
Account model: identity, credentials and the single-use token slots it owns.
"""
from datetime import datetime
from typing import Dict, List, Optional
from sqlalchemy import Column, String, Boolean, DateTime, Text

from .base import BaseModel, ensure_aware

DEFAULT_AVATAR_URL = "https://placehold.co/600x400"


class Account(BaseModel):
    """Registered user account."""

    __tablename__ = "account"

    username = Column(String(100), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(200), nullable=True)
    password_hash = Column(String(255), nullable=False)
    is_email_verified = Column(Boolean, default=False, nullable=False)

    avatar_url = Column(String(500), default=DEFAULT_AVATAR_URL, nullable=False)
    avatar_local_path = Column(String(500), default="", nullable=False)

    refresh_token = Column(Text, nullable=True)

    email_verification_token_hash = Column(String(64), nullable=True, index=True)
    email_verification_expiry = Column(DateTime(timezone=True), nullable=True)

    forgot_password_token_hash = Column(String(64), nullable=True, index=True)
    forgot_password_expiry = Column(DateTime(timezone=True), nullable=True)

    @property
    def avatar(self) -> Dict[str, str]:
        return {
            "url": self.avatar_url or DEFAULT_AVATAR_URL,
            "local_path": self.avatar_local_path or "",
        }

    def set_email_verification(self, token_hash: str, expiry: datetime) -> None:
        self.email_verification_token_hash = token_hash
        self.email_verification_expiry = expiry

    def clear_email_verification(self) -> None:
        self.email_verification_token_hash = None
        self.email_verification_expiry = None

    def set_forgot_password(self, token_hash: str, expiry: datetime) -> None:
        self.forgot_password_token_hash = token_hash
        self.forgot_password_expiry = expiry

    def clear_forgot_password(self) -> None:
        self.forgot_password_token_hash = None
        self.forgot_password_expiry = None

    @staticmethod
    def token_expired(expiry: Optional[datetime], now: datetime) -> bool:
        return expiry is None or ensure_aware(expiry) <= now

    def validation_errors(self) -> List[str]:
        """Invariant violations for this record; empty when consistent."""
        errors = []
        if not self.username or self.username != self.username.strip().lower():
            errors.append("username must be non-empty, trimmed and lowercase")
        if not self.email or self.email != self.email.strip().lower():
            errors.append("email must be non-empty, trimmed and lowercase")
        if not self.password_hash:
            errors.append("password hash must not be empty")
        if (self.email_verification_token_hash is None) != (self.email_verification_expiry is None):
            errors.append("email verification token and expiry must be set together")
        if (self.forgot_password_token_hash is None) != (self.forgot_password_expiry is None):
            errors.append("forgot password token and expiry must be set together")
        return errors

    def __repr__(self) -> str:
        return f"<Account(id={self.id}, username={self.username})>"
