import hashlib
import hmac

from passlib.context import CryptContext
import structlog

logger = structlog.get_logger()

# bcrypt work factor; every hash costs 2**10 rounds.
BCRYPT_ROUNDS = 10

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=BCRYPT_ROUNDS,
    bcrypt__min_rounds=BCRYPT_ROUNDS,
)


class SecurityService:
    """Credential hashing and digest helpers"""

    @staticmethod
    def get_password_hash(password: str) -> str:
        """Generate a salted password hash"""
        return pwd_context.hash(password)

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        """Verify a password against its hash"""
        if not hashed_password:
            return False
        try:
            return pwd_context.verify(plain_password, hashed_password)
        except (ValueError, TypeError):
            # Unrecognised or corrupt digest
            logger.warning("Password hash could not be identified")
            return False

    @staticmethod
    def needs_rehash(hashed_password: str) -> bool:
        """Whether a stored hash was produced under outdated parameters"""
        try:
            return pwd_context.needs_update(hashed_password)
        except (ValueError, TypeError):
            return True

    @staticmethod
    def hash_token(token: str) -> str:
        """Unsalted SHA-256 digest used to look single-use tokens up by value"""
        return hashlib.sha256(token.encode("utf-8")).hexdigest()

    @staticmethod
    def tokens_match(presented: str, stored: str) -> bool:
        """Constant-time comparison of two opaque tokens"""
        return hmac.compare_digest(presented.encode("utf-8"), stored.encode("utf-8"))

