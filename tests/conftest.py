"""
Pytest configuration and fixtures for account service testing.
Provides settings, database, notifier and application fixtures with proper cleanup.
"""
from typing import AsyncGenerator, List, Optional, Tuple
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from account_service.core.config import Settings
from account_service.core.database import Database
from account_service.main import create_app
from account_service.repositories.account_repository import AccountRepository
from account_service.services.account_service import AccountService
from account_service.services.auth.token_service import TokenService
from account_service.services.notification_service import MailContent
from tests.factories import DEFAULT_PASSWORD

TEST_ACCESS_SECRET = "access-signing-key-for-test-runs-only-abcdefghijklmn"
TEST_REFRESH_SECRET = "refresh-signing-key-for-test-runs-only-opqrstuvwxyz"
TEST_PASSWORD = DEFAULT_PASSWORD
RESET_REDIRECT_URL = "http://frontend.test/reset-password"


class RecordingDispatcher:
    """Notifier that keeps every message instead of sending it."""

    def __init__(self, deliver: bool = True):
        self.deliver = deliver
        self.sent: List[Tuple[str, str, MailContent]] = []

    async def send(self, to: str, subject: str, content: MailContent) -> bool:
        self.sent.append((to, subject, content))
        return self.deliver

    @property
    def last_link(self) -> Optional[str]:
        return self.sent[-1][2].link if self.sent else None

    @property
    def last_token(self) -> Optional[str]:
        link = self.last_link
        return link.rsplit("/", 1)[-1] if link else None


def build_settings(**overrides) -> Settings:
    values = {
        "ENVIRONMENT": "test",
        "LOG_LEVEL": "WARNING",
        "ACCESS_TOKEN_SECRET": TEST_ACCESS_SECRET,
        "REFRESH_TOKEN_SECRET": TEST_REFRESH_SECRET,
        "FORGOT_PASSWORD_REDIRECT_URL": RESET_REDIRECT_URL,
        "SMTP_HOST": None,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Test settings backed by a throwaway SQLite file."""
    return build_settings(DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'accounts.db'}")


@pytest_asyncio.fixture
async def database(settings) -> AsyncGenerator[Database, None]:
    """Create the schema for one test and close the engine afterwards."""
    database = Database(settings)
    await database.create_all()
    yield database
    await database.dispose()


@pytest_asyncio.fixture
async def db_session(database) -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test."""
    async with database.session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def notifier() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def token_service(settings) -> TokenService:
    return TokenService(settings)


@pytest.fixture
def account_repository() -> AccountRepository:
    return AccountRepository()


@pytest.fixture
def account_service(settings, account_repository, token_service, notifier) -> AccountService:
    return AccountService(
        settings=settings,
        account_repository=account_repository,
        token_service=token_service,
        notifier=notifier
    )


@pytest.fixture
def app(settings, database, account_service):
    """Application wired to the test database and the recording notifier."""
    application = create_app(settings)
    application.state.database = database
    application.state.account_service = account_service
    return application


@pytest_asyncio.fixture
async def async_client(app) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def registered_account(account_service, db_session):
    """An unverified account registered through the service."""
    return await account_service.register(
        db=db_session,
        email="shreya@example.com",
        username="shreya",
        password=TEST_PASSWORD,
        base_url="http://test",
        full_name="Shreya Rao"
    )
