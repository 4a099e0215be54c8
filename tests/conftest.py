"""Shared fixtures.

Every test gets its own SQLite database file with the schema created from the
models. The pool holds a single connection, so concurrent tasks in a test
queue for it instead of contending for SQLite's write lock.
"""

from collections.abc import AsyncIterator, Awaitable, Callable, Iterator
from datetime import UTC, datetime, timedelta
from pathlib import Path
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from learnhub.auth.models import User
from learnhub.auth.permissions import UserRole
from learnhub.auth.revocation import TokenRevocationRegistry
from learnhub.auth.schemas import TokenClaims
from learnhub.auth.security import hash_password
from learnhub.auth.service import AuthService
from learnhub.config import Settings
from learnhub.core.database import Database
from learnhub.courses import models as course_models  # noqa: F401
from learnhub.courses.service import CourseService, LessonService
from learnhub.enrollments import models as enrollment_models  # noqa: F401
from learnhub.enrollments.service import EnrollmentService
from learnhub.notifications.client import NotificationClient, NotificationDispatcher
from learnhub.progress import models as progress_models  # noqa: F401
from learnhub.progress.service import ProgressService
from learnhub.storage.service import ObjectStorageService


TEST_SECRET = "test-jwt-secret-key-for-learnhub-32chars!"


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Isolated settings: temp database, no Redis, no notifier, no log files."""
    return Settings(
        environment="testing",
        auth_secret_key=TEST_SECRET,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'learnhub.db'}",
        database_pool_size=1,
        database_max_overflow=0,
        redis_enabled=False,
        notifier_url=None,
        firebase_enabled=False,
        log_level="WARNING",
        log_to_file=False,
        rate_limit_auth_requests=1000,
    )


@pytest.fixture
async def db(settings: Settings) -> AsyncIterator[Database]:
    database = Database.from_settings(settings)
    await database.create_all()
    yield database
    await database.dispose()


@pytest.fixture
def notifier() -> AsyncMock:
    """Notification client double; ``send_notification`` is an AsyncMock."""
    return AsyncMock(spec=NotificationClient)


@pytest.fixture
def dispatcher(notifier: AsyncMock) -> NotificationDispatcher:
    return NotificationDispatcher(notifier, timeout_seconds=1.0)


@pytest.fixture
def storage(settings: Settings) -> ObjectStorageService:
    return ObjectStorageService(settings)


@pytest.fixture
def auth_service(db: Database, settings: Settings) -> AuthService:
    return AuthService(db, TokenRevocationRegistry(), settings)


@pytest.fixture
def course_service(db: Database, storage: ObjectStorageService) -> CourseService:
    return CourseService(db, storage)


@pytest.fixture
def lesson_service(db: Database, storage: ObjectStorageService) -> LessonService:
    return LessonService(db, storage)


@pytest.fixture
def enrollment_service(
    db: Database, dispatcher: NotificationDispatcher
) -> EnrollmentService:
    return EnrollmentService(db, dispatcher)


@pytest.fixture
def progress_service(
    db: Database,
    enrollment_service: EnrollmentService,
    dispatcher: NotificationDispatcher,
) -> ProgressService:
    return ProgressService(db, enrollment_service, dispatcher)


def claims_for(user: User) -> TokenClaims:
    """Verified claims for a stored user, as a protected route would see them."""
    now = datetime.now(UTC)
    return TokenClaims(
        user_id=user.id,
        email=user.email,
        role=UserRole(user.role),
        issued_at=now,
        expires_at=now + timedelta(hours=1),
        jti=f"test-{user.id}",
    )


@pytest.fixture
def make_user(db: Database) -> Callable[..., Awaitable[User]]:
    """Factory inserting a user row directly."""
    counter = 0

    async def _make_user(role: UserRole = UserRole.STUDENT, name: str = "") -> User:
        nonlocal counter
        counter += 1
        user = User(
            name=name or f"{role.value.title()} {counter}",
            email=f"{role.value}{counter}@example.com",
            password_hash=hash_password("secret123"),
            role=role.value,
        )
        async with db.transaction() as session:
            session.add(user)
        return user

    return _make_user


@pytest.fixture
def client(settings: Settings) -> Iterator[TestClient]:
    """Test client running the full application lifespan."""
    from learnhub.main import create_app  # noqa: PLC0415

    with TestClient(create_app(settings)) as test_client:
        yield test_client
