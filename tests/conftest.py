"""
Test configuration and fixtures.

Provides:
- Database session with savepoint (rollback after each test)
- Factories for counselors, courses, leads and sessions
- JWT token minting for authenticated tests
- HTTPX AsyncClient per role with CSRF header
"""
import os
import uuid
from datetime import datetime, timezone
from typing import AsyncGenerator, Generator

# Must be set before the application modules read settings
os.environ["TESTING"] = "1"
os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from admissions.core.deps import COOKIE_NAME, CSRF_HEADER, CSRF_HEADER_VALUE, get_db
from admissions.core.security import create_session_token
from admissions.db.base import Base
from admissions.db.enums import Availability, LeadStatus, Role, SessionStatus
from admissions.db.models import CounselingSession, CounselorProfile, Course, Lead, User
from admissions.db.session import SessionLocal, enable_sqlite_savepoints
from admissions.main import app


T0 = datetime(2026, 3, 10, 10, 0, tzinfo=timezone.utc)


# =============================================================================
# Database Fixtures (Savepoint pattern)
# =============================================================================

test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
enable_sqlite_savepoints(test_engine)
Base.metadata.create_all(test_engine)


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Creates a database session inside an outer transaction.

    The session joins the connection through a SAVEPOINT, so app code can
    call commit() without ending the test transaction.
    """
    connection = test_engine.connect()
    transaction = connection.begin()
    session = SessionLocal(bind=connection, join_transaction_mode="create_savepoint")

    yield session

    session.close()
    # Rollback outer transaction - undoes all test changes
    transaction.rollback()
    connection.close()


# =============================================================================
# Factories
# =============================================================================

@pytest.fixture
def make_user(db: Session):
    def _make(role: Role = Role.COUNSELOR, **overrides) -> User:
        user = User(
            id=uuid.uuid4(),
            email=f"user-{uuid.uuid4().hex[:8]}@test.com",
            display_name=overrides.pop("display_name", f"{role.value.title()} User"),
            role=role.value,
            is_active=True,
            token_version=1,
            **overrides,
        )
        db.add(user)
        db.flush()
        return user

    return _make


@pytest.fixture
def make_counselor(db: Session):
    def _make(
        full_name: str = "Test Counselor",
        *,
        expertise: list[str] | None = None,
        languages: list[str] | None = None,
        availability: Availability = Availability.ACTIVE,
        current_load: int = 0,
        max_capacity: int = 50,
        user: User | None = None,
        created_at: datetime | None = None,
    ) -> CounselorProfile:
        counselor = CounselorProfile(
            id=uuid.uuid4(),
            user_id=user.id if user else None,
            full_name=full_name,
            expertise=expertise if expertise is not None else [],
            languages=languages if languages is not None else ["English"],
            availability=availability.value,
            current_load=current_load,
            max_capacity=max_capacity,
        )
        if created_at is not None:
            counselor.created_at = created_at
        db.add(counselor)
        db.flush()
        return counselor

    return _make


@pytest.fixture
def course(db: Session) -> Course:
    course = Course(id=uuid.uuid4(), name="Computer Science", code=f"CS-{uuid.uuid4().hex[:6]}")
    db.add(course)
    db.flush()
    return course


@pytest.fixture
def make_lead(db: Session, course: Course):
    counter = iter(range(1, 10_000))

    def _make(
        *,
        counselor: CounselorProfile | None = None,
        status: LeadStatus = LeadStatus.NEW,
        preferred_language: str = "English",
        submitted_at: datetime | None = None,
        course_id: uuid.UUID | None = None,
    ) -> Lead:
        lead = Lead(
            id=uuid.uuid4(),
            lead_number=f"LEAD-TEST-{next(counter):04d}-{uuid.uuid4().hex[:4]}",
            student_name="Test Student",
            parent_name="Test Parent",
            parent_mobile="+15551234567",
            preferred_language=preferred_language,
            course_id=course_id or course.id,
            assigned_counselor_id=counselor.id if counselor else None,
            auto_assigned=False,
            assignment_reason="",
            status=status.value,
            submitted_at=submitted_at or T0,
        )
        db.add(lead)
        db.flush()
        return lead

    return _make


@pytest.fixture
def make_session(db: Session):
    def _make(
        lead: Lead,
        counselor: CounselorProfile,
        scheduled_date: datetime,
        status: SessionStatus = SessionStatus.SCHEDULED,
        remarks: str | None = None,
    ) -> CounselingSession:
        session = CounselingSession(
            id=uuid.uuid4(),
            lead_id=lead.id,
            counselor_id=counselor.id,
            scheduled_date=scheduled_date,
            status=status.value,
            remarks=remarks,
        )
        db.add(session)
        db.flush()
        return session

    return _make


# =============================================================================
# Client Fixtures
# =============================================================================

def _override_db(db: Session):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db


def authed_client_for(db: Session, user: User) -> AsyncClient:
    """AsyncClient carrying the user's session cookie and the CSRF header."""
    token = create_session_token(
        user_id=user.id,
        role=user.role,
        token_version=user.token_version,
    )
    _override_db(db)
    return AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        cookies={COOKIE_NAME: token},
        headers={CSRF_HEADER: CSRF_HEADER_VALUE},
    )


@pytest.fixture(scope="function")
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """Unauthenticated AsyncClient for public endpoints."""
    _override_db(db)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def admin_client(db: Session, make_user) -> AsyncGenerator[AsyncClient, None]:
    async with authed_client_for(db, make_user(Role.ADMIN)) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def management_client(db: Session, make_user) -> AsyncGenerator[AsyncClient, None]:
    async with authed_client_for(db, make_user(Role.MANAGEMENT)) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def counselor_user(make_user, make_counselor) -> CounselorProfile:
    """Counselor profile linked to a COUNSELOR login."""
    user = make_user(Role.COUNSELOR, display_name="Logged In Counselor")
    return make_counselor("Logged In Counselor", user=user)


@pytest.fixture(scope="function")
async def counselor_client(
    db: Session, counselor_user: CounselorProfile
) -> AsyncGenerator[AsyncClient, None]:
    async with authed_client_for(db, counselor_user.user) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def client_for(db: Session):
    """Factory for authenticated clients, for tests that need custom users or headers."""
    yield lambda user: authed_client_for(db, user)
    app.dependency_overrides.clear()
