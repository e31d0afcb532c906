import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

import uuid
from dataclasses import dataclass
from typing import AsyncGenerator, Awaitable, Callable, Dict

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from classroll.api.v1.attendance.store import AttendanceStore, UpsertResult
from classroll.auth.models import User
from classroll.auth.schemas import CurrentUser
from classroll.auth.security import create_access_token
from classroll.core.models import SchoolClass, Student
from classroll.db.session import Base, build_engine, get_db
from classroll.main import app


TEST_DATABASE_URL = "sqlite+aiosqlite://"


@dataclass
class School:
    teacher: User
    other_teacher: User
    admin: User
    class_a: SchoolClass  # taught by `teacher`
    class_b: SchoolClass  # taught by `other_teacher`
    alice: Student
    bob: Student
    carol: Student
    dave: Student  # enrolled in class_b


def as_current_user(user: User) -> CurrentUser:
    return CurrentUser(
        id=user.id,
        email=user.email,
        full_name=f"{user.first_name} {user.last_name}",
        role=user.role,
    )


def auth_headers(user: User) -> Dict[str, str]:
    token = create_access_token(user.id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory SQLite database per test; StaticPool keeps the single connection alive."""
    engine = build_engine(TEST_DATABASE_URL, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
async def db_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Provide a database session for a test and override FastAPI dependency."""
    async_session = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:

        async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
            yield session

        app.dependency_overrides[get_db] = override_get_db
        yield session

    app.dependency_overrides.clear()


@pytest.fixture()
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture()
async def school(db_session: AsyncSession) -> School:
    teacher = User(id=uuid.uuid4(), first_name="Tina", last_name="Turner", email="tina@school.test", role="teacher")
    other_teacher = User(id=uuid.uuid4(), first_name="Omar", last_name="Ortiz", email="omar@school.test", role="teacher")
    admin = User(id=uuid.uuid4(), first_name="Ada", last_name="Admin", email="ada@school.test", role="admin")
    class_a = SchoolClass(id=uuid.uuid4(), class_name="Grade 5A", academic_year="2026", teacher_id=teacher.id)
    class_b = SchoolClass(id=uuid.uuid4(), class_name="Grade 5B", academic_year="2026", teacher_id=other_teacher.id)
    alice = Student(id=uuid.uuid4(), first_name="Alice", last_name="Adams", email="alice@school.test", class_id=class_a.id)
    bob = Student(id=uuid.uuid4(), first_name="Bob", last_name="Brown", email="bob@school.test", class_id=class_a.id)
    carol = Student(id=uuid.uuid4(), first_name="Carol", last_name="Clark", email="carol@school.test", class_id=class_a.id)
    dave = Student(id=uuid.uuid4(), first_name="Dave", last_name="Diaz", email="dave@school.test", class_id=class_b.id)

    db_session.add_all([teacher, other_teacher, admin])
    await db_session.flush()
    db_session.add_all([class_a, class_b])
    await db_session.flush()
    db_session.add_all([alice, bob, carol, dave])
    await db_session.commit()

    return School(
        teacher=teacher,
        other_teacher=other_teacher,
        admin=admin,
        class_a=class_a,
        class_b=class_b,
        alice=alice,
        bob=bob,
        carol=carol,
        dave=dave,
    )


@pytest.fixture()
def mark(db_session: AsyncSession, school: School) -> Callable[..., Awaitable[UpsertResult]]:
    """Write one record straight through the store, marked by the class teacher."""

    async def _mark(student: Student, day: str, status: str, notes=None, school_class=None) -> UpsertResult:
        school_class = school_class or school.class_a
        return await AttendanceStore(db_session).upsert(
            school_class.id, student.id, day, status, notes, school_class.teacher_id
        )

    return _mark


@pytest.fixture()
def current_user() -> Callable[[User], CurrentUser]:
    return as_current_user


@pytest.fixture()
def headers_for() -> Callable[[User], Dict[str, str]]:
    return auth_headers
