"""Pytest configuration and fixtures."""
import os
from datetime import datetime, timedelta
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

TEST_DB_PATH = Path("test_taskmarket.db")
if TEST_DB_PATH.exists():
    TEST_DB_PATH.unlink()

TEST_DATABASE_URL = f"sqlite+aiosqlite:///{TEST_DB_PATH}"
os.environ.setdefault("DATABASE_URL", TEST_DATABASE_URL)

import taskmarket.models  # noqa: E402,F401
from taskmarket.database import Base  # noqa: E402
from taskmarket.crud.project import campaign as crud_campaign  # noqa: E402
from taskmarket.crud.project import project as crud_project  # noqa: E402
from taskmarket.crud.project import sprint as crud_sprint  # noqa: E402
from taskmarket.models.project import Campaign, Project  # noqa: E402
from taskmarket.models.task_activity import UserRole  # noqa: E402
from taskmarket.schemas.common import Actor  # noqa: E402
from taskmarket.schemas.project import CampaignCreate, ProjectCreate, SprintCreate  # noqa: E402
from taskmarket.schemas.task import TaskCreate  # noqa: E402
from taskmarket.services.task_engine import TaskEngine  # noqa: E402
from taskmarket.services.task_lifecycle_service import task_lifecycle_service  # noqa: E402

NOW = datetime(2024, 3, 15, 12, 0, 0)

# Create test engine
test_engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


@pytest_asyncio.fixture(scope="function")
async def db_session():
    """Create a test database session."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def engine(db_session: AsyncSession) -> TaskEngine:
    """Task engine bound to the test database."""
    return TaskEngine(session_factory=TestSessionLocal)


@pytest.fixture
def employer() -> Actor:
    return Actor(id="employer-1", name="Priya Employer", role=UserRole.EMPLOYER, email="priya@example.com")


@pytest.fixture
def student() -> Actor:
    return Actor(id="student-1", name="Arjun Student", role=UserRole.STUDENT, email="arjun@example.com")


@pytest.fixture
def other_student() -> Actor:
    return Actor(id="student-2", name="Meera Student", role=UserRole.STUDENT, email="meera@example.com")


@pytest_asyncio.fixture
async def test_project(db_session: AsyncSession, employer: Actor) -> Project:
    """Create a test project."""
    project_in = ProjectCreate(
        name="Launch Campaign",
        description="Marketing launch",
        category="Marketing",
        owner_id=employer.id,
    )
    return await crud_project.create(
        db_session, obj_in={**project_in.model_dump(), "created_at": NOW, "updated_at": NOW}
    )


@pytest_asyncio.fixture
async def test_campaign(db_session: AsyncSession, test_project: Project) -> Campaign:
    """Create a sprint and a campaign inside the test project."""
    sprint_in = SprintCreate(
        project_id=test_project.id,
        name="Sprint 1",
        start_date=NOW,
        end_date=NOW + timedelta(days=14),
    )
    sprint = await crud_sprint.create(db_session, obj_in={**sprint_in.model_dump(), "created_at": NOW})
    campaign_in = CampaignCreate(
        sprint_id=sprint.id,
        name="Week 1",
        start_date=NOW,
        end_date=NOW + timedelta(days=7),
    )
    return await crud_campaign.create(db_session, obj_in={**campaign_in.model_dump(), "created_at": NOW})


@pytest.fixture
def make_task(db_session: AsyncSession, test_campaign: Campaign, employer: Actor):
    """Factory creating tasks in the test campaign."""
    campaign_id = test_campaign.id

    async def _make(now: datetime = NOW, **fields):
        fields.setdefault("title", "Design a logo")
        return await task_lifecycle_service.create(db_session, campaign_id, TaskCreate(**fields), employer, now=now)

    return _make
