"""Pytest configuration and fixtures."""
import os
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

TEST_DB_PATH = Path("test_storevisit.db")
if TEST_DB_PATH.exists():
    TEST_DB_PATH.unlink()

TEST_DATABASE_URL = f"sqlite+aiosqlite:///{TEST_DB_PATH}"
os.environ.setdefault("DATABASE_URL", TEST_DATABASE_URL)
os.environ.setdefault("LOG_FORMAT", "text")
os.environ.setdefault("DEFAULT_LOCALE", "en")

from storevisit.main import app  # noqa: E402
from storevisit.database import Base, get_db  # noqa: E402
from storevisit.models.form import TemplateStatus  # noqa: E402
from storevisit.schemas.form import FormTemplateCreate  # noqa: E402
from storevisit.services.form_template_service import form_template_service  # noqa: E402


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


@pytest.fixture(scope="function")
def client(db_session: AsyncSession):
    """Create a test client overriding database dependency."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def make_questions():
    """A template touching every question type."""
    return [
        {"id": "clean", "type": "yes_no", "title": "Store is clean", "required": True,
         "config": {"expected_value": True}},
        {"id": "facings", "type": "number", "title": "Facings on shelf", "required": True,
         "config": {"min": 4, "max": 12}},
        {"id": "display", "type": "single_select", "title": "Display type",
         "options": [{"value": "endcap"}, {"value": "island"}, {"value": "none"}],
         "config": {"expected_value": "endcap", "allow_partial": True}},
        {"id": "brands", "type": "multi_select", "title": "Brands present",
         "options": [{"value": "a"}, {"value": "b"}, {"value": "c"}],
         "config": {"expected_value": ["a", "b"], "allow_partial": True}},
        {"id": "shelf_photo", "type": "photo", "title": "Shelf photo", "required": True,
         "config": {"min_photos": 1, "max_photos": 3}},
        {"id": "notes", "type": "long_text", "title": "Notes"},
    ]


async def create_form(db_session, name="Store Visit", scope=None, questions=None, publish=False):
    """Create a draft (optionally published) form template through the service."""
    template = await form_template_service.create_template(
        db_session,
        template_data=FormTemplateCreate(
            name=name,
            scope=scope or {"kind": "all"},
            questions=questions or make_questions(),
            created_by="tester",
        ),
    )
    if publish:
        template = await form_template_service.publish_template(db_session, template_id=template.id)
    return template


@pytest_asyncio.fixture
async def draft_form(db_session: AsyncSession):
    """A draft form template scoped to all stores."""
    return await create_form(db_session)


@pytest_asyncio.fixture
async def published_form(db_session: AsyncSession):
    """A published form template scoped to all stores."""
    template = await create_form(db_session, name="Published Visit", publish=True)
    assert template.status == TemplateStatus.PUBLISHED
    return template
