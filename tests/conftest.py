import os
import tempfile

# Settings are read at import time, so the environment is prepared first.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["IMAGES_PATH"] = tempfile.mkdtemp(prefix="kollector-images-")
os.environ["DISCOGS_IMPORT_DELAY_SECONDS"] = "0"
os.environ["LLM_API_KEY"] = ""
os.environ["ENVIRONMENT"] = "Production"

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from kollector.core.security import create_access_token
from kollector.models import kollection, lookups, music_release, now_playing, user_list  # noqa: F401
from kollector.models.user import ApplicationUser, UserProfile
from kollector.repositories.unit_of_work import UnitOfWork
from kollector.services.database import Base, enable_sqlite_foreign_keys, get_db
from kollector.services.image_storage import ImageStorage, get_image_storage


@pytest.fixture
async def engine():
    """In-memory SQLite shared by every session of one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    enable_sqlite_foreign_keys(engine.sync_engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def image_storage(tmp_path):
    return ImageStorage(str(tmp_path / "images"))


@pytest.fixture
def uow(db_session, image_storage):
    return UnitOfWork(db_session, image_storage)


async def make_user(session, google_sub: str, email: str, is_admin: bool = False) -> ApplicationUser:
    user = ApplicationUser(google_sub=google_sub, email=email, display_name=email.split("@")[0], is_admin=is_admin)
    session.add(user)
    await session.flush()
    session.add(UserProfile(user_id=user.id))
    await session.commit()
    return user


@pytest.fixture
async def user(db_session):
    return await make_user(db_session, "google-user", "user@example.com")


@pytest.fixture
async def other_user(db_session):
    return await make_user(db_session, "google-other", "other@example.com")


@pytest.fixture
async def admin(db_session):
    return await make_user(db_session, "google-admin", "admin@example.com", is_admin=True)


def auth_headers(user: ApplicationUser) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest.fixture
async def client(session_factory, image_storage):
    """API client with every request running on the test database."""
    from main import app

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_image_storage] = lambda: image_storage
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
