"""Pytest fixtures for the vidhub backend."""

from collections.abc import AsyncIterator, Iterator
from datetime import timedelta
from pathlib import Path

from alembic import command
from alembic.config import Config
import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from api.deps import get_blob_store, get_db
from app import create_app
from core import TokenCodec, hash_password
from core.config import settings
from models import User
from auth_helpers import PASSWORD
from services import UploadedBlob

TEST_ACCESS_SECRET = "test-access-secret-0123456789abcdef0123456789"
TEST_REFRESH_SECRET = "test-refresh-secret-0123456789abcdef0123456789"


def _run_alembic_migrations(database_url: str) -> None:
    """Apply Alembic migrations to the given database URL."""
    backend_dir = Path(__file__).resolve().parents[1]
    alembic_cfg = Config(str(backend_dir / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(backend_dir / "alembic"))
    alembic_cfg.attributes["configure_logger"] = False

    original_database_url = settings.database_url
    try:
        settings.database_url = database_url
        command.upgrade(alembic_cfg, "head")
    finally:
        settings.database_url = original_database_url


@pytest.fixture(scope="session")
def test_database_url(tmp_path_factory) -> str:
    """Create and migrate a file-backed SQLite database for tests."""
    db_dir = tmp_path_factory.mktemp("sqlite")
    db_path = db_dir / "backend-test.db"
    database_url = f"sqlite+aiosqlite:///{db_path}"
    _run_alembic_migrations(database_url)
    return database_url


@pytest_asyncio.fixture()
async def test_engine(test_database_url: str) -> AsyncIterator:
    """Create an async engine bound to the migrated SQLite test database."""
    engine = create_async_engine(
        test_database_url,
        connect_args={"check_same_thread": False},
    )
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_maker(test_engine) -> async_sessionmaker[AsyncSession]:
    """Return a session factory bound to the test engine."""
    return async_sessionmaker(test_engine, expire_on_commit=False)


@pytest_asyncio.fixture(autouse=True)
async def clean_database(session_maker) -> AsyncIterator[None]:
    """Clear tables before each test to guarantee isolation."""
    async with session_maker() as session:
        for table in reversed(SQLModel.metadata.sorted_tables):
            await session.execute(table.delete())
        await session.commit()
    yield


@pytest_asyncio.fixture()
async def db_session(session_maker) -> AsyncIterator[AsyncSession]:
    """Provide a raw database session to tests."""
    async with session_maker() as session:
        yield session


class FakeBlobStore:
    """In-memory blob store recording every call."""

    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}
        self.uploads: list[tuple[str, str]] = []
        self.deleted: list[str] = []
        self.fail_uploads_for: set[str] = set()
        self.fail_deletes = False
        self._counter = 0

    async def upload(self, local_path, *, folder: str) -> UploadedBlob:
        self.uploads.append((str(local_path), folder))
        if folder in self.fail_uploads_for:
            raise ConnectionError(f"store rejected upload to {folder}")
        self._counter += 1
        suffix = Path(local_path).suffix
        key = f"{folder}/blob-{self._counter}{suffix}"
        self.objects[key] = Path(local_path).read_bytes()
        return UploadedBlob(key=key, url=f"https://media.test/{key}")

    async def delete(self, key: str) -> None:
        self.deleted.append(key)
        if self.fail_deletes:
            raise ConnectionError("store unreachable")
        self.objects.pop(key, None)


@pytest.fixture()
def blob_store() -> FakeBlobStore:
    return FakeBlobStore()


@pytest.fixture()
def app(session_maker, blob_store: FakeBlobStore) -> Iterator[FastAPI]:
    """Create the FastAPI app with test database and blob store overrides."""
    application = create_app()

    async def override_get_db() -> AsyncIterator[AsyncSession]:
        async with session_maker() as session:
            yield session

    application.dependency_overrides[get_db] = override_get_db
    application.dependency_overrides[get_blob_store] = lambda: blob_store
    yield application


@pytest_asyncio.fixture()
async def async_client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    """Return an HTTPX async client bound to the FastAPI app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest.fixture()
def codec() -> TokenCodec:
    return TokenCodec(
        access_secret=TEST_ACCESS_SECRET,
        refresh_secret=TEST_REFRESH_SECRET,
        access_ttl=timedelta(minutes=15),
        refresh_ttl=timedelta(days=10),
    )


@pytest.fixture()
def make_user(db_session: AsyncSession):
    async def _make_user(
        username: str = "u1",
        *,
        avatar_key: str | None = None,
        cover_image_key: str | None = None,
    ) -> User:
        user = User(
            username=username,
            email=f"{username}@example.com",
            full_name=username.title(),
            password_hash=hash_password(PASSWORD),
            avatar_key=avatar_key,
            avatar_url=f"https://media.test/{avatar_key}" if avatar_key else None,
            cover_image_key=cover_image_key,
            cover_image_url=f"https://media.test/{cover_image_key}" if cover_image_key else None,
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _make_user
