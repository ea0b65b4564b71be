"""Shared fixtures: isolated data directories and an in-memory database."""
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from scenecut import models  # noqa: F401
from scenecut.config import settings
from scenecut.db.database import Base, enable_sqlite_foreign_keys


@pytest.fixture(autouse=True)
def data_dirs(tmp_path, monkeypatch):
    data_dir = tmp_path / "data"
    analysis_dir = data_dir / "analysis"
    analysis_dir.mkdir(parents=True)
    monkeypatch.setattr(settings, "data_dir", data_dir)
    monkeypatch.setattr(settings, "analysis_dir", analysis_dir)
    return data_dir


@pytest_asyncio.fixture
async def db_session():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_foreign_keys(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_maker() as session:
        yield session

    await engine.dispose()
