import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app import models  # noqa: F401
from app.database import Base, create_engine_from_url, create_session_factory, get_db
from app.main import app


@pytest_asyncio.fixture
async def engine(tmp_path):
    """Fresh file-backed SQLite database per test (shared by all sessions)."""
    engine = create_engine_from_url(f"sqlite+aiosqlite:///{tmp_path / 'documents.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
