from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import superfan_api.models  # noqa: F401
from superfan_api.app import create_app
from superfan_api.db.base import Base
from superfan_api.db.session import get_session
from superfan_api.models.club import Club
from superfan_api.observability.economy import get_economy_store


@pytest_asyncio.fixture
async def session_factory():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

    try:
        yield factory
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def app_with_db(session_factory):
    app = create_app()

    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session

    try:
        yield app, session_factory
    finally:
        app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def club(session_factory) -> Club:
    async with session_factory() as session:
        record = Club(name="Night Owls")
        session.add(record)
        await session.commit()
        await session.refresh(record)
        return record


@pytest.fixture
def member_id():
    return uuid4()


@pytest.fixture(autouse=True)
def reset_economy_store():
    get_economy_store().reset()
    yield
    get_economy_store().reset()
