"""Test configuration and fixtures for berrybuild."""

import os
from typing import AsyncGenerator, Generator

import pytest
from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from tests.models import Base

# Try to load environment variables from .env file
load_dotenv()


def _engine_kwargs(url: str) -> dict:
    if url.startswith('sqlite') and (':memory:' in url or url.endswith('://')):
        # one shared connection, otherwise every checkout sees an empty database
        return {'poolclass': StaticPool, 'connect_args': {'check_same_thread': False}}
    return {}


@pytest.fixture(scope="function")
def engine():
    """Synchronous engine; BERRYBUILD_TEST_DATABASE_URL overrides in-memory SQLite."""
    url = os.getenv('BERRYBUILD_TEST_DATABASE_URL') or 'sqlite://'
    eng = create_engine(url, future=True, **_engine_kwargs(url))
    Base.metadata.drop_all(eng)
    Base.metadata.create_all(eng)
    yield eng
    Base.metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture(scope="function")
def session(engine) -> Generator[Session, None, None]:
    """Session for one test; changes are rolled back afterwards."""
    with Session(engine, expire_on_commit=False) as s:
        yield s
        s.rollback()


@pytest.fixture(scope="function")
async def async_engine():
    url = os.getenv('BERRYBUILD_TEST_ASYNC_DATABASE_URL') or 'sqlite+aiosqlite:///:memory:'
    eng = create_async_engine(url, future=True, **_engine_kwargs(url))
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await eng.dispose()


@pytest.fixture(scope="function")
async def db_session(async_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a new async database session for each test function."""
    async_session = async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)
    async with async_session() as s:
        yield s
