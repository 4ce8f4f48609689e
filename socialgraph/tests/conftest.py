import os
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

# The app module builds its engine at import time; point it at SQLite before anything imports it
os.environ.setdefault('DATABASE_URL', 'sqlite+aiosqlite://')

from sqlalchemy import event, select, func  # noqa: E402
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from socialgraph import crud  # noqa: E402
from socialgraph.follow_store import FollowStore  # noqa: E402
from socialgraph.friendships import FriendshipDeriver  # noqa: E402
from socialgraph.models import Base  # noqa: E402
from socialgraph.models.follows import Follow  # noqa: E402
from socialgraph.models.friendships import Friendship  # noqa: E402
from socialgraph.service import SocialGraphService  # noqa: E402


class TickingClock:
    """Deterministic clock: every call is one second after the previous one"""

    def __init__(self, start=None, step=timedelta(seconds=1)):
        self.current = start or datetime(2025, 1, 1, tzinfo=timezone.utc)
        self.step = step

    def __call__(self):
        self.current = self.current + self.step
        return self.current


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'socialgraph.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def follow_store(clock):
    return FollowStore(clock=clock)


@pytest.fixture
def deriver(follow_store, clock):
    return FriendshipDeriver(follow_store, clock=clock)


@pytest.fixture
def service(session_factory, follow_store, deriver):
    return SocialGraphService(session_factory, follow_store=follow_store, friendship_deriver=deriver)


@pytest.fixture
def make_users(session_factory):
    async def _make(*user_ids):
        async with session_factory() as session:
            async with session.begin():
                for user_id in user_ids:
                    await crud.create_user(session, f"user{user_id}", display_name=f"User {user_id}", user_id=user_id)
        return user_ids
    return _make


@pytest.fixture
def count_rows(session_factory):
    async def _count(model, *criteria):
        async with session_factory() as session:
            q = await session.execute(select(func.count()).select_from(model).where(*criteria))
            return q.scalar_one()
    return _count


@pytest.fixture
def friendship_rows(session_factory):
    async def _rows():
        async with session_factory() as session:
            q = await session.execute(select(Friendship.user_low, Friendship.user_high))
            return [tuple(row) for row in q.all()]
    return _rows


@pytest.fixture
def edge_exists(session_factory):
    async def _exists(follower, following):
        async with session_factory() as session:
            q = await session.execute(
                select(Follow.id).where(Follow.follower_id == follower, Follow.following_id == following)
            )
            return q.first() is not None
    return _exists


@pytest_asyncio.fixture
async def fk_session_factory(tmp_path):
    """Like `session_factory`, but SQLite enforces foreign keys as Postgres does"""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'socialgraph_fk.db'}")

    @event.listens_for(engine.sync_engine, 'connect')
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute('PRAGMA foreign_keys=ON')
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()
