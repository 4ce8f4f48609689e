"""
Follow Store: sole owner of the asymmetric `follows` relation.
Every method runs inside the caller's session; committing is the caller's job.
"""
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy import select, delete, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .errors import SelfActionError, AlreadyFollowingError, NotFollowingError
from .models.follows import Follow
from .pagination import Page, fetch_page

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Postgres names the violated constraint, SQLite lists its columns
_PAIR_CONFLICT_MARKERS = (
    "uix_follow_pair",
    "UNIQUE constraint failed: follows.follower_id, follows.following_id",
)


def is_pair_conflict(error: IntegrityError) -> bool:
    """True when `error` came from the one-edge-per-pair constraint"""
    message = str(error.orig)
    return any(marker in message for marker in _PAIR_CONFLICT_MARKERS)


class FollowStore:

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self.clock = clock

    async def exists(self, session: AsyncSession, follower: int, following: int) -> bool:
        q = await session.execute(
            select(Follow.id).where(Follow.follower_id == follower, Follow.following_id == following)
        )
        return q.first() is not None

    async def create(self, session: AsyncSession, follower: int, following: int) -> Follow:
        """Insert the edge (follower -> following); friendships are not touched here"""
        if follower == following:
            raise SelfActionError('Cannot follow yourself')
        if await self.exists(session, follower, following):
            raise AlreadyFollowingError(follower_id=follower, following_id=following)

        edge = Follow(follower_id=follower, following_id=following, created_at=self.clock())
        session.add(edge)
        try:
            await session.flush()
        except IntegrityError as e:
            if not is_pair_conflict(e):
                raise
            # a concurrent request inserted the same pair after our existence check
            logger.info(f"Follow {follower}->{following} lost an insert race: {e.orig}")
            raise AlreadyFollowingError(follower_id=follower, following_id=following) from e
        return edge

    async def delete(self, session: AsyncSession, follower: int, following: int) -> None:
        if follower == following:
            raise SelfActionError('Cannot unfollow yourself')
        result = await session.execute(
            delete(Follow).where(Follow.follower_id == follower, Follow.following_id == following)
        )
        if result.rowcount == 0:
            raise NotFollowingError(follower_id=follower, following_id=following)

    async def list_followers(self, session: AsyncSession, target: int, limit: Optional[int], cursor: Optional[str]) -> Page:
        """Identities following `target`, newest first"""
        stmt = select(Follow.follower_id.label('identity'), Follow.created_at, Follow.id).where(
            Follow.following_id == target
        )
        return await fetch_page(session, stmt, Follow.created_at, Follow.id, limit, cursor)

    async def list_following(self, session: AsyncSession, source: int, limit: Optional[int], cursor: Optional[str]) -> Page:
        """Identities `source` follows, newest first"""
        stmt = select(Follow.following_id.label('identity'), Follow.created_at, Follow.id).where(
            Follow.follower_id == source
        )
        return await fetch_page(session, stmt, Follow.created_at, Follow.id, limit, cursor)

    async def count_followers(self, session: AsyncSession, target: int) -> int:
        q = await session.execute(select(func.count(Follow.id)).where(Follow.following_id == target))
        return q.scalar_one()

    async def count_following(self, session: AsyncSession, source: int) -> int:
        q = await session.execute(select(func.count(Follow.id)).where(Follow.follower_id == source))
        return q.scalar_one()
