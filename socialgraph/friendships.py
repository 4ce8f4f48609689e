"""
Friendship Deriver: sole writer of the symmetric `friendships` relation.

A friendship row for {a, b} exists exactly when both follow edges a->b and
b->a exist. Rows are stored once per unordered pair as (user_low, user_high).
"""
import logging
import uuid
from datetime import datetime
from typing import Any, Callable, Optional, Tuple

from sqlalchemy import select, delete, func, or_, case
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from .errors import SelfActionError
from .follow_store import FollowStore, utcnow
from .models.friendships import Friendship
from .pagination import Page, fetch_page

logger = logging.getLogger(__name__)

# dialects with an INSERT ... ON CONFLICT DO NOTHING construct
_CONFLICT_IGNORING_INSERTS = {
    'postgresql': postgresql.insert,
    'sqlite': sqlite.insert,
}


def identity_key(identity: Any):
    if isinstance(identity, uuid.UUID):
        return identity.bytes
    return identity


def compare_identities(a: Any, b: Any) -> int:
    """Total order over identity references: negative, zero or positive"""
    ka, kb = identity_key(a), identity_key(b)
    return (ka > kb) - (ka < kb)


def canonicalize(a: Any, b: Any) -> Tuple[Any, Any]:
    """Map an unordered pair to its (low, high) form"""
    order = compare_identities(a, b)
    if order == 0:
        raise SelfActionError('A relationship needs two distinct users')
    return (a, b) if order < 0 else (b, a)


class FriendshipDeriver:

    def __init__(self, follows: Optional[FollowStore] = None, clock: Callable[[], datetime] = utcnow):
        self.follows = follows or FollowStore(clock=clock)
        self.clock = clock

    def _insert_ignoring_conflicts(self, session: AsyncSession):
        dialect = session.bind.dialect.name
        try:
            return _CONFLICT_IGNORING_INSERTS[dialect]
        except KeyError:
            raise ValueError(f'No conflict-ignoring insert for dialect {dialect!r}') from None

    async def derive_if_mutual(self, session: AsyncSession, follower: int, following: int) -> bool:
        """
        Called after follower -> following was inserted.
        Inserts the canonical friendship when the reverse edge exists; a row
        already written by a racing request is absorbed silently.
        Returns True when this call created the friendship.
        """
        if not await self.follows.exists(session, following, follower):
            return False

        low, high = canonicalize(follower, following)
        insert = self._insert_ignoring_conflicts(session)
        stmt = (
            insert(Friendship.__table__)
            .values(user_low=low, user_high=high, created_at=self.clock())
            .on_conflict_do_nothing(index_elements=['user_low', 'user_high'])
        )
        result = await session.execute(stmt)
        created = result.rowcount > 0
        if created:
            logger.info(f"Friendship derived for pair ({low}, {high})")
        return created

    async def retract_if_broken(self, session: AsyncSession, follower: int, following: int) -> bool:
        """
        Called after follower -> following was deleted.
        Removes the canonical row if present; a missing row is a no-op.
        """
        low, high = canonicalize(follower, following)
        result = await session.execute(
            delete(Friendship).where(Friendship.user_low == low, Friendship.user_high == high)
        )
        removed = result.rowcount > 0
        if removed:
            logger.info(f"Friendship retracted for pair ({low}, {high})")
        return removed

    async def are_friends(self, session: AsyncSession, a: int, b: int) -> bool:
        if compare_identities(a, b) == 0:
            return False
        low, high = canonicalize(a, b)
        q = await session.execute(
            select(Friendship.id).where(Friendship.user_low == low, Friendship.user_high == high)
        )
        return q.first() is not None

    async def list_friends(self, session: AsyncSession, target: int, limit: Optional[int], cursor: Optional[str]) -> Page:
        """The other member of every friendship `target` belongs to, newest first"""
        other = case((Friendship.user_low == target, Friendship.user_high), else_=Friendship.user_low)
        stmt = select(other.label('identity'), Friendship.created_at, Friendship.id).where(
            or_(Friendship.user_low == target, Friendship.user_high == target)
        )
        return await fetch_page(session, stmt, Friendship.created_at, Friendship.id, limit, cursor)

    async def count_friends(self, session: AsyncSession, target: int) -> int:
        q = await session.execute(
            select(func.count(Friendship.id)).where(
                or_(Friendship.user_low == target, Friendship.user_high == target)
            )
        )
        return q.scalar_one()
