"""
Social Graph Service

The only entry point callers use. Each mutation runs the edge change and the
friendship reconciliation in a single transaction, so a follow edge is never
visible without the friendship it implies (or the other way round).
"""
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Optional

from sqlalchemy import exc as sa_exc
from sqlalchemy.ext.asyncio import AsyncSession

from . import crud
from .core import SOCIAL_MUTATIONS, FRIENDSHIP_CHANGES
from .errors import SocialGraphError, SelfActionError, TargetNotFoundError, StorageUnavailableError
from .follow_store import FollowStore
from .friendships import FriendshipDeriver, canonicalize, compare_identities
from .pagination import Page, normalize_limit

logger = logging.getLogger(__name__)

# storage failures worth reporting as transient; everything else propagates as-is
TRANSIENT_STORAGE_ERRORS = (sa_exc.OperationalError, sa_exc.InterfaceError, sa_exc.TimeoutError)


@dataclass
class FollowResult:
    follower_id: int
    following_id: int
    created_at: datetime
    became_friends: bool = False


@dataclass
class UnfollowResult:
    follower_id: int
    following_id: int
    success: bool = True
    friendship_removed: bool = False


@dataclass
class Relationship:
    user_id: int
    following: bool
    followed_by: bool
    friends: bool


@dataclass
class Counts:
    user_id: int
    followers: int
    following: int
    friends: int


class SocialGraphService:

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        follow_store: Optional[FollowStore] = None,
        friendship_deriver: Optional[FriendshipDeriver] = None,
        user_exists: Callable[[AsyncSession, int], Awaitable[bool]] = crud.user_exists,
    ):
        self.session_factory = session_factory
        self.follows = follow_store or FollowStore()
        self.friendships = friendship_deriver or FriendshipDeriver(self.follows, clock=self.follows.clock)
        self.user_exists = user_exists

    @asynccontextmanager
    async def _transaction(self):
        """One unit of work: commits on success, rolls back on any exception"""
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    yield session
        except TRANSIENT_STORAGE_ERRORS as e:
            logger.error(f"Storage failure in social graph transaction: {e}")
            raise StorageUnavailableError() from e

    async def follow(self, caller: int, target: int) -> FollowResult:
        if compare_identities(caller, target) == 0:
            SOCIAL_MUTATIONS.labels('follow', SelfActionError.code.value).inc()
            raise SelfActionError('Cannot follow yourself')

        try:
            async with self._transaction() as session:
                if not await self.user_exists(session, target):
                    raise TargetNotFoundError(user_id=target)
                # serialise concurrent mutations on this pair so a mutual follow is never missed
                await crud.lock_identities(session, canonicalize(caller, target))
                edge = await self.follows.create(session, caller, target)
                result = FollowResult(
                    follower_id=edge.follower_id,
                    following_id=edge.following_id,
                    created_at=edge.created_at,
                    became_friends=await self.friendships.derive_if_mutual(session, caller, target),
                )
        except SocialGraphError as e:
            SOCIAL_MUTATIONS.labels('follow', e.code.value).inc()
            raise

        SOCIAL_MUTATIONS.labels('follow', 'ok').inc()
        if result.became_friends:
            FRIENDSHIP_CHANGES.labels('derived').inc()
        logger.info(f"User {caller} followed {target} (became_friends={result.became_friends})")
        return result

    async def unfollow(self, caller: int, target: int) -> UnfollowResult:
        if compare_identities(caller, target) == 0:
            SOCIAL_MUTATIONS.labels('unfollow', SelfActionError.code.value).inc()
            raise SelfActionError('Cannot unfollow yourself')

        try:
            async with self._transaction() as session:
                await crud.lock_identities(session, canonicalize(caller, target))
                await self.follows.delete(session, caller, target)
                removed = await self.friendships.retract_if_broken(session, caller, target)
        except SocialGraphError as e:
            SOCIAL_MUTATIONS.labels('unfollow', e.code.value).inc()
            raise

        SOCIAL_MUTATIONS.labels('unfollow', 'ok').inc()
        if removed:
            FRIENDSHIP_CHANGES.labels('retracted').inc()
        logger.info(f"User {caller} unfollowed {target} (friendship_removed={removed})")
        return UnfollowResult(follower_id=caller, following_id=target, friendship_removed=removed)

    async def get_followers(self, caller: int, user_id: Optional[int] = None, limit: Optional[int] = None, cursor: Optional[str] = None) -> Page:
        target = caller if user_id is None else user_id
        limit = normalize_limit(limit)
        async with self._transaction() as session:
            return await self.follows.list_followers(session, target, limit, cursor)

    async def get_following(self, caller: int, user_id: Optional[int] = None, limit: Optional[int] = None, cursor: Optional[str] = None) -> Page:
        source = caller if user_id is None else user_id
        limit = normalize_limit(limit)
        async with self._transaction() as session:
            return await self.follows.list_following(session, source, limit, cursor)

    async def get_friends(self, caller: int, user_id: Optional[int] = None, limit: Optional[int] = None, cursor: Optional[str] = None) -> Page:
        target = caller if user_id is None else user_id
        limit = normalize_limit(limit)
        async with self._transaction() as session:
            return await self.friendships.list_friends(session, target, limit, cursor)

    async def get_relationship(self, caller: int, target: int) -> Relationship:
        """How `caller` relates to `target`; a user has no relationship with themselves"""
        if compare_identities(caller, target) == 0:
            return Relationship(user_id=target, following=False, followed_by=False, friends=False)
        async with self._transaction() as session:
            following = await self.follows.exists(session, caller, target)
            followed_by = await self.follows.exists(session, target, caller)
            friends = await self.friendships.are_friends(session, caller, target)
        return Relationship(user_id=target, following=following, followed_by=followed_by, friends=friends)

    async def get_counts(self, caller: int, user_id: Optional[int] = None) -> Counts:
        target = caller if user_id is None else user_id
        async with self._transaction() as session:
            return Counts(
                user_id=target,
                followers=await self.follows.count_followers(session, target),
                following=await self.follows.count_following(session, target),
                friends=await self.friendships.count_friends(session, target),
            )

    async def describe_users(self, user_ids) -> dict:
        """Profile summaries for a page of identities, keyed by id"""
        async with self._transaction() as session:
            users = await crud.get_users_by_ids(session, user_ids)
            return {
                user.id: {'id': user.id, 'username': user.username, 'display_name': user.display_name}
                for user in users.values()
            }
