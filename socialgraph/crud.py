from .models.users import User
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Dict, Iterable, List, Optional

# identity directory: the social graph reads users, the identity service owns them

async def create_user(session: AsyncSession, username: str, display_name: Optional[str] = None, bio: Optional[str] = None, user_id: Optional[int] = None):
    user = User(id=user_id, username=username, display_name=display_name, bio=bio)
    session.add(user)
    await session.flush()
    return user

async def user_exists(session: AsyncSession, user_id: int) -> bool:
    q = await session.execute(select(User.id).where(User.id == user_id))
    return q.first() is not None

async def get_user_by_id(session: AsyncSession, user_id: int):
    q = await session.execute(select(User).where(User.id == user_id))
    return q.scalars().first()

async def lock_identities(session: AsyncSession, user_ids: Iterable[int]) -> List[int]:
    """Row-lock the given users in id order for the rest of the transaction"""
    ids = sorted(set(user_ids))
    q = await session.execute(select(User.id).where(User.id.in_(ids)).order_by(User.id).with_for_update())
    return list(q.scalars().all())

async def get_users_by_ids(session: AsyncSession, user_ids: Iterable[int]) -> Dict[int, User]:
    ids = set(user_ids)
    if not ids:
        return {}
    q = await session.execute(select(User).where(User.id.in_(ids)))
    return {user.id: user for user in q.scalars().all()}
