"""
Keyset pagination shared by the follow and friendship listings.

Rows are ordered newest first by (created_at DESC, id DESC). A page fetches
limit + 1 rows past the cursor position; the extra row only signals that
another page exists and is never returned.
"""
import os
from dataclasses import dataclass, field
from typing import Any, List, Optional

from sqlalchemy import and_, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

from .cursor import Cursor, encode_cursor, parse_cursor
from .errors import InvalidLimitError

DEFAULT_PAGE_SIZE = int(os.getenv('SOCIAL_DEFAULT_PAGE_SIZE', '20'))
MAX_PAGE_SIZE = int(os.getenv('SOCIAL_MAX_PAGE_SIZE', '100'))


@dataclass
class Page:
    items: List[Any] = field(default_factory=list)
    next_cursor: Optional[str] = None
    has_more: bool = False


def normalize_limit(limit: Optional[int]) -> int:
    """Default a missing limit, reject non-positive ones and clamp to MAX_PAGE_SIZE"""
    if limit is None:
        return DEFAULT_PAGE_SIZE
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        raise InvalidLimitError(limit=repr(limit))
    return min(limit, MAX_PAGE_SIZE)


def after_position(created_col, id_col, cursor: Cursor):
    """Rows strictly after `cursor` in (created_at DESC, id DESC) order"""
    return or_(
        created_col < cursor.created_at,
        and_(created_col == cursor.created_at, id_col < cursor.id),
    )


async def fetch_page(
    session: AsyncSession,
    stmt: Select,
    created_col,
    id_col,
    limit: Optional[int],
    cursor: Optional[str],
) -> Page:
    """
    Run `stmt` as one keyset page.
    `stmt` must select an `identity` column plus the row's `created_at` and `id`.
    """
    limit = normalize_limit(limit)
    position = parse_cursor(cursor)
    if position is not None:
        stmt = stmt.where(after_position(created_col, id_col, position))
    stmt = stmt.order_by(created_col.desc(), id_col.desc()).limit(limit + 1)

    rows = (await session.execute(stmt)).all()
    has_more = len(rows) > limit
    rows = rows[:limit]

    next_cursor = None
    if has_more:
        last = rows[-1]
        next_cursor = encode_cursor(last.created_at, last.id)
    return Page(items=[row.identity for row in rows], next_cursor=next_cursor, has_more=has_more)
