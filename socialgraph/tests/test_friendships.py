import uuid

import pytest
from sqlalchemy.dialects import postgresql

from socialgraph import friendships
from socialgraph.errors import SelfActionError
from socialgraph.friendships import canonicalize, compare_identities
from socialgraph.models.friendships import Friendship


def test_compare_identities_orders_ints_numerically():
    assert compare_identities(2, 10) < 0
    assert compare_identities(10, 2) > 0
    assert compare_identities(7, 7) == 0


def test_compare_identities_orders_uuids_by_bytes():
    low = uuid.UUID('00000000-0000-0000-0000-000000000001')
    high = uuid.UUID('ffffffff-0000-0000-0000-000000000000')
    assert compare_identities(low, high) < 0
    assert canonicalize(high, low) == (low, high)


def test_canonicalize_is_symmetric():
    assert canonicalize(20, 10) == (10, 20)
    assert canonicalize(10, 20) == (10, 20)
    assert canonicalize('bob', 'alice') == ('alice', 'bob')


def test_canonicalize_rejects_equal_pair():
    with pytest.raises(SelfActionError):
        canonicalize(5, 5)


async def _follow(session_factory, follow_store, deriver, follower, following):
    async with session_factory() as session:
        async with session.begin():
            await follow_store.create(session, follower, following)
            return await deriver.derive_if_mutual(session, follower, following)


@pytest.mark.asyncio
async def test_one_way_follow_derives_nothing(session_factory, follow_store, deriver, make_users, friendship_rows):
    await make_users(10, 20)
    assert await _follow(session_factory, follow_store, deriver, 10, 20) is False
    assert await friendship_rows() == []


@pytest.mark.asyncio
async def test_mutual_follow_derives_canonical_row(session_factory, follow_store, deriver, make_users, friendship_rows):
    await make_users(10, 20)
    await _follow(session_factory, follow_store, deriver, 20, 10)
    assert await _follow(session_factory, follow_store, deriver, 10, 20) is True
    assert await friendship_rows() == [(10, 20)]


@pytest.mark.asyncio
async def test_derivation_absorbs_existing_row(session_factory, follow_store, deriver, make_users, friendship_rows):
    """The losing side of a race finds the row already there and carries on"""
    await make_users(10, 20)
    await _follow(session_factory, follow_store, deriver, 10, 20)
    await _follow(session_factory, follow_store, deriver, 20, 10)

    async with session_factory() as session:
        async with session.begin():
            assert await deriver.derive_if_mutual(session, 10, 20) is False
            assert await deriver.derive_if_mutual(session, 20, 10) is False
    assert await friendship_rows() == [(10, 20)]


@pytest.mark.asyncio
async def test_unsupported_dialect_is_rejected(session_factory, follow_store, deriver, make_users, friendship_rows, edge_exists, monkeypatch):
    await make_users(10, 20)
    await _follow(session_factory, follow_store, deriver, 20, 10)
    monkeypatch.setattr(friendships, '_CONFLICT_IGNORING_INSERTS', {'postgresql': postgresql.insert})

    with pytest.raises(ValueError, match='sqlite'):
        await _follow(session_factory, follow_store, deriver, 10, 20)
    assert await friendship_rows() == []
    assert not await edge_exists(10, 20)


@pytest.mark.asyncio
async def test_retract_is_idempotent(session_factory, follow_store, deriver, make_users, friendship_rows):
    await make_users(10, 20)
    await _follow(session_factory, follow_store, deriver, 10, 20)
    await _follow(session_factory, follow_store, deriver, 20, 10)

    async with session_factory() as session:
        async with session.begin():
            assert await deriver.retract_if_broken(session, 20, 10) is True
            assert await deriver.retract_if_broken(session, 10, 20) is False
    assert await friendship_rows() == []


@pytest.mark.asyncio
async def test_list_friends_returns_other_member(session_factory, follow_store, deriver, make_users):
    await make_users(1, 5, 9)
    # 5 is the high member of (1, 5) and the low member of (5, 9)
    for a, b in ((5, 1), (1, 5), (5, 9), (9, 5)):
        await _follow(session_factory, follow_store, deriver, a, b)

    async with session_factory() as session:
        page = await deriver.list_friends(session, 5, 10, None)
        assert page.items == [9, 1]
        assert await deriver.count_friends(session, 5) == 2
        assert await deriver.are_friends(session, 1, 5)
        assert not await deriver.are_friends(session, 1, 9)
        assert not await deriver.are_friends(session, 5, 5)


@pytest.mark.asyncio
async def test_list_friends_paginates(session_factory, follow_store, deriver, make_users, count_rows):
    await make_users(*range(1, 12))
    for other in range(2, 12):
        await _follow(session_factory, follow_store, deriver, 1, other)
        await _follow(session_factory, follow_store, deriver, other, 1)
    assert await count_rows(Friendship) == 10

    collected, cursor = [], None
    while True:
        async with session_factory() as session:
            page = await deriver.list_friends(session, 1, 3, cursor)
        collected.extend(page.items)
        if not page.has_more:
            assert page.next_cursor is None
            break
        cursor = page.next_cursor
    assert collected == list(range(11, 1, -1))
