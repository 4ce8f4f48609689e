import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from socialgraph.auth import create_access_token
from socialgraph.dependencies import get_social_service
from socialgraph.main import app


def auth(user_id: int) -> dict:
    return {"Authorization": f"Bearer {create_access_token({'id': user_id, 'username': f'user{user_id}'})}"}


@pytest_asyncio.fixture
async def client(service):
    app.dependency_overrides[get_social_service] = lambda: service
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.mark.asyncio
async def test_healthz(client):
    res = await client.get('/healthz')
    assert res.status_code == 200
    assert res.json() == {'status': 'ok'}


@pytest.mark.asyncio
async def test_requires_authentication(client):
    res = await client.post('/api/social/follow', json={'targetId': 2})
    assert res.status_code == 401
    res = await client.get('/api/social/followers', headers={'Authorization': 'Bearer not-a-jwt'})
    assert res.status_code == 401


@pytest.mark.asyncio
async def test_follow_flow_over_http(client, make_users):
    await make_users(10, 20)

    res = await client.post('/api/social/follow', json={'targetId': 20}, headers=auth(10))
    assert res.status_code == 200, res.text
    body = res.json()
    assert body['followerId'] == 10
    assert body['followingId'] == 20
    assert 'createdAt' in body

    res = await client.post('/api/social/follow', json={'targetId': 10}, headers=auth(20))
    assert res.status_code == 200, res.text

    res = await client.get('/api/social/friends', headers=auth(10))
    assert res.status_code == 200
    body = res.json()
    assert body['items'] == [{'id': 20, 'username': 'user20', 'displayName': 'User 20'}]
    assert body['hasMore'] is False
    assert body['nextCursor'] is None

    res = await client.post('/api/social/unfollow', json={'targetId': 20}, headers=auth(10))
    assert res.status_code == 200
    assert res.json() == {'success': True}

    res = await client.get('/api/social/following', params={'userId': 20}, headers=auth(10))
    assert [item['id'] for item in res.json()['items']] == [10]
    res = await client.get('/api/social/friends', headers=auth(20))
    assert res.json()['items'] == []


@pytest.mark.asyncio
@pytest.mark.parametrize('path, payload, caller, status, code', [
    ('/api/social/follow', {'targetId': 1}, 1, 400, 'SELF_ACTION'),
    ('/api/social/unfollow', {'targetId': 1}, 1, 400, 'SELF_ACTION'),
    ('/api/social/follow', {'targetId': 999}, 1, 404, 'TARGET_NOT_FOUND'),
    ('/api/social/unfollow', {'targetId': 2}, 1, 404, 'NOT_FOLLOWING'),
])
async def test_errors_are_typed(client, make_users, path, payload, caller, status, code):
    await make_users(1, 2)
    res = await client.post(path, json=payload, headers=auth(caller))
    assert res.status_code == status
    assert res.json()['error']['code'] == code


@pytest.mark.asyncio
async def test_duplicate_follow_conflicts(client, make_users):
    await make_users(1, 2)
    assert (await client.post('/api/social/follow', json={'targetId': 2}, headers=auth(1))).status_code == 200
    res = await client.post('/api/social/follow', json={'targetId': 2}, headers=auth(1))
    assert res.status_code == 409
    assert res.json()['error']['code'] == 'ALREADY_FOLLOWING'


@pytest.mark.asyncio
async def test_list_validation_errors(client, make_users):
    await make_users(1)
    res = await client.get('/api/social/followers', params={'cursor': 'bogus!'}, headers=auth(1))
    assert res.status_code == 400
    assert res.json()['error']['code'] == 'INVALID_CURSOR'

    res = await client.get('/api/social/followers', params={'limit': 0}, headers=auth(1))
    assert res.status_code == 400
    assert res.json()['error']['code'] == 'INVALID_LIMIT'


@pytest.mark.asyncio
async def test_followers_pagination_over_http(client, make_users):
    followers = list(range(100, 125))
    await make_users(1, *followers)
    for follower in followers:
        res = await client.post('/api/social/follow', json={'targetId': 1}, headers=auth(follower))
        assert res.status_code == 200

    res = await client.get('/api/social/followers', params={'limit': 20}, headers=auth(1))
    first = res.json()
    assert len(first['items']) == 20
    assert first['hasMore'] is True

    res = await client.get('/api/social/followers', params={'limit': 20, 'cursor': first['nextCursor']}, headers=auth(1))
    second = res.json()
    assert [item['id'] for item in second['items']] == [104, 103, 102, 101, 100]
    assert second['hasMore'] is False


@pytest.mark.asyncio
async def test_relationship_and_counts(client, make_users):
    await make_users(1, 2)
    await client.post('/api/social/follow', json={'targetId': 2}, headers=auth(1))

    res = await client.get('/api/social/relationship/2', headers=auth(1))
    assert res.json() == {'userId': 2, 'following': True, 'followedBy': False, 'friends': False}

    res = await client.get('/api/social/counts', params={'userId': 2}, headers=auth(1))
    assert res.json() == {'userId': 2, 'followers': 1, 'following': 0, 'friends': 0}


@pytest.mark.asyncio
@pytest.mark.parametrize('path', ['/api/social/followers', '/api/social/following', '/api/social/friends'])
async def test_non_integer_limit_is_invalid_limit(client, make_users, path):
    await make_users(1)
    res = await client.get(path, params={'limit': 'abc'}, headers=auth(1))
    assert res.status_code == 400
    assert res.json()['error']['code'] == 'INVALID_LIMIT'


@pytest.mark.asyncio
async def test_malformed_request_has_typed_error_body(client, make_users):
    await make_users(1)
    res = await client.get('/api/social/counts', params={'userId': 'abc'}, headers=auth(1))
    assert res.status_code == 422
    assert res.json()['error']['code'] == 'INVALID_REQUEST'
    assert res.json()['error']['details']['fields'] == ['query.userId']

    res = await client.post('/api/social/follow', json={}, headers=auth(1))
    assert res.status_code == 422
    assert res.json()['error']['code'] == 'INVALID_REQUEST'
