import os
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..auth import get_current_user
from ..cache import cache_relationship, get_cached_relationship, invalidate_relationship, check_rate_limit
from ..dependencies import get_social_service
from ..events import publish_follow, publish_unfollow
from ..pagination import Page
from ..schemas.social import (
    FollowIn,
    FollowOut,
    UnfollowOut,
    PageOut,
    UserSummaryOut,
    RelationshipOut,
    CountsOut,
)
from ..service import SocialGraphService

# follow + unfollow requests per user per hour
FOLLOW_RATE_LIMIT = int(os.getenv('FOLLOW_RATE_LIMIT', '200'))

router = APIRouter()


async def _page_out(service: SocialGraphService, page: Page) -> PageOut:
    users = await service.describe_users(page.items)
    return PageOut(
        items=[UserSummaryOut(**users.get(user_id, {'id': user_id})) for user_id in page.items],
        next_cursor=page.next_cursor,
        has_more=page.has_more,
    )


@router.post('/follow', response_model=FollowOut)
async def follow(
    payload: FollowIn,
    current_user: dict = Depends(get_current_user),
    service: SocialGraphService = Depends(get_social_service),
):
    if not await check_rate_limit(current_user['id'], "follow", limit=FOLLOW_RATE_LIMIT, window=3600):
        raise HTTPException(429, "Rate limit exceeded. Too many follow changes.")

    result = await service.follow(current_user['id'], payload.target_id)

    await invalidate_relationship(current_user['id'], payload.target_id)
    await publish_follow(result)

    return FollowOut(
        follower_id=result.follower_id,
        following_id=result.following_id,
        created_at=result.created_at,
    )


@router.post('/unfollow', response_model=UnfollowOut)
async def unfollow(
    payload: FollowIn,
    current_user: dict = Depends(get_current_user),
    service: SocialGraphService = Depends(get_social_service),
):
    if not await check_rate_limit(current_user['id'], "follow", limit=FOLLOW_RATE_LIMIT, window=3600):
        raise HTTPException(429, "Rate limit exceeded. Too many follow changes.")

    result = await service.unfollow(current_user['id'], payload.target_id)

    await invalidate_relationship(current_user['id'], payload.target_id)
    await publish_unfollow(result)

    return UnfollowOut(success=result.success)


@router.get('/followers', response_model=PageOut)
async def followers(
    user_id: Optional[int] = Query(None, alias='userId'),
    limit: Optional[int] = Query(None),
    cursor: Optional[str] = Query(None),
    current_user: dict = Depends(get_current_user),
    service: SocialGraphService = Depends(get_social_service),
):
    page = await service.get_followers(current_user['id'], user_id, limit, cursor)
    return await _page_out(service, page)


@router.get('/following', response_model=PageOut)
async def following(
    user_id: Optional[int] = Query(None, alias='userId'),
    limit: Optional[int] = Query(None),
    cursor: Optional[str] = Query(None),
    current_user: dict = Depends(get_current_user),
    service: SocialGraphService = Depends(get_social_service),
):
    page = await service.get_following(current_user['id'], user_id, limit, cursor)
    return await _page_out(service, page)


@router.get('/friends', response_model=PageOut)
async def friends(
    user_id: Optional[int] = Query(None, alias='userId'),
    limit: Optional[int] = Query(None),
    cursor: Optional[str] = Query(None),
    current_user: dict = Depends(get_current_user),
    service: SocialGraphService = Depends(get_social_service),
):
    page = await service.get_friends(current_user['id'], user_id, limit, cursor)
    return await _page_out(service, page)


@router.get('/relationship/{user_id}', response_model=RelationshipOut)
async def relationship(
    user_id: int,
    current_user: dict = Depends(get_current_user),
    service: SocialGraphService = Depends(get_social_service),
):
    cached = await get_cached_relationship(current_user['id'], user_id)
    if cached is not None:
        return RelationshipOut(**cached)

    status = await service.get_relationship(current_user['id'], user_id)
    out = RelationshipOut(
        user_id=status.user_id,
        following=status.following,
        followed_by=status.followed_by,
        friends=status.friends,
    )
    await cache_relationship(current_user['id'], user_id, out.model_dump(), ttl=300)
    return out


@router.get('/counts', response_model=CountsOut)
async def counts(
    user_id: Optional[int] = Query(None, alias='userId'),
    current_user: dict = Depends(get_current_user),
    service: SocialGraphService = Depends(get_social_service),
):
    totals = await service.get_counts(current_user['id'], user_id)
    return CountsOut(
        user_id=totals.user_id,
        followers=totals.followers,
        following=totals.following,
        friends=totals.friends,
    )
