"""
Social graph events for downstream consumers (notifications, feeds, analytics).
Events are published after the transaction commits; a Kafka outage never undoes
a committed follow, so publishing failures are logged and reported, not raised.
"""
import os
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from . import core
from .service import FollowResult, UnfollowResult

logger = logging.getLogger(__name__)

EVENTS_TOPIC = os.getenv('SOCIAL_EVENTS_TOPIC', 'social-graph-events')

USER_FOLLOWED = 'user.followed'
USER_UNFOLLOWED = 'user.unfollowed'
FRIENDSHIP_CREATED = 'friendship.created'
FRIENDSHIP_REMOVED = 'friendship.removed'


async def publish(event_type: str, data: Dict[str, Any], key: Optional[int] = None) -> bool:
    producer = core.KAFKA_PRODUCER
    if not producer:
        return False

    message = {
        'type': event_type,
        'data': data,
        'emitted_at': datetime.now(timezone.utc).isoformat(),
    }
    try:
        await producer.send_and_wait(
            EVENTS_TOPIC,
            value=json.dumps(message, default=str).encode('utf-8'),
            # partition by actor so a user's events stay ordered
            key=str(key).encode('utf-8') if key is not None else None,
        )
        return True
    except Exception as e:
        logger.warning(f"Failed to publish {event_type} event: {e}")
        return False


async def publish_follow(result: FollowResult) -> None:
    await publish(USER_FOLLOWED, {
        'follower_id': result.follower_id,
        'following_id': result.following_id,
        'created_at': result.created_at.isoformat(),
    }, key=result.follower_id)
    if result.became_friends:
        await publish(FRIENDSHIP_CREATED, {
            'user_ids': sorted([result.follower_id, result.following_id]),
        }, key=result.follower_id)


async def publish_unfollow(result: UnfollowResult) -> None:
    await publish(USER_UNFOLLOWED, {
        'follower_id': result.follower_id,
        'following_id': result.following_id,
    }, key=result.follower_id)
    if result.friendship_removed:
        await publish(FRIENDSHIP_REMOVED, {
            'user_ids': sorted([result.follower_id, result.following_id]),
        }, key=result.follower_id)
