from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire"""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class FollowIn(CamelModel):
    target_id: int


class FollowOut(CamelModel):
    follower_id: int
    following_id: int
    created_at: datetime


class UnfollowOut(CamelModel):
    success: bool = True


class UserSummaryOut(CamelModel):
    id: int
    username: Optional[str] = None
    display_name: Optional[str] = None


class PageOut(CamelModel):
    items: List[UserSummaryOut]
    next_cursor: Optional[str] = None
    has_more: bool = False


class RelationshipOut(CamelModel):
    user_id: int
    following: bool
    followed_by: bool
    friends: bool


class CountsOut(CamelModel):
    user_id: int
    followers: int
    following: int
    friends: int


class ErrorBody(BaseModel):
    code: str
    message: str


class ErrorOut(BaseModel):
    error: ErrorBody
