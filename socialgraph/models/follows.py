from sqlalchemy import Column, Integer, DateTime, ForeignKey, UniqueConstraint, CheckConstraint, Index, func
from . import Base

class Follow(Base):
    __tablename__ = 'follows'
    id = Column(Integer, primary_key=True)
    follower_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), index=True, nullable=False)
    following_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), index=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True, nullable=False)
    __table_args__ = (
        UniqueConstraint('follower_id', 'following_id', name='uix_follow_pair'),
        CheckConstraint('follower_id <> following_id', name='ck_follow_not_self'),
        # keyset scans for follower / following listings
        Index('ix_follows_following_page', 'following_id', 'created_at', 'id'),
        Index('ix_follows_follower_page', 'follower_id', 'created_at', 'id'),
    )
