from sqlalchemy import Column, Integer, DateTime, ForeignKey, UniqueConstraint, CheckConstraint, func
from . import Base

class Friendship(Base):
    __tablename__ = 'friendships'
    id = Column(Integer, primary_key=True)
    # canonical pair, user_low < user_high
    user_low = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), index=True, nullable=False)
    user_high = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), index=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True, nullable=False)
    __table_args__ = (
        UniqueConstraint('user_low', 'user_high', name='uix_friend_pair'),
        CheckConstraint('user_low < user_high', name='ck_friend_canonical_order'),
    )
