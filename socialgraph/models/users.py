from sqlalchemy import Column, Integer, String, Text, DateTime, func
from . import Base

class User(Base):
    """Identity projection; rows are owned by the identity service"""
    __tablename__ = 'users'
    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(150), unique=True, index=True, nullable=False)
    display_name = Column(String, nullable=True)
    bio = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
