"""
Shared dependencies for the HTTP layer.

The service is stateless, so one instance bound to the global session factory
serves every request. Tests swap it through `app.dependency_overrides`.
"""
from .models import AsyncSessionLocal
from .service import SocialGraphService

social_service = SocialGraphService(AsyncSessionLocal)


def get_social_service() -> SocialGraphService:
    return social_service
