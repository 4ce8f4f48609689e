from fastapi import APIRouter
from .social import router as social_router

router = APIRouter()
router.include_router(social_router, prefix='/social', tags=['social'])
