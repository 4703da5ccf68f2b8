from fastapi import APIRouter

from careline.features.messaging.api import router as messaging_router
from careline.features.notifications.api import router as notifications_router
from careline.features.users.api import router as users_router

api_router = APIRouter()
api_router.include_router(messaging_router)
api_router.include_router(notifications_router)
api_router.include_router(users_router)
