from fastapi import APIRouter

from .endpoints import activity, chat, journal, mood

api_router = APIRouter()

# Include all API routes
api_router.include_router(chat.router)
api_router.include_router(journal.router)
api_router.include_router(mood.router)
api_router.include_router(activity.router)
