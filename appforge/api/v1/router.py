from fastapi import APIRouter
from appforge.api.v1.endpoints import chat, health, sessions

api_router = APIRouter()

api_router.include_router(health.router)
api_router.include_router(chat.router)
api_router.include_router(sessions.router)
