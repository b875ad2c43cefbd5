"""API v1 routes"""
from fastapi import APIRouter
from app.api.v1 import auth, files, devices, chat, ai

api_router = APIRouter()

api_router.include_router(auth.router)
api_router.include_router(files.router)
api_router.include_router(devices.router)
api_router.include_router(chat.router)
api_router.include_router(ai.router)
