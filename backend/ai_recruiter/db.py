# backend/ai_recruiter/db.py
from typing import Optional
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from .config import MONGODB_URI, MONGO_DB_NAME

INTERVIEWS = "interviews"
FEEDBACK = "feedback"
SESSIONS = "sessions"
USERS = "users"
USER_SETTINGS = "user_settings"

_client: Optional[AsyncIOMotorClient] = None


def get_client() -> AsyncIOMotorClient:
    global _client
    if _client is None:
        if not MONGODB_URI:
            raise RuntimeError("MONGODB_URI not set in backend/.env")
        _client = AsyncIOMotorClient(MONGODB_URI)
    return _client


def get_database() -> AsyncIOMotorDatabase:
    return get_client()[MONGO_DB_NAME]
