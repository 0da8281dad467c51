# backend/ai_recruiter/store.py
"""MongoDB persistence for interviews, sessions, feedback, users and settings."""
import uuid
import logging
from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING

from . import db as collections
from .schemas import UserSettings
from .utils import utcnow

logger = logging.getLogger("ai-recruiter.store")

NO_ID = {"_id": 0}


class InterviewStore:
    def __init__(self, database: AsyncIOMotorDatabase):
        self.collection = database[collections.INTERVIEWS]

    async def create_interview(self, record: Dict[str, Any]) -> str:
        doc = dict(record)
        doc.setdefault("interviewId", str(uuid.uuid4()))
        doc.setdefault("createdAt", utcnow())
        # drop unset fields rather than storing nulls
        doc = {k: v for k, v in doc.items() if v is not None}
        await self.collection.insert_one(doc)
        logger.info("Created interview id=%s owner=%s", doc["interviewId"], doc.get("userEmail"))
        return doc["interviewId"]

    async def get_interview(self, interview_id: str) -> Optional[Dict[str, Any]]:
        return await self.collection.find_one({"interviewId": interview_id}, NO_ID)

    async def list_interviews(self, owner_email: str) -> List[Dict[str, Any]]:
        cursor = self.collection.find({"userEmail": owner_email}, NO_ID).sort("createdAt", DESCENDING)
        return await cursor.to_list(length=None)

    async def delete_interview(self, interview_id: str, owner_email: Optional[str] = None) -> bool:
        query = {"interviewId": interview_id}
        if owner_email is not None:
            query["userEmail"] = owner_email
        result = await self.collection.delete_one(query)
        return result.deleted_count > 0

    async def delete_owned(self, owner_email: str) -> int:
        result = await self.collection.delete_many({"userEmail": owner_email})
        logger.info("Deleted %d interviews owned by %s", result.deleted_count, owner_email)
        return result.deleted_count


class FeedbackStore:
    def __init__(self, database: AsyncIOMotorDatabase):
        self.collection = database[collections.FEEDBACK]

    async def save_feedback(self, record: Dict[str, Any]) -> str:
        doc = dict(record)
        doc.setdefault("feedbackId", uuid.uuid4().hex)
        doc.setdefault("createdAt", utcnow())
        await self.collection.insert_one(doc)
        logger.info("Saved feedback id=%s interview=%s", doc["feedbackId"], doc.get("interviewId"))
        return doc["feedbackId"]

    async def find_feedback(
        self,
        interview_id: Optional[str] = None,
        feedback_id: Optional[str] = None,
        candidate_email: Optional[str] = None,
        candidate_name: Optional[str] = None,
        interview_ids: Optional[List[str]] = None,
    ) -> Optional[Dict[str, Any]]:
        """Newest feedback matching every given key, optionally limited to ``interview_ids``."""
        query: Dict[str, Any] = {}
        if interview_id:
            query["interviewId"] = interview_id
        if feedback_id:
            query["feedbackId"] = feedback_id
        if candidate_email:
            query["candidateEmail"] = candidate_email
        if candidate_name:
            query["candidateName"] = candidate_name
        if not query:
            raise ValueError("find_feedback needs at least one lookup key")
        if interview_ids is not None:
            allowed = list(interview_ids)
            if interview_id and interview_id not in allowed:
                return None
            query.setdefault("interviewId", {"$in": allowed})

        docs = await self.collection.find(query, NO_ID).sort("createdAt", DESCENDING).to_list(length=1)
        return docs[0] if docs else None

    async def list_feedback(self, interview_ids: Optional[List[str]] = None) -> List[Dict[str, Any]]:
        query: Dict[str, Any] = {}
        if interview_ids is not None:
            query["interviewId"] = {"$in": list(interview_ids)}
        cursor = self.collection.find(query, NO_ID).sort("createdAt", DESCENDING)
        return await cursor.to_list(length=None)

    async def delete_for_interviews(self, interview_ids: List[str]) -> int:
        result = await self.collection.delete_many({"interviewId": {"$in": list(interview_ids)}})
        return result.deleted_count


class SessionStore:
    def __init__(self, database: AsyncIOMotorDatabase):
        self.collection = database[collections.SESSIONS]

    async def save_session(self, record: Dict[str, Any]) -> None:
        await self.collection.insert_one(dict(record))

    async def list_sessions(self, interview_ids: Optional[List[str]] = None) -> List[Dict[str, Any]]:
        query: Dict[str, Any] = {}
        if interview_ids is not None:
            query["interviewId"] = {"$in": list(interview_ids)}
        return await self.collection.find(query, NO_ID).to_list(length=None)

    async def delete_for_interviews(self, interview_ids: List[str]) -> int:
        result = await self.collection.delete_many({"interviewId": {"$in": list(interview_ids)}})
        return result.deleted_count


class UserStore:
    def __init__(self, database: AsyncIOMotorDatabase):
        self.collection = database[collections.USERS]

    async def ensure_user(self, email: str, name: Optional[str] = None, picture: Optional[str] = None) -> Dict[str, Any]:
        existing = await self.collection.find_one({"email": email}, NO_ID)
        if existing:
            return existing
        user = {"email": email, "name": name, "picture": picture, "createdAt": utcnow()}
        await self.collection.insert_one(dict(user))
        logger.info("User created: %s", email)
        return user

    async def get_user(self, email: str) -> Optional[Dict[str, Any]]:
        return await self.collection.find_one({"email": email}, NO_ID)

    async def delete_user(self, email: str) -> bool:
        result = await self.collection.delete_one({"email": email})
        return result.deleted_count > 0


class SettingsStore:
    def __init__(self, database: AsyncIOMotorDatabase):
        self.collection = database[collections.USER_SETTINGS]

    async def get_settings(self, email: str) -> UserSettings:
        doc = await self.collection.find_one({"userEmail": email}, NO_ID)
        stored = (doc or {}).get("settings") or {}
        return UserSettings(**stored)

    async def save_settings(self, email: str, settings: UserSettings) -> UserSettings:
        await self.collection.update_one(
            {"userEmail": email},
            {"$set": {"settings": settings.model_dump(by_alias=True), "updatedAt": utcnow()}},
            upsert=True,
        )
        return settings

    async def delete_settings(self, email: str) -> bool:
        result = await self.collection.delete_one({"userEmail": email})
        return result.deleted_count > 0
