# reflection store - persistence for reflection records in the reflections collection
# documents are snake_case in mongodb, the api speaks camelCase via ReflectionRecord
#
# (user_id, date) is not unique: re-submitting on the same day adds another record
# and every date lookup returns the most recently created one.

import logging
from datetime import datetime, timezone
from typing import Optional

from bson import ObjectId
from bson.errors import InvalidId

from mindmirror.errors import ReflectionForbidden, ReflectionNotFound
from mindmirror.models.analysis import DailyAnalysis
from mindmirror.models.reflection import ReflectionRecord

logger = logging.getLogger(__name__)

STATUS_PENDING = "pending"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"


def _to_object_id(reflection_id: str) -> ObjectId:
    try:
        return ObjectId(reflection_id)
    except (InvalidId, TypeError):
        raise ReflectionNotFound(f"Reflection {reflection_id} not found")


def _format_timestamp(value) -> str:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    return str(value or "")


def _doc_to_reflection(doc: dict) -> ReflectionRecord:
    """convert a mongodb reflection document to the api model"""
    return ReflectionRecord(
        id=str(doc["_id"]),
        userId=doc.get("user_id", ""),
        date=doc.get("date", ""),
        transcript=doc.get("transcript") or "",
        primaryEmotion=doc.get("primary_emotion"),
        secondaryEmotion=doc.get("secondary_emotion"),
        theme=doc.get("theme"),
        emotionalIntensity=doc.get("emotional_intensity"),
        dailyInsight=doc.get("daily_insight"),
        analysisStatus=doc.get("analysis_status", STATUS_COMPLETED),
        analysisError=doc.get("analysis_error"),
        createdAt=_format_timestamp(doc.get("created_at")),
    )


def _analysis_fields(analysis: DailyAnalysis) -> dict:
    return {
        "transcript": analysis.transcript,
        "primary_emotion": analysis.primary_emotion,
        "secondary_emotion": analysis.secondary_emotion,
        "theme": analysis.theme,
        "emotional_intensity": analysis.emotional_intensity,
        "daily_insight": analysis.daily_insight,
    }


class ReflectionStore:

    def __init__(self, collection):
        self.collection = collection

    async def create(self, user_id: str, date: str, analysis: DailyAnalysis) -> str:
        """persist a completed analysis, returns the generated id"""
        doc = {
            "user_id": user_id,
            "date": date,
            **_analysis_fields(analysis),
            "analysis_status": STATUS_COMPLETED,
            "analysis_error": None,
            "created_at": datetime.now(timezone.utc),
        }
        result = await self.collection.insert_one(doc)
        reflection_id = str(result.inserted_id)
        logger.info(f"Reflection created: {reflection_id} for user {user_id} on {date}")
        return reflection_id

    async def create_pending(self, user_id: str, date: str, transcript: str) -> str:
        """persist a transcript whose analysis has not run yet"""
        doc = {
            "user_id": user_id,
            "date": date,
            "transcript": transcript,
            "primary_emotion": None,
            "secondary_emotion": None,
            "theme": None,
            "emotional_intensity": None,
            "daily_insight": None,
            "analysis_status": STATUS_PENDING,
            "analysis_error": None,
            "created_at": datetime.now(timezone.utc),
        }
        result = await self.collection.insert_one(doc)
        reflection_id = str(result.inserted_id)
        logger.info(f"Pending reflection created: {reflection_id} for user {user_id} on {date}")
        return reflection_id

    async def mark_completed(self, reflection_id: str, analysis: DailyAnalysis) -> bool:
        """pending -> completed. returns false if the record left pending already"""
        result = await self.collection.update_one(
            {"_id": _to_object_id(reflection_id), "analysis_status": STATUS_PENDING},
            {"$set": {
                **_analysis_fields(analysis),
                "analysis_status": STATUS_COMPLETED,
                "analysis_error": None,
                "analyzed_at": datetime.now(timezone.utc),
            }},
        )
        if result.modified_count == 0:
            logger.warning(f"Reflection {reflection_id} was not pending, completion ignored")
            return False
        return True

    async def mark_failed(self, reflection_id: str, message: str) -> bool:
        """pending -> failed"""
        result = await self.collection.update_one(
            {"_id": _to_object_id(reflection_id), "analysis_status": STATUS_PENDING},
            {"$set": {
                "analysis_status": STATUS_FAILED,
                "analysis_error": message,
                "analyzed_at": datetime.now(timezone.utc),
            }},
        )
        if result.modified_count == 0:
            logger.warning(f"Reflection {reflection_id} was not pending, failure ignored")
            return False
        return True

    async def get(self, reflection_id: str) -> ReflectionRecord:
        doc = await self.collection.find_one({"_id": _to_object_id(reflection_id)})
        if not doc:
            raise ReflectionNotFound(f"Reflection {reflection_id} not found")
        return _doc_to_reflection(doc)

    async def get_owned(self, reflection_id: str, user_id: str) -> ReflectionRecord:
        record = await self.get(reflection_id)
        if record.user_id != user_id:
            raise ReflectionForbidden(f"Reflection {reflection_id} belongs to another user")
        return record

    async def get_by_user_and_date(self, user_id: str, date: str) -> ReflectionRecord:
        """most recent reflection for the day"""
        cursor = self.collection.find({"user_id": user_id, "date": date}).sort("created_at", -1).limit(1)
        docs = await cursor.to_list(length=1)
        if not docs:
            raise ReflectionNotFound(f"No reflection for {user_id} on {date}")
        return _doc_to_reflection(docs[0])

    async def list_recent(self, user_id: str, limit: int = 7, completed_only: bool = False) -> list[ReflectionRecord]:
        """newest first"""
        query: dict = {"user_id": user_id}
        if completed_only:
            query["analysis_status"] = STATUS_COMPLETED
        cursor = self.collection.find(query).sort("created_at", -1).limit(limit)
        reflections = []
        async for doc in cursor:
            reflections.append(_doc_to_reflection(doc))
        return reflections

    async def count_for_user(self, user_id: str) -> int:
        return await self.collection.count_documents({"user_id": user_id})

    async def delete_owned(self, reflection_id: str, requesting_user_id: str) -> None:
        """delete a reflection after re-checking ownership"""
        record = await self.get_owned(reflection_id, requesting_user_id)
        await self.collection.delete_one({"_id": _to_object_id(record.id)})
        logger.info(f"Reflection deleted: {reflection_id} by user {requesting_user_id}")

    async def find_latest(self, user_id: str, date: str) -> Optional[ReflectionRecord]:
        try:
            return await self.get_by_user_and_date(user_id, date)
        except ReflectionNotFound:
            return None
