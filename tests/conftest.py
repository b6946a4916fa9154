# shared fixtures for backend api tests
# provides in-memory motor mocks, a scripted model transport, and httpx test client

import json
import re
from datetime import datetime, timezone, timedelta
from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from bson import ObjectId

from httpx import AsyncClient, ASGITransport

from mindmirror.main import app
from mindmirror.dependencies import get_gateway
from mindmirror.services.db import get_db
from mindmirror.services.gateway import AnalysisGateway


# test ids

USER_ID = "uid_alex_rivera"
OTHER_USER_ID = "uid_jordan_kim"

SCENARIO_TEXT = "I felt overwhelmed today but grateful for my friends"


# model replies

def daily_reply(fenced: bool = True, **overrides) -> str:
    """a daily analysis reply the way gemini tends to send it"""
    payload = {
        "transcript": "model echo of the reflection",
        "primaryEmotion": "overwhelm",
        "secondaryEmotion": "gratitude",
        "theme": "relationships",
        "emotionalIntensity": "medium",
        "dailyInsight": "It sounds like a full day. Noticing the support around you is meaningful.",
    }
    payload.update(overrides)
    body = json.dumps(payload, indent=2)
    return f"```json\n{body}\n```" if fenced else body


def weekly_reply(fenced: bool = True, **overrides) -> str:
    payload = {
        "dominantEmotions": ["calm", "anxiety"],
        "dominantThemes": ["work", "health"],
        "emotionalPattern": "Calm mornings with tension building around work deadlines.",
        "weeklyInsight": "Work shows up often this week. You seem to notice your energy shifting.",
        "reflectiveQuestion": "What helps you feel steady when deadlines pile up?",
    }
    payload.update(overrides)
    body = json.dumps(payload, indent=2)
    return f"```json\n{body}\n```" if fenced else body


class RateLimitError(Exception):
    """shaped like the error the google client raises on quota exhaustion"""

    def __init__(self):
        super().__init__("429 Too Many Requests: RESOURCE_EXHAUSTED quota exceeded")


class FakeTransport:
    """scripted stand-in for GeminiTransport - replies are strings or exceptions"""

    def __init__(self, replies=None):
        self.replies = list(replies or [])
        self.calls = []

    def queue(self, *replies):
        self.replies.extend(replies)

    async def generate(self, prompt, audio=None):
        self.calls.append({"prompt": prompt, "audio": audio})
        if not self.replies:
            raise RuntimeError("FakeTransport has no scripted reply left")
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply


# stored reflections

def reflection_doc(
    user_id: str = USER_ID,
    date: str = "2025-06-10",
    hours_ago: int = 0,
    primary_emotion: str = "calm",
    status: str = "completed",
    transcript: str = "Spent the morning walking and felt calm for most of the day.",
) -> dict:
    completed = status == "completed"
    return {
        "_id": ObjectId(),
        "user_id": user_id,
        "date": date,
        "transcript": transcript,
        "primary_emotion": primary_emotion if completed else None,
        "secondary_emotion": None,
        "theme": "health" if completed else None,
        "emotional_intensity": "low" if completed else None,
        "daily_insight": "Taking time to notice calm moments matters." if completed else None,
        "analysis_status": status,
        "analysis_error": None,
        "created_at": datetime(2025, 6, 14, 12, 0, tzinfo=timezone.utc) - timedelta(hours=hours_ago),
    }


# async cursor mock

class AsyncCursorMock:
    """mock for motor's async cursor - supports async for and chained methods"""

    def __init__(self, data=None):
        self._data = list(data or [])
        self._index = 0

    def sort(self, key, direction=1):
        self._data = sorted(
            self._data,
            key=lambda d: (d.get(key) is None, d.get(key)),
            reverse=direction == -1,
        )
        return self

    def skip(self, n):
        self._data = self._data[n:]
        return self

    def limit(self, n):
        self._data = self._data[:n]
        return self

    def __aiter__(self):
        self._index = 0
        return self

    async def __anext__(self):
        if self._index >= len(self._data):
            raise StopAsyncIteration
        item = self._data[self._index]
        self._index += 1
        return item

    async def to_list(self, length=None):
        if length is not None:
            return self._data[:length]
        return self._data


def _set_path(doc: dict, path: str, value):
    parts = path.split(".")
    for part in parts[:-1]:
        doc = doc.setdefault(part, {})
    doc[parts[-1]] = value


def _get_path(doc: dict, path: str, default=None):
    for part in path.split("."):
        if not isinstance(doc, dict) or part not in doc:
            return default
        doc = doc[part]
    return doc


class MockCollection:
    """mock for a motor collection with async methods"""

    def __init__(self, data=None):
        self._data = data or []
        self.inserted = []

    def find(self, query=None, projection=None):
        results = self._data
        if query:
            results = [d for d in results if self._matches(d, query)]
        return AsyncCursorMock(results)

    async def find_one(self, query=None, projection=None):
        if not query:
            return self._data[0] if self._data else None
        for doc in self._data:
            if self._matches(doc, query):
                return doc
        return None

    async def insert_one(self, doc):
        oid = doc.get("_id", ObjectId())
        doc["_id"] = oid
        self._data.append(doc)
        self.inserted.append(doc)
        result = MagicMock()
        result.inserted_id = oid
        return result

    async def count_documents(self, query=None):
        if not query:
            return len(self._data)
        return len([d for d in self._data if self._matches(d, query)])

    async def update_one(self, query, update, upsert=False):
        result = MagicMock()
        result.matched_count = 0
        result.modified_count = 0
        result.upserted_id = None

        target = None
        for doc in self._data:
            if self._matches(doc, query):
                target = doc
                break

        if target is None:
            if not upsert:
                return result
            target = {k: v for k, v in query.items() if not isinstance(v, dict) and not k.startswith("$")}
            target.setdefault("_id", ObjectId())
            self._data.append(target)
            result.upserted_id = target["_id"]
        else:
            result.matched_count = 1

        for key, val in update.get("$set", {}).items():
            _set_path(target, key, val)
        for key, val in update.get("$inc", {}).items():
            _set_path(target, key, _get_path(target, key, 0) + val)
        for key, val in update.get("$push", {}).items():
            items = _get_path(target, key) or []
            if isinstance(val, dict) and "$each" in val:
                items = items + list(val["$each"])
                if "$slice" in val:
                    items = items[val["$slice"]:] if val["$slice"] < 0 else items[:val["$slice"]]
            else:
                items = items + [val]
            _set_path(target, key, items)

        result.modified_count = 1
        return result

    async def delete_one(self, query):
        result = MagicMock()
        result.deleted_count = 0
        for i, doc in enumerate(self._data):
            if self._matches(doc, query):
                del self._data[i]
                result.deleted_count = 1
                break
        return result

    async def create_index(self, *args, **kwargs):
        return "mock_index"

    def _matches(self, doc, query):
        """basic mongodb query matching for tests"""
        for key, value in query.items():
            if key == "$or":
                if not any(self._matches(doc, cond) for cond in value):
                    return False
                continue
            doc_val = _get_path(doc, key)
            if isinstance(value, dict):
                if "$in" in value and doc_val not in value["$in"]:
                    return False
                if "$ne" in value and doc_val == value["$ne"]:
                    return False
                if "$gte" in value and (doc_val is None or doc_val < value["$gte"]):
                    return False
                if "$lte" in value and (doc_val is None or doc_val > value["$lte"]):
                    return False
                if "$regex" in value:
                    flags = re.IGNORECASE if value.get("$options") == "i" else 0
                    if doc_val is None or not re.search(value["$regex"], str(doc_val), flags):
                        return False
            elif doc_val != value:
                return False
        return True


class MockDatabase:
    """mock database that mimics the Database class"""

    def __init__(self):
        self.reflections = MockCollection([])
        self.users = MockCollection([])

    async def connect(self):
        pass

    async def close(self):
        pass


@pytest.fixture
def mock_db():
    """create a fresh mock database for each test"""
    return MockDatabase()


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def sleeps():
    """delays (seconds) the gateway asked to wait between retries"""
    return []


@pytest.fixture
def gateway(fake_transport, sleeps):
    """gateway on the scripted transport; retries never actually sleep"""

    async def fake_sleep(seconds):
        sleeps.append(seconds)

    return AnalysisGateway(transport=fake_transport, sleep=fake_sleep)


@pytest_asyncio.fixture
async def client(mock_db, gateway):
    """httpx async test client with mocked dependencies"""

    async def override_get_db():
        return mock_db

    async def override_get_gateway():
        return gateway

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_gateway] = override_get_gateway

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
