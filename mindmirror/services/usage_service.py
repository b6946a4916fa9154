# usage service - per-user accounting of model calls
# feeds the frontend's api counter and usage page. failures here never block a request.

import logging
from datetime import datetime, timezone

from mindmirror.models.usage import ApiLogEntry, ApiUsage, UserStats
from mindmirror.services.db import Database
from mindmirror.services.reflection_store import ReflectionStore

logger = logging.getLogger(__name__)

# keep the per-user log short, counters hold the totals
MAX_API_LOGS = 50


async def record_api_call(db: Database, user_id: str, operation: str, success: bool) -> None:
    """bump the user's request counters and append to the recent call log"""
    now = datetime.now(timezone.utc)
    day = now.strftime("%Y-%m-%d")
    try:
        await db.users.update_one(
            {"user_id": user_id},
            {
                "$inc": {
                    "api_request_count": 1,
                    f"api_usage.by_date.{day}": 1,
                    f"api_usage.by_type.{operation}": 1,
                },
                "$push": {
                    "api_logs": {
                        "$each": [{"operation": operation, "success": success, "timestamp": now.isoformat()}],
                        "$slice": -MAX_API_LOGS,
                    },
                },
                "$set": {"updated_at": now.isoformat()},
            },
            upsert=True,
        )
    except Exception as e:
        # non-critical - the analysis result matters more than the counter
        logger.warning(f"Could not record api usage for {user_id}: {e}")


async def get_user_stats(db: Database, user_id: str) -> UserStats:
    """usage counters for a user, zeros when nothing was recorded yet"""
    doc = await db.users.find_one({"user_id": user_id}) or {}
    usage = doc.get("api_usage") or {}
    logs = [
        ApiLogEntry(
            operation=entry.get("operation", "unknown"),
            success=bool(entry.get("success", False)),
            timestamp=str(entry.get("timestamp", "")),
        )
        for entry in doc.get("api_logs", [])
    ]
    reflection_count = await ReflectionStore(db.reflections).count_for_user(user_id)
    return UserStats(
        apiRequestCount=doc.get("api_request_count", 0),
        apiUsage=ApiUsage(byDate=usage.get("by_date", {}), byType=usage.get("by_type", {})),
        apiLogs=logs,
        reflectionCount=reflection_count,
    )
