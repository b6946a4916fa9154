# usage router - model call counters for the api usage page

import logging
from fastapi import APIRouter, Depends

from mindmirror.models.usage import UserStatsResponse
from mindmirror.services.db import Database, get_db
from mindmirror.services.usage_service import get_user_stats

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["usage"])


@router.get("/user-stats/{user_id}", response_model=UserStatsResponse)
async def user_stats(
    user_id: str,
    db: Database = Depends(get_db),
):
    """request counters, per-day / per-operation usage and the recent call log"""
    stats = await get_user_stats(db, user_id)
    return UserStatsResponse(stats=stats)
