# reflections router - read and delete stored reflections
# every lookup is scoped to a user id; delete re-checks ownership

import logging
from fastapi import APIRouter, Depends, HTTPException, status, Query

from mindmirror.errors import ReflectionForbidden, ReflectionNotFound
from mindmirror.models.reflection import (
    DeleteReflectionRequest,
    DeleteReflectionResponse,
    ReflectionListResponse,
    ReflectionLookupResponse,
    ReflectionResponse,
    TodayReflectionResponse,
)
from mindmirror.dependencies import get_store
from mindmirror.routers.analysis import today_utc
from mindmirror.services.reflection_store import ReflectionStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["reflections"])


@router.get("/reflections/{user_id}", response_model=ReflectionListResponse)
async def list_reflections(
    user_id: str,
    limit: int = Query(7, ge=1, le=100),
    store: ReflectionStore = Depends(get_store),
):
    """most recent reflections for a user, newest first"""
    reflections = await store.list_recent(user_id, limit=limit)
    return ReflectionListResponse(reflections=reflections)


@router.get("/reflection/{user_id}/{date}", response_model=ReflectionResponse)
async def get_reflection_for_date(
    user_id: str,
    date: str,
    store: ReflectionStore = Depends(get_store),
):
    """the reflection for a calendar date (latest one if the day has several)"""
    try:
        reflection = await store.get_by_user_and_date(user_id, date)
    except ReflectionNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No reflection found for this date",
        )
    return ReflectionResponse(reflection=reflection)


@router.get("/today-reflection/{user_id}", response_model=TodayReflectionResponse, response_model_exclude_none=True)
async def get_today_reflection(
    user_id: str,
    store: ReflectionStore = Depends(get_store),
):
    """today's reflection (utc date), if the user already wrote one"""
    reflection = await store.find_latest(user_id, today_utc())
    return TodayReflectionResponse(hasReflection=reflection is not None, reflection=reflection)


@router.get("/reflection-by-id/{user_id}/{reflection_id}", response_model=ReflectionLookupResponse)
async def get_reflection_by_id(
    user_id: str,
    reflection_id: str,
    store: ReflectionStore = Depends(get_store),
):
    """status poll for a saved transcript"""
    try:
        reflection = await store.get_owned(reflection_id, user_id)
    except ReflectionNotFound:
        return ReflectionLookupResponse(found=False)
    except ReflectionForbidden:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have access to this reflection",
        )
    return ReflectionLookupResponse(found=True, reflection=reflection)


@router.delete("/reflections/{reflection_id}", response_model=DeleteReflectionResponse)
async def delete_reflection(
    reflection_id: str,
    body: DeleteReflectionRequest,
    store: ReflectionStore = Depends(get_store),
):
    """delete a reflection owned by the requesting user"""

    if not body.user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="userId is required",
        )

    try:
        await store.delete_owned(reflection_id, body.user_id)
    except ReflectionNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Reflection not found",
        )
    except ReflectionForbidden:
        logger.warning(f"User {body.user_id} tried to delete reflection {reflection_id} they do not own")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only delete your own reflections",
        )

    return DeleteReflectionResponse()
