# analysis router - daily and weekly reflection analysis
# runs the gateway, persists successful daily analyses, records per-user usage

import base64
import binascii
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status

from mindmirror.config import settings
from mindmirror.dependencies import get_gateway, get_store
from mindmirror.errors import ApiError
from mindmirror.models.analysis import AnalysisError, AnalysisErrorKind
from mindmirror.models.reflection import (
    DailyAnalysisRequest,
    DailyAnalysisResponse,
    SaveTranscriptRequest,
    SaveTranscriptResponse,
    WeeklyAnalysisRequest,
    WeeklyAnalysisResponse,
)
from mindmirror.services.db import Database, get_db
from mindmirror.services.gateway import AnalysisGateway
from mindmirror.services.reflection_store import ReflectionStore
from mindmirror.services.usage_service import record_api_call

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["analysis"])

DATE_FORMAT = "%Y-%m-%d"


def today_utc() -> str:
    return datetime.now(timezone.utc).strftime(DATE_FORMAT)


def _bad_request(message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


def _require_user_id(user_id: Optional[str]) -> str:
    if not user_id or not user_id.strip():
        raise _bad_request("userId is required")
    return user_id.strip()


def _resolve_date(date: Optional[str]) -> str:
    """caller's YYYY-MM-DD date, or today in utc"""
    if not date:
        return today_utc()
    try:
        parsed = datetime.strptime(date, DATE_FORMAT)
    except ValueError:
        raise _bad_request("date must be formatted as YYYY-MM-DD")
    # store the zero-padded form so date lookups match
    return parsed.strftime(DATE_FORMAT)


def _decode_audio(audio_data: str) -> bytes:
    # base64 inflates by 4/3, reject oversized clips before decoding
    if len(audio_data) * 3 // 4 > settings.MAX_AUDIO_BYTES + 3:
        raise _bad_request("File too large. Maximum file size is 10MB")
    try:
        audio = base64.b64decode(audio_data, validate=True)
    except (binascii.Error, ValueError):
        raise _bad_request("audioData must be base64 encoded")
    if not audio:
        raise _bad_request("audioData is empty")
    if len(audio) > settings.MAX_AUDIO_BYTES:
        raise _bad_request("File too large. Maximum file size is 10MB")
    return audio


def _error_to_http(error: AnalysisError) -> ApiError:
    """map a gateway failure to the http error the frontend expects"""
    if error.kind is AnalysisErrorKind.RATE_LIMITED:
        return ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, error.message, is_rate_limited=True)
    if error.kind is AnalysisErrorKind.INSUFFICIENT_DATA:
        return ApiError(status.HTTP_400_BAD_REQUEST, error.message)
    return ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, error.message)


@router.post("/analyze-daily", response_model=DailyAnalysisResponse)
async def analyze_daily(
    body: DailyAnalysisRequest,
    gateway: AnalysisGateway = Depends(get_gateway),
    store: ReflectionStore = Depends(get_store),
    db: Database = Depends(get_db),
):
    """analyze today's reflection (text or audio) and store the result"""

    user_id = _require_user_id(body.user_id)
    # the stored transcript keeps the input as sent, checks use the trimmed text
    text = body.text_input or ""
    has_text = bool(text.strip())
    has_audio = bool(body.audio_data)

    if has_text == has_audio:
        raise _bad_request("Provide exactly one of textInput or audioData")

    date = _resolve_date(body.date)

    if has_text:
        if len(text.strip()) < settings.REFLECTION_MIN_LENGTH:
            raise _bad_request(
                f"textInput must be at least {settings.REFLECTION_MIN_LENGTH} characters"
            )
        operation = "daily-text"
        result = await gateway.analyze_text(text)
    else:
        if not gateway.audio_supported:
            raise _bad_request("Audio reflections are not supported, please send textInput")
        if not body.mime_type:
            raise _bad_request("mimeType is required with audioData")
        audio = _decode_audio(body.audio_data)
        operation = "daily-audio"
        result = await gateway.analyze_audio(audio, body.mime_type)

    await record_api_call(db, user_id, operation, result.success)

    if not result.success:
        logger.error(f"Daily analysis failed for {user_id}: {result.error.kind.value}")
        raise _error_to_http(result.error)

    reflection_id = await store.create(user_id, date, result.data)
    reflection = await store.get(reflection_id)
    return DailyAnalysisResponse(analysis=reflection)


async def run_pending_analysis(
    reflection_id: str,
    user_id: str,
    transcript: str,
    gateway: AnalysisGateway,
    store: ReflectionStore,
    db: Database,
) -> None:
    """background step for save-transcript: pending -> completed | failed"""
    try:
        result = await gateway.analyze_text(transcript)
        await record_api_call(db, user_id, "transcript", result.success)
        if result.success:
            await store.mark_completed(reflection_id, result.data)
            logger.info(f"Background analysis completed for reflection {reflection_id}")
        else:
            await store.mark_failed(reflection_id, result.error.message)
            logger.warning(f"Background analysis failed for reflection {reflection_id}: {result.error.message}")
    except Exception as e:
        logger.exception(f"Background analysis crashed for reflection {reflection_id}")
        try:
            await store.mark_failed(reflection_id, str(e) or "Analysis failed")
        except Exception as mark_error:
            logger.error(f"Could not mark reflection {reflection_id} as failed: {mark_error}")


@router.post("/save-transcript", response_model=SaveTranscriptResponse, status_code=status.HTTP_201_CREATED)
async def save_transcript(
    body: SaveTranscriptRequest,
    background_tasks: BackgroundTasks,
    gateway: AnalysisGateway = Depends(get_gateway),
    store: ReflectionStore = Depends(get_store),
    db: Database = Depends(get_db),
):
    """store a browser transcript right away and analyze it in the background.
    poll /api/reflection-by-id for the status change."""

    user_id = _require_user_id(body.user_id)
    transcript = body.transcript or ""
    if not transcript.strip():
        raise _bad_request("transcript is required")

    date = _resolve_date(body.date)
    reflection_id = await store.create_pending(user_id, date, transcript)

    background_tasks.add_task(
        run_pending_analysis,
        reflection_id,
        user_id,
        transcript,
        gateway,
        store,
        db,
    )

    reflection = await store.get(reflection_id)
    return SaveTranscriptResponse(reflection=reflection)


@router.post("/analyze-weekly", response_model=WeeklyAnalysisResponse, response_model_exclude_none=True)
async def analyze_weekly(
    body: WeeklyAnalysisRequest,
    gateway: AnalysisGateway = Depends(get_gateway),
    store: ReflectionStore = Depends(get_store),
    db: Database = Depends(get_db),
):
    """weekly pattern analysis over the most recent completed reflections"""

    user_id = _require_user_id(body.user_id)

    reflections = await store.list_recent(user_id, limit=settings.WEEKLY_LOOKBACK, completed_only=True)
    count = len(reflections)

    if count < settings.WEEKLY_MIN_REFLECTIONS:
        return WeeklyAnalysisResponse(
            hasEnoughData=False,
            reflectionCount=count,
            message="Not enough reflections",
        )

    result = await gateway.analyze_weekly(reflections)
    if result.error and result.error.kind is AnalysisErrorKind.INSUFFICIENT_DATA:
        return WeeklyAnalysisResponse(hasEnoughData=False, reflectionCount=count, message=result.error.message)

    await record_api_call(db, user_id, "weekly", result.success)

    if not result.success:
        logger.error(f"Weekly analysis failed for {user_id}: {result.error.kind.value}")
        raise _error_to_http(result.error)

    return WeeklyAnalysisResponse(
        hasEnoughData=True,
        reflectionCount=count,
        analysis=result.data,
    )
