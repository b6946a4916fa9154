# reflection models - stored record, request payloads and response envelopes
# mirrors the frontend's reflection shape (camelCase over the wire)

from typing import Literal, Optional
from pydantic import BaseModel, Field

from mindmirror.models.analysis import WeeklyAnalysis

AnalysisStatus = Literal["pending", "completed", "failed"]


class ReflectionRecord(BaseModel):
    """one journal entry for a user and calendar date"""
    id: str
    user_id: str = Field(..., alias="userId")
    date: str
    transcript: str = ""
    primary_emotion: Optional[str] = Field(None, alias="primaryEmotion")
    secondary_emotion: Optional[str] = Field(None, alias="secondaryEmotion")
    theme: Optional[str] = None
    emotional_intensity: Optional[str] = Field(None, alias="emotionalIntensity")
    daily_insight: Optional[str] = Field(None, alias="dailyInsight")
    analysis_status: AnalysisStatus = Field("completed", alias="analysisStatus")
    analysis_error: Optional[str] = Field(None, alias="analysisError")
    created_at: str = Field(..., alias="createdAt")

    model_config = {"populate_by_name": True}


# requests

class DailyAnalysisRequest(BaseModel):
    """payload for analyze-daily - exactly one of textInput / audioData"""
    user_id: Optional[str] = Field(None, alias="userId")
    date: Optional[str] = None
    text_input: Optional[str] = Field(None, alias="textInput")
    audio_data: Optional[str] = Field(None, alias="audioData", description="base64 encoded audio clip")
    mime_type: Optional[str] = Field(None, alias="mimeType")

    model_config = {"populate_by_name": True}


class SaveTranscriptRequest(BaseModel):
    """browser speech-to-text transcript, analysed in the background"""
    user_id: Optional[str] = Field(None, alias="userId")
    date: Optional[str] = None
    transcript: Optional[str] = None

    model_config = {"populate_by_name": True}


class WeeklyAnalysisRequest(BaseModel):
    user_id: Optional[str] = Field(None, alias="userId")

    model_config = {"populate_by_name": True}


class DeleteReflectionRequest(BaseModel):
    user_id: Optional[str] = Field(None, alias="userId")

    model_config = {"populate_by_name": True}


# responses

class DailyAnalysisResponse(BaseModel):
    success: bool = True
    analysis: ReflectionRecord


class SaveTranscriptResponse(BaseModel):
    success: bool = True
    reflection: ReflectionRecord


class WeeklyAnalysisResponse(BaseModel):
    success: bool = True
    has_enough_data: bool = Field(..., alias="hasEnoughData")
    reflection_count: int = Field(0, alias="reflectionCount")
    analysis: Optional[WeeklyAnalysis] = None
    message: Optional[str] = None

    model_config = {"populate_by_name": True}


class ReflectionListResponse(BaseModel):
    success: bool = True
    reflections: list[ReflectionRecord] = Field(default_factory=list)


class ReflectionResponse(BaseModel):
    success: bool = True
    reflection: ReflectionRecord


class TodayReflectionResponse(BaseModel):
    success: bool = True
    has_reflection: bool = Field(..., alias="hasReflection")
    reflection: Optional[ReflectionRecord] = None

    model_config = {"populate_by_name": True}


class ReflectionLookupResponse(BaseModel):
    """status poll for a single reflection (pending -> completed | failed)"""
    success: bool = True
    found: bool
    reflection: Optional[ReflectionRecord] = None


class DeleteReflectionResponse(BaseModel):
    success: bool = True
    message: str = "Reflection deleted"
