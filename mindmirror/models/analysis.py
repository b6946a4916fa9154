# analysis models - structured model output and tagged gateway results
# daily/weekly schemas mirror the json the prompts ask gemini for

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Literal, Optional, TypeVar

from pydantic import BaseModel, Field, field_validator

T = TypeVar("T")

RATE_LIMITED_MESSAGE = "The AI service is temporarily busy. Please wait a moment and try again."


class DailyAnalysis(BaseModel):
    """single-reflection analysis returned by the model"""
    transcript: str = Field(..., min_length=1)
    primary_emotion: str = Field(..., alias="primaryEmotion", min_length=1)
    secondary_emotion: Optional[str] = Field(None, alias="secondaryEmotion")
    theme: str = Field(..., min_length=1)
    emotional_intensity: Literal["low", "medium", "high"] = Field(..., alias="emotionalIntensity")
    daily_insight: str = Field(..., alias="dailyInsight", min_length=1)

    model_config = {"populate_by_name": True}

    @field_validator("primary_emotion", "theme", "daily_insight", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("transcript")
    @classmethod
    def _transcript_not_blank(cls, value):
        # kept verbatim, whitespace-only counts as missing
        if not value.strip():
            raise ValueError("transcript must not be blank")
        return value

    @field_validator("secondary_emotion", mode="before")
    @classmethod
    def _null_secondary(cls, value):
        # models sometimes answer with the string "null" instead of json null
        if isinstance(value, str) and value.strip().lower() in ("", "null", "none"):
            return None
        return value

    @field_validator("emotional_intensity", mode="before")
    @classmethod
    def _lower_intensity(cls, value):
        return value.strip().lower() if isinstance(value, str) else value


class WeeklyAnalysis(BaseModel):
    """pattern summary over recent reflections - computed on demand, never stored"""
    dominant_emotions: list[str] = Field(..., alias="dominantEmotions")
    dominant_themes: list[str] = Field(..., alias="dominantThemes")
    emotional_pattern: str = Field(..., alias="emotionalPattern", min_length=1)
    weekly_insight: str = Field(..., alias="weeklyInsight", min_length=1)
    reflective_question: str = Field(..., alias="reflectiveQuestion", min_length=1)

    model_config = {"populate_by_name": True}


class AnalysisErrorKind(str, Enum):
    RATE_LIMITED = "rate_limited"
    ANALYSIS_FAILED = "analysis_failed"
    INSUFFICIENT_DATA = "insufficient_data"
    SCHEMA_VIOLATION = "schema_violation"


@dataclass
class AnalysisError:
    kind: AnalysisErrorKind
    message: str

    @property
    def is_rate_limited(self) -> bool:
        return self.kind is AnalysisErrorKind.RATE_LIMITED


@dataclass
class AnalysisResult(Generic[T]):
    """tagged outcome of a gateway call: exactly one of data / error is set"""
    data: Optional[T] = None
    error: Optional[AnalysisError] = None

    @property
    def success(self) -> bool:
        return self.error is None

    @classmethod
    def ok(cls, data: T) -> "AnalysisResult[T]":
        return cls(data=data)

    @classmethod
    def fail(cls, kind: AnalysisErrorKind, message: str) -> "AnalysisResult[T]":
        return cls(error=AnalysisError(kind=kind, message=message))
