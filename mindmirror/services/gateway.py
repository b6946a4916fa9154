# analysis gateway - prompt -> model call (with backoff) -> extract -> validate
#
# every outcome comes back as a tagged AnalysisResult:
#   rate_limited       quota still exhausted after all retries
#   analysis_failed    transport, timeout or unparseable reply
#   schema_violation   reply parsed but is missing / has invalid fields
#   insufficient_data  weekly analysis asked for with too few reflections
# nothing is persisted here - callers store the result themselves.

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Sequence

from mindmirror.config import Settings
from mindmirror.errors import ResponseParseError, SchemaViolation
from mindmirror.models.analysis import (
    RATE_LIMITED_MESSAGE,
    AnalysisErrorKind,
    AnalysisResult,
    DailyAnalysis,
    WeeklyAnalysis,
)
from mindmirror.models.reflection import ReflectionRecord
from mindmirror.services.extractor import extract, validate_daily, validate_weekly
from mindmirror.services.prompts import PromptMode, build_prompt
from mindmirror.services.retry import is_rate_limited, retry_with_backoff
from mindmirror.services.transport import AudioPayload, GeminiTransport, ModelTransport

logger = logging.getLogger(__name__)

MIN_WEEKLY_REFLECTIONS = 3


class AnalysisGateway:

    def __init__(
        self,
        transport: ModelTransport,
        audio_supported: bool = True,
        max_attempts: int = 3,
        initial_delay_ms: int = 2000,
        min_weekly_reflections: int = MIN_WEEKLY_REFLECTIONS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.transport = transport
        self.audio_supported = audio_supported
        self.max_attempts = max_attempts
        self.initial_delay_ms = initial_delay_ms
        self.min_weekly_reflections = min_weekly_reflections
        self._sleep = sleep

    async def _call_model(self, prompt: str, audio: Optional[AudioPayload] = None) -> dict:
        raw = await retry_with_backoff(
            lambda: self.transport.generate(prompt, audio),
            max_attempts=self.max_attempts,
            initial_delay_ms=self.initial_delay_ms,
            sleep=self._sleep,
        )
        return extract(raw)

    async def _run(self, label: str, prompt: str, validate, audio: Optional[AudioPayload] = None) -> AnalysisResult:
        try:
            data = await self._call_model(prompt, audio)
            return AnalysisResult.ok(validate(data))
        except SchemaViolation as e:
            logger.error(f"{label} analysis schema violation: {e}")
            return AnalysisResult.fail(AnalysisErrorKind.SCHEMA_VIOLATION, str(e))
        except ResponseParseError as e:
            logger.error(f"{label} analysis parse error: {e}")
            return AnalysisResult.fail(AnalysisErrorKind.ANALYSIS_FAILED, str(e))
        except Exception as e:
            if is_rate_limited(e):
                logger.error(f"{label} analysis rate limited: {e}")
                return AnalysisResult.fail(AnalysisErrorKind.RATE_LIMITED, RATE_LIMITED_MESSAGE)
            logger.error(f"{label} analysis error: {e}")
            return AnalysisResult.fail(AnalysisErrorKind.ANALYSIS_FAILED, str(e) or type(e).__name__)

    async def analyze_text(self, text: str) -> AnalysisResult[DailyAnalysis]:
        """analyze a typed (or browser-transcribed) reflection"""
        prompt = build_prompt(PromptMode.DAILY_TEXT, text)

        def validate(data: dict) -> DailyAnalysis:
            # the stored transcript is what the user wrote, not the model's echo
            return validate_daily({**data, "transcript": text})

        return await self._run("Text", prompt, validate)

    async def analyze_audio(self, data: bytes, mime_type: str) -> AnalysisResult[DailyAnalysis]:
        """transcribe and analyze an audio reflection in one model call"""
        if not self.audio_supported:
            return AnalysisResult.fail(
                AnalysisErrorKind.ANALYSIS_FAILED,
                "Audio analysis is disabled on this deployment",
            )
        prompt = build_prompt(PromptMode.DAILY_AUDIO)
        audio = AudioPayload(data=data, mime_type=mime_type)
        return await self._run("Audio", prompt, validate_daily, audio=audio)

    async def analyze_weekly(self, reflections: Sequence[ReflectionRecord]) -> AnalysisResult[WeeklyAnalysis]:
        """summarise emotional patterns across recent reflections"""
        if len(reflections) < self.min_weekly_reflections:
            return AnalysisResult.fail(
                AnalysisErrorKind.INSUFFICIENT_DATA,
                f"At least {self.min_weekly_reflections} reflections are needed, got {len(reflections)}",
            )
        prompt = build_prompt(PromptMode.WEEKLY, list(reflections))
        return await self._run("Weekly", prompt, validate_weekly)


def build_gateway(settings: Settings) -> AnalysisGateway:
    """wire the gemini transport and gateway from configuration"""
    if not settings.GEMINI_API_KEY and settings.REQUIRE_GEMINI_API_KEY:
        raise RuntimeError("GEMINI_API_KEY is not set. Provide it via .env or the environment.")

    transport = GeminiTransport(
        api_key=settings.GEMINI_API_KEY,
        model=settings.GEMINI_MODEL,
        temperature=settings.GEMINI_TEMPERATURE,
        timeout=settings.GEMINI_TIMEOUT_SECONDS,
    )
    logger.info(
        f"Analysis gateway ready: model={settings.GEMINI_MODEL}, "
        f"audio={'on' if settings.AUDIO_SUPPORTED else 'off'}"
    )
    return AnalysisGateway(
        transport=transport,
        audio_supported=settings.AUDIO_SUPPORTED,
        max_attempts=settings.RETRY_MAX_ATTEMPTS,
        initial_delay_ms=settings.RETRY_INITIAL_DELAY_MS,
        min_weekly_reflections=settings.WEEKLY_MIN_REFLECTIONS,
    )
