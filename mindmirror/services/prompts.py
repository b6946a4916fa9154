# prompt builder - fixed instruction templates for the three analysis modes
# output is deterministic for identical input (no timestamps, no randomness)

import json
from enum import Enum
from typing import Optional, Sequence

from langchain_core.prompts import PromptTemplate

from mindmirror.models.reflection import ReflectionRecord

# suggested, not enforced - the model may pick something else
THEMES = ["work", "relationships", "self", "health", "family", "creativity", "growth", "finances"]

# weekly summaries keep prompts small by cutting long transcripts
TRANSCRIPT_EXCERPT_CHARS = 200


class PromptMode(str, Enum):
    DAILY_TEXT = "daily-text"
    DAILY_AUDIO = "daily-audio"
    WEEKLY = "weekly"


_SAFETY_RULES = """Remember:
- Never provide medical advice, diagnosis, or therapeutic recommendations
- Keep the tone warm, supportive, and non-judgmental
- Focus on reflection and awareness, not solutions"""

_DAILY_FORMAT = """{{{{
  "transcript": {transcript_hint},
  "primaryEmotion": "the main emotion expressed (e.g., joy, sadness, anxiety, gratitude, frustration, hope, calm, overwhelm)",
  "secondaryEmotion": "a secondary emotion if present, or null",
  "theme": "the main theme ({themes})",
  "emotionalIntensity": "low, medium, or high",
  "dailyInsight": "A gentle 2-3 sentence reflection that helps the user notice patterns without giving advice. Focus on acknowledgment and awareness."
}}}}"""

DAILY_TEXT_PROMPT = PromptTemplate.from_template(
    """You are a compassionate emotional awareness assistant for a reflection app called MindMirror.

Analyze this reflection text and respond ONLY with valid JSON:

\"\"\"
{reflection}
\"\"\"

Respond in this exact format:
"""
    + _DAILY_FORMAT.format(transcript_hint='"the reflection text exactly as written"', themes=", ".join(THEMES))
    + "\n\n"
    + _SAFETY_RULES
)

DAILY_AUDIO_PROMPT = PromptTemplate.from_template(
    """You are a compassionate emotional awareness assistant for a reflection app called MindMirror.

Listen to the attached audio reflection and respond ONLY with valid JSON in this exact format:
"""
    + _DAILY_FORMAT.format(transcript_hint='"full transcription of the audio"', themes=", ".join(THEMES))
    + "\n\n"
    + _SAFETY_RULES
    + "\n- If the audio is unclear, do your best to transcribe what you can hear"
)

WEEKLY_PROMPT = PromptTemplate.from_template(
    """You are an emotional pattern analyst for MindMirror, a reflection app focused on self-awareness.

Analyze these {count} recent reflections and respond ONLY with valid JSON:

{summaries}

Respond in this exact format:
{{
  "dominantEmotions": ["emotion1", "emotion2"],
  "dominantThemes": ["theme1", "theme2"],
  "emotionalPattern": "brief description of emotional fluctuations observed",
  "weeklyInsight": "A thoughtful 2-3 sentence observation about patterns noticed this week. Focus on what the person might want to be aware of, not what they should do.",
  "reflectiveQuestion": "A single open-ended question to encourage deeper self-reflection"
}}

Guidelines:
- Be descriptive, not prescriptive
- Never provide medical advice or diagnosis
- Focus on patterns and awareness
- Keep the tone gentle and supportive
- The reflective question should be thought-provoking but not intrusive"""
)


def summarize_reflection(record: ReflectionRecord) -> dict:
    """compact view of one reflection for the weekly prompt"""
    transcript = record.transcript[:TRANSCRIPT_EXCERPT_CHARS] if record.transcript else None
    return {
        "date": record.date,
        "primaryEmotion": record.primary_emotion,
        "secondaryEmotion": record.secondary_emotion,
        "theme": record.theme,
        "intensity": record.emotional_intensity,
        "transcript": transcript,
    }


def build_prompt(mode: PromptMode | str, payload: Optional[str | Sequence[ReflectionRecord]] = None) -> str:
    """render the prompt for a mode.

    daily-text takes the reflection text, daily-audio takes nothing (the audio
    travels next to the prompt), weekly takes the reflections to summarise.
    """
    mode = PromptMode(mode)

    if mode is PromptMode.DAILY_TEXT:
        if not isinstance(payload, str):
            raise ValueError("daily-text prompts need the reflection text")
        return DAILY_TEXT_PROMPT.format(reflection=payload)

    if mode is PromptMode.DAILY_AUDIO:
        return DAILY_AUDIO_PROMPT.format()

    if payload is None or isinstance(payload, str):
        raise ValueError("weekly prompts need a list of reflections")
    summaries = [summarize_reflection(r) for r in payload]
    return WEEKLY_PROMPT.format(
        count=len(summaries),
        summaries=json.dumps(summaries, indent=2, ensure_ascii=False),
    )
