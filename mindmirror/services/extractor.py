# response extractor - pull the json object out of a loosely formatted model reply
# strips one level of markdown fencing, parses, then validates against the schemas

import json
import logging
import re

from pydantic import ValidationError

from mindmirror.errors import ResponseParseError, SchemaViolation
from mindmirror.models.analysis import DailyAnalysis, WeeklyAnalysis

logger = logging.getLogger(__name__)

# ```json ... ``` or ``` ... ``` - first fenced block wins
_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)


def strip_code_fence(raw: str) -> str:
    """return the inside of the first fenced block, or the text unchanged"""
    match = _FENCE_RE.search(raw)
    if match:
        return match.group(1)
    return raw


def extract(raw: str) -> dict:
    """parse a model reply into a dict, raising ResponseParseError otherwise"""
    if raw is None:
        raise ResponseParseError("Model returned an empty response", raw="")

    text = strip_code_fence(raw).strip()
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        logger.warning(f"Could not parse model response: {e} - raw: {raw[:200]!r}")
        raise ResponseParseError(f"Model response was not valid JSON: {e.msg}", raw=raw) from e

    if not isinstance(parsed, dict):
        raise ResponseParseError("Model response was not a JSON object", raw=raw)
    return parsed


def _violation(kind: str, error: ValidationError) -> SchemaViolation:
    fields = [".".join(str(p) for p in err["loc"]) for err in error.errors()]
    return SchemaViolation(
        f"{kind} analysis is missing or has invalid fields: {', '.join(fields)}",
        fields=fields,
    )


def validate_daily(data: dict) -> DailyAnalysis:
    try:
        return DailyAnalysis.model_validate(data)
    except ValidationError as e:
        raise _violation("Daily", e) from e


def validate_weekly(data: dict) -> WeeklyAnalysis:
    try:
        return WeeklyAnalysis.model_validate(data)
    except ValidationError as e:
        raise _violation("Weekly", e) from e
