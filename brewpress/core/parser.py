"""
Best-effort extraction of structured records from free-form AI output.

The model is asked for JSON but often wraps it in prose or code fences, so
the parser looks for the first balanced object and decodes only that.
"""
import json
import re
from typing import Any, Dict, List, Optional, Union

from brewpress.core.article import AnalysisResult
from brewpress.core.errors import ParseError

SENTIMENTS = ("positive", "neutral", "negative")
MIN_IMPORTANCE = 1
MAX_IMPORTANCE = 5

_FALSE_STRINGS = {"false", "no", "0", "off", ""}
_TAG_SEPARATORS = re.compile(r"[,、]")


def extract_json_object(text: str) -> str:
    """
    Locate the first balanced `{...}` substring in text.

    Braces inside JSON strings are ignored. Scanning restarts at the next
    opening brace when one never closes.

    Args:
        text: Raw model output

    Returns:
        The object substring, braces included

    Raises:
        ParseError: If no balanced object exists
    """
    if not text:
        raise ParseError("Empty AI response")

    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for index in range(start, len(text)):
            char = text[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return text[start:index + 1]
        start = text.find("{", start + 1)

    raise ParseError("No JSON object found in AI response")


def decode_json_object(text: str) -> Dict[str, Any]:
    """
    Extract and decode the first JSON object in text.

    Raises:
        ParseError: If there is no object or it does not decode to a mapping
    """
    candidate = extract_json_object(text)
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as e:
        raise ParseError(f"AI response JSON could not be decoded: {e}") from e
    if not isinstance(data, dict):
        raise ParseError("AI response JSON is not an object")
    return data


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _as_bool(value: Any, default: bool = True) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    return str(value).strip().lower() not in _FALSE_STRINGS


def normalize_tags(value: Any) -> List[str]:
    """
    Normalize suggested tags into an ordered list.

    Accepts a JSON array or a comma separated string; blanks are dropped,
    duplicates are kept.
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        items = [_as_text(item) for item in value]
    else:
        items = [part.strip() for part in _TAG_SEPARATORS.split(str(value))]
    return [item for item in items if item]


def normalize_importance(value: Any) -> Optional[int]:
    """Coerce importance to an int clamped into [1, 5]; None when not numeric."""
    if value is None or isinstance(value, bool):
        return None
    try:
        importance = int(float(str(value).strip()))
    except (ValueError, OverflowError):
        return None
    return max(MIN_IMPORTANCE, min(MAX_IMPORTANCE, importance))


def normalize_sentiment(value: Any) -> Optional[str]:
    text = _as_text(value).lower()
    if not text:
        return None
    return text if text in SENTIMENTS else "neutral"


def _normalize_points(value: Any) -> Union[str, List[str]]:
    if isinstance(value, (list, tuple)):
        return [point for point in (_as_text(item) for item in value) if point]
    return _as_text(value)


def parse_analysis(text: str) -> AnalysisResult:
    """
    Parse the analysis response into an AnalysisResult.

    Args:
        text: Raw model output

    Returns:
        AnalysisResult with missing fields left empty

    Raises:
        ParseError: If no decodable JSON object is present
    """
    data = decode_json_object(text)

    relevant_value = data.get("is_beer_related", data.get("relevant"))
    category = _as_text(data.get("selected_category")) or None

    return AnalysisResult(
        summary=_as_text(data.get("ai_summary")),
        summary_points=_normalize_points(data.get("ai_summary_points")),
        importance=normalize_importance(data.get("ai_importance")),
        sentiment=normalize_sentiment(data.get("ai_sentiment")),
        target_audience=_as_text(data.get("ai_target_audience")),
        tags=normalize_tags(data.get("ai_tags_suggest")),
        category=category,
        relevant=_as_bool(relevant_value, default=True),
        description=_as_text(data.get("content_description")),
    )


def parse_image_lookup(text: str) -> Optional[str]:
    """
    Parse the image lookup response.

    Returns:
        The image URL when the model reports one, otherwise None

    Raises:
        ParseError: If no decodable JSON object is present
    """
    data = decode_json_object(text)
    if not _as_bool(data.get("found"), default=False):
        return None
    url = _as_text(data.get("image_url"))
    return url or None
