"""
Helpers for pulling a JSON value out of raw LLM output.
Handles markdown code fences and conversational text around the JSON.
"""
import json
from typing import Any

JSON_FENCE = "```json"
FENCE = "```"


class JsonExtractionError(ValueError):
    """Raised when extracted text still fails to parse as JSON."""

    def __init__(self, raw: str, cause: Exception):
        self.raw = raw
        self.cause = cause
        preview = raw[:200] + "..." if len(raw) > 200 else raw
        super().__init__(
            f"Failed to parse JSON from LLM response ({cause}). "
            f"Response length: {len(raw)} chars, Preview: {preview}"
        )


def _strip_fences(text: str) -> str:
    if text.startswith(JSON_FENCE):
        # '```json' (7) + '```' (3) = 10 minimum
        if text.endswith(FENCE) and len(text) >= 10:
            return text[len(JSON_FENCE):-len(FENCE)].strip()
        return text[len(JSON_FENCE):].strip()
    if text.startswith(FENCE):
        if text.endswith(FENCE) and len(text) >= 6:
            return text[len(FENCE):-len(FENCE)].strip()
        return text[len(FENCE):].strip()
    return text


def extract_strict_json(raw: str) -> str:
    """
    Return the part of ``raw`` most likely to be valid JSON.

    Strips one leading ```json / ``` fence (and its closing fence when
    present), then slices from the first ``[`` or ``{`` (whichever comes
    first) through the LAST matching closer. When no usable span exists the
    fence-stripped text is returned as-is.

    This is a heuristic, not a balanced scanner: prose after the JSON that
    contains a stray closer of the same type is included in the slice.
    Never raises.
    """
    cleaned = _strip_fences((raw or "").strip())

    first_bracket = cleaned.find("[")
    first_brace = cleaned.find("{")

    start = end = -1
    if first_bracket != -1 and (first_brace == -1 or first_bracket < first_brace):
        start = first_bracket
        end = cleaned.rfind("]")
    elif first_brace != -1:
        start = first_brace
        end = cleaned.rfind("}")

    if start != -1 and end > start:
        return cleaned[start:end + 1]
    return cleaned


def parse_strict_json(raw: str) -> Any:
    """
    Extract and parse JSON from an LLM response.

    Raises:
        JsonExtractionError: If the extracted text is not valid JSON
    """
    extracted = extract_strict_json(raw)
    try:
        return json.loads(extracted)
    except json.JSONDecodeError as e:
        raise JsonExtractionError(raw or "", e) from e
