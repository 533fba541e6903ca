import json
import re
from typing import Any, Dict

from utils.errors import ParseError

EXCERPT_LENGTH = 500

_LEADING_JSON_FENCE = re.compile(r"^```json\s*", re.IGNORECASE)
_LEADING_FENCE = re.compile(r"^```\s*")
_TRAILING_FENCE = re.compile(r"\s*```$")
_TRAILING_COMMA = re.compile(r",(\s*[}\]])")


def parse_json_from_text(text: str) -> Dict[str, Any]:
    """Best-effort extraction of a JSON object from LLM output.

    Handles markdown fences, prose around the object, and trailing commas.
    This is a heuristic; a trailing comma inside a string value is also removed.
    Raises ParseError (with a raw-text excerpt) when nothing parseable remains.
    """

    raw = text if isinstance(text, str) else ""

    cleaned = raw.strip()
    cleaned = _LEADING_JSON_FENCE.sub("", cleaned)
    cleaned = _LEADING_FENCE.sub("", cleaned)
    cleaned = _TRAILING_FENCE.sub("", cleaned)

    first_brace = cleaned.find("{")
    last_brace = cleaned.rfind("}")
    if first_brace != -1 and last_brace > first_brace:
        cleaned = cleaned[first_brace : last_brace + 1]

    cleaned = _TRAILING_COMMA.sub(r"\1", cleaned)

    excerpt = raw[:EXCERPT_LENGTH]
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ParseError(f"Failed to parse JSON: {e}. Raw response: {excerpt}", excerpt=excerpt) from e

    if not isinstance(parsed, dict):
        raise ParseError(
            f"Expected a JSON object, got {type(parsed).__name__}. Raw response: {excerpt}",
            excerpt=excerpt,
        )
    return parsed
