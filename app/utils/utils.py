import json
import re
from typing import Any, Dict, Optional

DEFAULT_SCORE = 50

_decoder = json.JSONDecoder()
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def find_json_object(text: str) -> Optional[Dict[str, Any]]:
    """Return the first balanced {...} JSON object embedded in text, or None."""
    if not text or not isinstance(text, str):
        return None
    start = text.find("{")
    while start >= 0:
        try:
            obj, _ = _decoder.raw_decode(text, start)
        except ValueError:
            obj = None
        if isinstance(obj, dict):
            return obj
        start = text.find("{", start + 1)
    return None


def coerce_score(value: Any, default: int = DEFAULT_SCORE) -> int:
    """Coerce an LLM-provided score to an int in [0, 100].

    Strings contribute their leading integer ("85%" -> 85); anything
    non-numeric falls back to ``default``.
    """
    score = None
    if isinstance(value, bool):
        score = None
    elif isinstance(value, (int, float)):
        if value == value and value not in (float("inf"), float("-inf")):
            score = int(value)
    elif isinstance(value, str):
        m = _LEADING_INT.match(value)
        if m:
            score = int(m.group(1))
    if score is None:
        score = default
    return max(0, min(100, score))


def truncate(text: str, max_chars: int = 2000) -> str:
    return text[:max_chars] if len(text) > max_chars else text
