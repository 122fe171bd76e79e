"""LLM output parsing utilities.

Shared helpers for pulling a JSON object out of a Gemini response and
repairing the numeric artifacts the model tends to emit before handing the
text to ``json.loads``.
"""

from __future__ import annotations

import json
import math
import re
from typing import Any, Callable, Dict

from app.core.exceptions import MalformedResponse, ResponseParseError

# 시간 값으로 취급하는 필드 (이외의 필드는 절대 변환하지 않음)
TIME_FIELDS = ("video_duration", "first_appearance_time", "start_time", "end_time")

_STRING_LITERAL_RE = re.compile(r'"(?:\\.|[^"\\])*"')
_PLUS_NUMBER_RE = re.compile(r"([:\[,]\s*)\+(?=\.?\d)")
_NAN_RE = re.compile(r"(?<![\w.])-?NaN(?![\w.])")
_MULTI_DOT_TIME_RE = re.compile(
    r'("(?:' + "|".join(TIME_FIELDS) + r')"\s*:\s*)("?)(\d+(?:\.\d+){2,})\2'
)


def extract_json_object(text: str) -> str:
    """Return the substring from the first ``{`` to the last ``}`` inclusive.

    Fenced code markers and surrounding prose fall outside the braces and are
    dropped with the slice.
    """
    if not text:
        raise MalformedResponse("JSON을 찾을 수 없습니다.")
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end < start:
        raise MalformedResponse("JSON을 찾을 수 없습니다.")
    return text[start : end + 1]


def _safe_int(value: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _safe_float(value: str) -> float:
    try:
        result = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(result) or math.isinf(result):
        return 0.0
    return result


def multi_dot_time_to_seconds(value: str) -> float:
    """Interpret ``"M.SS.ff"`` as minutes, whole seconds and a fractional suffix.

    ``"2.02.96"`` -> 122.96
    """
    parts = value.split(".")
    minutes = _safe_int(parts[0])
    seconds = _safe_int(parts[1]) if len(parts) > 1 else 0
    fraction = _safe_float("0." + "".join(parts[2:])) if len(parts) > 2 else 0.0
    return round(minutes * 60 + seconds + fraction, 6)


def _format_number(value: float) -> str:
    return repr(value)


def _sub_outside_strings(text: str, fn: Callable[[str], str]) -> str:
    out = []
    pos = 0
    for m in _STRING_LITERAL_RE.finditer(text):
        out.append(fn(text[pos : m.start()]))
        out.append(m.group(0))
        pos = m.end()
    out.append(fn(text[pos:]))
    return "".join(out)


def _strip_plus_and_nan(segment: str) -> str:
    segment = _PLUS_NUMBER_RE.sub(r"\1", segment)
    return _NAN_RE.sub("0", segment)


def normalize_json_text(json_text: str) -> str:
    """Repair numeric tokens that strict JSON rejects.

    - ``: +2`` -> ``: 2`` (outside string literals)
    - multi-dot time values on :data:`TIME_FIELDS` -> float seconds
    - bare ``NaN`` -> ``0``

    Time values with a single dot are left untouched.
    """
    text = _MULTI_DOT_TIME_RE.sub(
        lambda m: m.group(1) + _format_number(multi_dot_time_to_seconds(m.group(3))),
        json_text,
    )
    return _sub_outside_strings(text, _strip_plus_and_nan)


def parse_time_to_seconds(value: Any) -> float:
    """Convert a parsed time value to float seconds.

    Accepts numbers, ``"MM:SS.ms"``, ``"HH:MM:SS.ms"``, multi-dot strings
    and plain numeric strings. Anything else (including NaN) becomes 0.
    """
    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, (int, float)):
        return _safe_float(value)
    if not isinstance(value, str):
        return 0.0

    value = value.strip()
    if ":" in value:
        parts = value.split(":")
        if len(parts) == 2:
            return _safe_int(parts[0]) * 60 + _safe_float(parts[1])
        if len(parts) == 3:
            return _safe_int(parts[0]) * 3600 + _safe_int(parts[1]) * 60 + _safe_float(parts[2])
        return 0.0

    if value.count(".") >= 2:
        return multi_dot_time_to_seconds(value)

    return _safe_float(value)


def _constant_to_zero(_constant: str) -> int:
    return 0


def load_json_object(response_text: str) -> Dict[str, Any]:
    """Extract, normalize and parse a model response into a dict."""
    json_text = normalize_json_text(extract_json_object(response_text))
    try:
        parsed = json.loads(json_text, parse_constant=_constant_to_zero)
    except json.JSONDecodeError as e:
        raise ResponseParseError(f"API 응답을 파싱할 수 없습니다: {e}") from e
    if not isinstance(parsed, dict):
        raise ResponseParseError("API 응답이 JSON 객체가 아닙니다.")
    return parsed
