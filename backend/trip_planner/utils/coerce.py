"""
Defensive coercion for loosely-typed model output.

Nothing here raises: unusable input becomes the supplied default, and NaN or
infinity never leaks out as a number.
"""

import math
import re
from typing import Any

_NUMBER = re.compile(r"[-+]?\d+(?:\.\d+)?")
_TIME = re.compile(r"^\s*(\d{1,2})[:：.](\d{2})")


def to_float(value: Any, default: float = 0.0) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            # JSON integers are unbounded
            return default
    elif isinstance(value, str):
        # "¥1,200", "200元", "about 90 minutes"
        match = _NUMBER.search(value.replace(",", "").replace("，", ""))
        if not match:
            return default
        try:
            number = float(match.group(0))
        except (ValueError, OverflowError):
            return default
    else:
        return default
    if not math.isfinite(number):
        return default
    return number


def to_int(value: Any, default: int = 0, minimum: int | None = 0) -> int:
    number = to_float(value, float(default))
    result = int(round(number))
    if minimum is not None and result < minimum:
        return default if default >= minimum else minimum
    return result


def to_text(value: Any, default: str = "") -> str:
    if isinstance(value, str):
        text = value.strip()
        return text or default
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return default


def to_text_list(value: Any) -> list[str]:
    """Accept a list of strings or a single delimited string."""
    if isinstance(value, str):
        parts = re.split(r"[\n;；]", value)
    elif isinstance(value, (list, tuple)):
        parts = [p for p in value if isinstance(p, (str, int, float)) and not isinstance(p, bool)]
    else:
        return []
    return [str(p).strip() for p in parts if str(p).strip()]


def to_clock_time(value: Any, default: str) -> str:
    """Normalize "9:00", "09:00-11:00", "9.30" to HH:MM; fall back to `default`."""
    if not isinstance(value, str):
        return default
    match = _TIME.match(value)
    if not match:
        return default
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        return default
    return f"{hour:02d}:{minute:02d}"
