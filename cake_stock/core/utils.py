"""
Utility functions for the application.
"""
from datetime import datetime, timezone
from typing import Any, Iterable, Optional


def utc_now() -> datetime:
    """Naive UTC timestamp, matching how the row store keeps instants."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def coerce_bool(value: Any) -> bool:
    """True for boolean True or the case-insensitive string "true"."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return False


def coerce_float(value: Any, default: float = 0.0) -> float:
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    # NaN (e.g. empty pandas cells) falls back to the default too
    return default if result != result else result


def coerce_int(value: Any, default: int = 0) -> int:
    return int(coerce_float(value, float(default)))


def longest_prefix_match(serial_number: str, candidates: Iterable[str]) -> Optional[str]:
    """
    Return the longest candidate that is a string prefix of serial_number.

    Empty candidates never match.
    """
    best = None
    for candidate in candidates:
        if candidate and serial_number.startswith(candidate):
            if best is None or len(candidate) > len(best):
                best = candidate
    return best
