"""Human-readable formatting helpers for presence text."""

from __future__ import annotations

FIELD_LIMIT = 128

_HIGH_SURROGATES = range(0xD8, 0xDC)


def format_duration(milliseconds: float) -> str:
    """Render a duration as ``"1h 3m"``, ``"5m 12s"`` or ``"42s"``."""
    seconds = max(int(milliseconds // 1000), 0)
    minutes, secs = divmod(seconds, 60)
    hours, minutes = divmod(minutes, 60)
    if hours > 0:
        return f"{hours}h {minutes}m"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def utf16_length(value: str) -> int:
    return len(value.encode("utf-16-le")) // 2


def truncate(value: str, limit: int = FIELD_LIMIT) -> str:
    """Cap ``value`` at ``limit`` UTF-16 code units, keeping surrogate pairs whole."""
    encoded = value.encode("utf-16-le")
    if len(encoded) <= limit * 2:
        return value
    cut = encoded[: limit * 2]
    # little-endian: the second byte of a unit carries the surrogate marker
    if cut and cut[-1] in _HIGH_SURROGATES:
        cut = cut[:-2]
    return cut.decode("utf-16-le")
