"""Utilities to normalize process and window titles."""

from __future__ import annotations

import re
from typing import Optional

from .models import UNKNOWN, RawWindowSample

_WHITESPACE_PATTERN = re.compile(r"\s{2,}")


def normalize_process_name(process_name: Optional[str]) -> str:
    """Strip the executable suffix so names read like ``Spotify`` or ``Code``."""
    if not process_name:
        return UNKNOWN
    normalized = process_name.strip()
    if normalized.lower().endswith(".exe"):
        normalized = normalized[:-4]
    return normalized or UNKNOWN


def normalize_window_title(window_title: Optional[str]) -> str:
    if not window_title:
        return UNKNOWN
    normalized = _WHITESPACE_PATTERN.sub(" ", window_title).strip()
    return normalized or UNKNOWN


def normalize_sample(process_name: Optional[str], window_title: Optional[str]) -> RawWindowSample:
    return RawWindowSample(
        window_title=normalize_window_title(window_title),
        process_name=normalize_process_name(process_name),
    )
