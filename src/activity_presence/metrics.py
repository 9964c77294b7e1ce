"""CPU and memory sampling."""

from __future__ import annotations

import logging
from typing import Optional

import psutil

from .models import SystemMetrics

logger = logging.getLogger(__name__)


def sample_metrics() -> Optional[SystemMetrics]:
    """Return current CPU/RAM usage, or ``None`` when sampling fails."""
    try:
        cpu = psutil.cpu_percent(interval=None)
        ram = psutil.virtual_memory().percent
    except (psutil.Error, OSError):
        logger.exception("Failed to sample system metrics; omitting them.")
        return None
    return SystemMetrics(cpu_percent=_clamp(cpu), ram_percent=_clamp(ram))


def _clamp(value: float) -> int:
    return min(max(int(round(value)), 0), 100)
