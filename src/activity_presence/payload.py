"""Assemble presence updates from classified activity."""

from __future__ import annotations

import platform
from dataclasses import dataclass, field
from typing import Optional

from .formatting import format_duration, truncate
from .models import ActivityResult, PresenceButton, PresencePayload, SystemMetrics

STATE_PREFIX_LIMIT = 60
INFO_IMAGE_KEY = "info"
FALLBACK_IMAGE_KEY = "default"


@dataclass(slots=True)
class PresencePayloadBuilder:
    """Builds a fresh :class:`PresencePayload` for every poll."""

    enable_detailed_stats: bool = True
    enable_system_info: bool = True
    buttons: tuple[PresenceButton, ...] = field(default_factory=tuple)

    def build(
        self,
        result: ActivityResult,
        *,
        session_ms: int,
        accumulated_seconds: float,
        started_at: int,
        hostname: str,
        metrics: Optional[SystemMetrics] = None,
    ) -> PresencePayload:
        duration = format_duration(session_ms)

        state = result.state
        if self.enable_detailed_stats:
            state = f"{truncate(result.state, STATE_PREFIX_LIMIT)} | {duration}"
            if self.enable_system_info and metrics is not None:
                state += f" | CPU: {metrics.cpu_percent}%, RAM: {metrics.ram_percent}%"

        today = format_duration(accumulated_seconds * 1000)
        return PresencePayload(
            details=truncate(result.details),
            state=truncate(state),
            large_image_key=result.icon_key,
            large_image_text=truncate(f"{_capitalize(result.category)} for {duration}"),
            small_image_key=INFO_IMAGE_KEY,
            small_image_text=truncate(f"{hostname} | Today: {today}"),
            start_timestamp=started_at,
            buttons=self.buttons,
        )

    @staticmethod
    def fallback(started_at: int) -> PresencePayload:
        """Generic payload shown when the activity could not be determined."""
        system = platform.system() or "Unknown OS"
        return PresencePayload(
            details="Online",
            state=truncate(f"Using {system}"),
            large_image_key=FALLBACK_IMAGE_KEY,
            large_image_text=truncate(f"{system} {platform.release()}".strip()),
            start_timestamp=started_at,
        )


def _capitalize(value: str) -> str:
    return value[:1].upper() + value[1:]
