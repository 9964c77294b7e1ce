"""Session timing for the current activity."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SessionState:
    current_category: Optional[str] = None
    current_process_name: Optional[str] = None
    activity_started_at: int = 0
    accumulated_seconds: dict[str, float] = field(default_factory=dict)


class SessionTracker:
    """Tracks when the current activity started and time spent per category.

    Accumulated time grows by the poll interval once per poll rather than by
    wall-clock deltas, and only lives as long as the process does.
    """

    def __init__(self, poll_interval_seconds: float, started_at: int = 0) -> None:
        self.poll_interval_seconds = poll_interval_seconds
        self._state = SessionState(activity_started_at=started_at)

    @property
    def started_at(self) -> int:
        return self._state.activity_started_at

    def update(self, category: str, process_name: str, now_ms: int) -> int:
        """Record one poll and return how long the current activity has lasted."""
        state = self._state
        if process_name != state.current_process_name or category != state.current_category:
            logger.info(
                "Activity changed from %s (%s) to %s (%s)",
                state.current_process_name,
                state.current_category,
                process_name,
                category,
            )
            state.activity_started_at = now_ms
            state.current_process_name = process_name
            state.current_category = category

        state.accumulated_seconds[category] = (
            state.accumulated_seconds.get(category, 0) + self.poll_interval_seconds
        )
        return now_ms - state.activity_started_at

    def accumulated_for(self, category: str) -> float:
        return self._state.accumulated_seconds.get(category, 0)

    def totals(self) -> dict[str, float]:
        return dict(self._state.accumulated_seconds)
