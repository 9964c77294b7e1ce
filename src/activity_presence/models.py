"""Domain models for detected activity and presence updates."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

UNKNOWN = "Unknown"


@dataclass(frozen=True, slots=True)
class RawWindowSample:
    """The foreground window as reported by the OS for a single poll."""

    window_title: str
    process_name: str

    @classmethod
    def unknown(cls) -> "RawWindowSample":
        return cls(window_title=UNKNOWN, process_name=UNKNOWN)


@dataclass(frozen=True, slots=True)
class ClassificationRule:
    """A user-supplied rule mapping a process/title token to an activity."""

    process_name: str
    category: str
    icon: str
    details: str
    identity: Optional[str] = None

    def matches(self, sample: RawWindowSample) -> bool:
        token = self.process_name.lower()
        if not token:
            return False
        return token in sample.process_name.lower() or token in sample.window_title.lower()

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "processName": self.process_name,
            "type": self.category,
            "icon": self.icon,
            "details": self.details,
        }
        if self.identity:
            data["identity"] = self.identity
        return data


@dataclass(frozen=True, slots=True)
class ActivityResult:
    category: str
    icon_key: str
    details: str
    state: str
    matched: bool = True
    identity: Optional[str] = None


@dataclass(frozen=True, slots=True)
class SystemMetrics:
    cpu_percent: int
    ram_percent: int


@dataclass(frozen=True, slots=True)
class PresenceButton:
    label: str
    url: str


@dataclass(frozen=True, slots=True)
class PresencePayload:
    """A single presence update, rebuilt from scratch on every poll."""

    details: str
    state: str
    large_image_key: str
    large_image_text: str
    start_timestamp: int
    small_image_key: Optional[str] = None
    small_image_text: Optional[str] = None
    buttons: tuple[PresenceButton, ...] = field(default_factory=tuple)
