"""Configuration models and helpers for the presence broadcaster."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Annotated, Any, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictFloat, StrictStr, ValidationError

from .models import ClassificationRule, PresenceButton

logger = logging.getLogger(__name__)

MAX_BUTTONS = 2
DEFAULT_UPDATE_INTERVAL_MS = 10_000
DEFAULT_IDLE_TIMEOUT_MS = 300_000

DEFAULT_APPLICATION_NAMES = ("games", "web", "messaging", "music", "code", "creative")

DEFAULT_PRIORITY_RULES = (
    ClassificationRule("spotify", "music", "spotify", "Listening to Music"),
    ClassificationRule("discord", "chat", "discord", "Chatting on Discord"),
    ClassificationRule("valorant", "gaming", "valorant", "Playing VALORANT"),
    ClassificationRule("steam", "gaming", "steam", "Using Steam"),
    ClassificationRule("chrome", "browsing", "chrome", "Browsing the Web"),
    ClassificationRule("code", "coding", "vscode", "Writing Code"),
)

PositiveMilliseconds = Annotated[StrictFloat, Field(gt=0)]
Milliseconds = Annotated[StrictFloat, Field(ge=0)]


class ConfigError(Exception):
    """Raised when the configuration file is missing or malformed."""


class ApplicationPayload(BaseModel):
    client_id: StrictStr = Field("", alias="clientId")
    process_names: list[StrictStr] = Field(default_factory=list, alias="processNames")

    model_config = ConfigDict(extra="forbid")


class RulePayload(BaseModel):
    process_name: StrictStr = Field(alias="processName")
    type: StrictStr = "app"
    icon: StrictStr = "default"
    details: StrictStr = ""
    identity: Optional[StrictStr] = None

    model_config = ConfigDict(extra="forbid")

    def to_rule(self) -> ClassificationRule:
        return ClassificationRule(
            process_name=self.process_name,
            category=self.type,
            icon=self.icon,
            details=self.details,
            identity=self.identity,
        )


class ButtonPayload(BaseModel):
    label: StrictStr
    url: StrictStr

    model_config = ConfigDict(extra="forbid")


class ConfigPayload(BaseModel):
    """Shape of ``config.json``; every key is optional."""

    default_client_id: StrictStr = Field("", alias="defaultClientId")
    update_interval: PositiveMilliseconds = Field(DEFAULT_UPDATE_INTERVAL_MS, alias="updateInterval")
    enable_detailed_stats: StrictBool = Field(True, alias="enableDetailedStats")
    enable_system_info: StrictBool = Field(True, alias="enableSystemInfo")
    idle_timeout: Milliseconds = Field(DEFAULT_IDLE_TIMEOUT_MS, alias="idleTimeout")
    applications: Optional[dict[str, ApplicationPayload]] = None
    priority_apps: Optional[list[RulePayload]] = Field(None, alias="priorityApps")
    custom_apps: list[RulePayload] = Field(default_factory=list, alias="customApps")
    buttons: list[ButtonPayload] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")


@dataclass(slots=True)
class ApplicationIdentity:
    """A registered presence application and the processes routed to it."""

    name: str
    client_id: str = ""
    process_names: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {"clientId": self.client_id, "processNames": list(self.process_names)}


def _default_applications() -> dict[str, ApplicationIdentity]:
    return {name: ApplicationIdentity(name=name) for name in DEFAULT_APPLICATION_NAMES}


@dataclass(slots=True)
class PresenceSettings:
    """Runtime configuration, read once at startup."""

    default_client_id: str = ""
    update_interval: timedelta = timedelta(milliseconds=DEFAULT_UPDATE_INTERVAL_MS)
    enable_detailed_stats: bool = True
    enable_system_info: bool = True
    idle_timeout: timedelta = timedelta(milliseconds=DEFAULT_IDLE_TIMEOUT_MS)
    applications: dict[str, ApplicationIdentity] = field(default_factory=_default_applications)
    priority_rules: list[ClassificationRule] = field(
        default_factory=lambda: list(DEFAULT_PRIORITY_RULES)
    )
    custom_rules: list[ClassificationRule] = field(default_factory=list)
    buttons: list[PresenceButton] = field(default_factory=list)

    @property
    def poll_interval_seconds(self) -> float:
        return self.update_interval.total_seconds()

    @classmethod
    def from_dict(cls, data: Any) -> "PresenceSettings":
        try:
            payload = ConfigPayload.model_validate(data)
        except ValidationError as exc:
            raise ConfigError(f"Invalid configuration: {exc}") from exc
        return cls.from_payload(payload)

    @classmethod
    def from_payload(cls, payload: ConfigPayload) -> "PresenceSettings":
        settings = cls(
            default_client_id=payload.default_client_id,
            update_interval=timedelta(milliseconds=payload.update_interval),
            enable_detailed_stats=payload.enable_detailed_stats,
            enable_system_info=payload.enable_system_info,
            idle_timeout=timedelta(milliseconds=payload.idle_timeout),
            custom_rules=[item.to_rule() for item in payload.custom_apps],
            buttons=[PresenceButton(label=item.label, url=item.url) for item in payload.buttons[:MAX_BUTTONS]],
        )
        if payload.applications is not None:
            settings.applications = {
                name: ApplicationIdentity(name, entry.client_id, tuple(entry.process_names))
                for name, entry in payload.applications.items()
            }
        if payload.priority_apps is not None:
            settings.priority_rules = [item.to_rule() for item in payload.priority_apps]
        if len(payload.buttons) > MAX_BUTTONS:
            logger.warning("Only the first %d buttons are shown; ignoring the rest.", MAX_BUTTONS)
        return settings

    def to_dict(self) -> dict[str, Any]:
        return {
            "defaultClientId": self.default_client_id,
            "updateInterval": int(self.update_interval.total_seconds() * 1000),
            "enableDetailedStats": self.enable_detailed_stats,
            "enableSystemInfo": self.enable_system_info,
            "idleTimeout": int(self.idle_timeout.total_seconds() * 1000),
            "applications": {name: app.to_dict() for name, app in self.applications.items()},
            "priorityApps": [rule.to_dict() for rule in self.priority_rules],
            "customApps": [rule.to_dict() for rule in self.custom_rules],
            "buttons": [{"label": button.label, "url": button.url} for button in self.buttons],
        }


def save_settings(path: Path, settings: PresenceSettings) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(settings.to_dict(), indent=2), encoding="utf-8")


def load_settings(path: Path, *, create_missing: bool = True) -> PresenceSettings:
    """Load settings from ``path``.

    A missing file is either generated from the defaults or treated as fatal,
    depending on ``create_missing``. Unreadable or malformed files always raise
    :class:`ConfigError`.
    """
    path = Path(path)
    if not path.exists():
        if not create_missing:
            raise ConfigError(f"{path} not found. Create it first.")
        settings = PresenceSettings()
        save_settings(path, settings)
        logger.warning("No configuration found; wrote defaults to %s", path)
        return settings

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Could not read {path}: {exc}") from exc

    settings = PresenceSettings.from_dict(data)
    logger.info("Loaded configuration from %s", path)
    return settings
