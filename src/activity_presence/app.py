"""The polling application tying classification, timing and publishing together."""

from __future__ import annotations

import logging
import socket
import time
from typing import Callable, Optional

from .classifier import classify
from .config import PresenceSettings
from .connection import ConnectionManager
from .identity import DEFAULT_IDENTITY, Identity, select_identity
from .models import ActivityResult, PresencePayload, SystemMetrics
from .payload import PresencePayloadBuilder
from .probe import IdleDetector, WindowProbe, create_window_probe
from .scheduler import CooperativeScheduler, TimerKind
from .session import SessionTracker
from .transport import TransportFactory

logger = logging.getLogger(__name__)

IDLE_RESULT = ActivityResult(
    category="idle",
    icon_key="idle",
    details="Away",
    state="Idle",
)

MetricsSource = Callable[[], Optional[SystemMetrics]]


def _now_ms() -> int:
    return int(time.time() * 1000)


def _no_metrics() -> Optional[SystemMetrics]:
    return None


class PresenceApp:
    """Owns every piece of runtime state for one broadcasting session."""

    def __init__(
        self,
        settings: PresenceSettings,
        transport_factory: TransportFactory,
        *,
        scheduler: Optional[CooperativeScheduler] = None,
        probe: Optional[WindowProbe] = None,
        idle_detector: Optional[IdleDetector] = None,
        metrics_source: MetricsSource = _no_metrics,
        wall_clock: Callable[[], int] = _now_ms,
        hostname: Optional[str] = None,
    ) -> None:
        self.settings = settings
        self.scheduler = scheduler or CooperativeScheduler()
        self.probe = probe or create_window_probe()
        self.idle_detector = idle_detector
        self.metrics_source = metrics_source
        self.hostname = hostname or socket.gethostname()
        self._wall_clock = wall_clock
        self._stopped = False
        self.tracker = SessionTracker(settings.poll_interval_seconds, started_at=wall_clock())
        self.builder = PresencePayloadBuilder(
            enable_detailed_stats=settings.enable_detailed_stats,
            enable_system_info=settings.enable_system_info,
            buttons=tuple(settings.buttons),
        )
        self.connection = ConnectionManager(
            transport_factory,
            self.scheduler,
            Identity(DEFAULT_IDENTITY, settings.default_client_id),
            on_ready=self._start_polling,
        )
        self.last_payload: Optional[PresencePayload] = None

    def start(self) -> None:
        logger.info("Starting presence broadcaster...")
        logger.info("Default client ID: %s", self.settings.default_client_id)
        for name, app in self.settings.applications.items():
            logger.info("Application %s: %s", name, app.client_id or "(unset)")
        self.connection.start()

    def run(self) -> None:
        """Start and block until :meth:`stop` is called."""
        self.start()
        self.scheduler.run()

    def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        self.scheduler.cancel(TimerKind.POLL)
        self.connection.stop()
        self.scheduler.stop()
        logger.info("Presence broadcaster stopped.")

    def _start_polling(self) -> None:
        if self._stopped or self.scheduler.is_pending(TimerKind.POLL):
            return
        self._schedule_tick()
        logger.info("Activity tracking started.")

    def _schedule_tick(self) -> None:
        interval = self.settings.update_interval.total_seconds()
        self.scheduler.schedule(TimerKind.POLL, interval, self._tick)

    def _tick(self) -> None:
        try:
            self.poll_once()
        finally:
            if not self._stopped:
                self._schedule_tick()

    def poll_once(self) -> PresencePayload:
        """Detect the current activity and publish it."""
        identity: Optional[Identity]
        try:
            payload, identity = self._build_update()
        except Exception:
            logger.exception("Error detecting activity; publishing fallback presence.")
            payload, identity = self.builder.fallback(self.tracker.started_at), None

        if identity is not None:
            self.connection.request_identity(identity)
        if self.connection.publish(payload):
            logger.info("Activity updated: %s | %s", payload.details, payload.state)
        self.last_payload = payload
        return payload

    def _build_update(self) -> tuple[PresencePayload, Identity]:
        settings = self.settings
        sample = self.probe.get_active_window()
        logger.debug("Active window: %r - process %s", sample.window_title, sample.process_name)

        if self._is_idle():
            result = IDLE_RESULT
            identity = Identity(DEFAULT_IDENTITY, settings.default_client_id)
        else:
            result = classify(sample, settings.priority_rules, settings.custom_rules)
            identity = select_identity(sample, result, settings.applications, settings.default_client_id)

        session_ms = self.tracker.update(result.category, sample.process_name, self._wall_clock())
        payload = self.builder.build(
            result,
            session_ms=session_ms,
            accumulated_seconds=self.tracker.accumulated_for(result.category),
            started_at=self.tracker.started_at,
            hostname=self.hostname,
            metrics=self._sample_metrics(),
        )
        return payload, identity

    def _is_idle(self) -> bool:
        threshold_ms = int(self.settings.idle_timeout.total_seconds() * 1000)
        if self.idle_detector is None or threshold_ms <= 0:
            return False
        return self.idle_detector.is_idle(threshold_ms)

    def _sample_metrics(self) -> Optional[SystemMetrics]:
        if not (self.settings.enable_detailed_stats and self.settings.enable_system_info):
            return None
        try:
            return self.metrics_source()
        except Exception:
            logger.exception("Failed to sample system metrics; omitting them.")
            return None
