"""Lifecycle of the outbound presence connection.

The manager is an explicit state machine::

    DISCONNECTED -> CONNECTING -> CONNECTED
                        ^             |  error / disconnect
                        |             v
                        +------ RECONNECTING (backoff timer)

Switching to another identity tears the transport down and connects a new
one. Switch requests are debounced and rate limited; reconnects back off
exponentially and never give up.
"""

from __future__ import annotations

import enum
import logging
from typing import Callable, Optional

from .identity import Identity
from .models import PresencePayload
from .scheduler import CooperativeScheduler, TimerKind
from .transport import PresenceTransport, TransportDisconnected, TransportFactory

logger = logging.getLogger(__name__)

BASE_BACKOFF_MS = 15_000
BACKOFF_FACTOR = 1.5
MAX_BACKOFF_MS = 120_000
SWITCH_DEBOUNCE_SECONDS = 3.0
SWITCH_MIN_INTERVAL_SECONDS = 15.0


class ConnectionState(enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    STOPPED = "stopped"


def backoff_delay_ms(attempt: int) -> float:
    """Delay before reconnect ``attempt`` (1-based), capped at two minutes."""
    return min(BASE_BACKOFF_MS * BACKOFF_FACTOR ** (max(attempt, 1) - 1), MAX_BACKOFF_MS)


class ConnectionManager:
    def __init__(
        self,
        transport_factory: TransportFactory,
        scheduler: CooperativeScheduler,
        default_identity: Identity,
        on_ready: Optional[Callable[[], None]] = None,
    ) -> None:
        self._transport_factory = transport_factory
        self._scheduler = scheduler
        self._on_ready_callback = on_ready
        self._transport: Optional[PresenceTransport] = None
        self._pending_identity: Optional[Identity] = None
        self.identity = default_identity
        self.state = ConnectionState.DISCONNECTED
        self.reconnect_attempts = 0
        self.last_switch_at: Optional[float] = None

    @property
    def connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED

    @property
    def switching(self) -> bool:
        return self._scheduler.is_pending(TimerKind.SWITCH)

    def start(self) -> None:
        if self.state is not ConnectionState.DISCONNECTED:
            return
        logger.info("Connecting to the presence service as %s (%s).", self.identity.name, self.identity.client_id)
        self._connect()

    def stop(self) -> None:
        self.state = ConnectionState.STOPPED
        self._scheduler.cancel(TimerKind.RECONNECT)
        self._scheduler.cancel(TimerKind.SWITCH)
        self._pending_identity = None
        self._teardown()
        logger.info("Presence connection stopped.")

    # -- connection events -----------------------------------------------

    def handle_error(self, error: Optional[BaseException] = None) -> None:
        if error is not None:
            logger.error("Presence connection error: %s", error)
        self._schedule_reconnect()

    def handle_disconnected(self) -> None:
        logger.warning("Presence service disconnected.")
        self._schedule_reconnect()

    def _handle_ready(self) -> None:
        self.state = ConnectionState.CONNECTED
        self.reconnect_attempts = 0
        logger.info("Presence connected with client ID %s.", self.identity.client_id)
        if self._on_ready_callback is not None:
            self._on_ready_callback()

    def _schedule_reconnect(self) -> None:
        if self.state in (ConnectionState.RECONNECTING, ConnectionState.STOPPED):
            return
        self.state = ConnectionState.RECONNECTING
        self.reconnect_attempts += 1
        delay_ms = backoff_delay_ms(self.reconnect_attempts)
        logger.info(
            "Attempting to reconnect in %.3g seconds (attempt %d).",
            delay_ms / 1000,
            self.reconnect_attempts,
        )
        self._scheduler.schedule(TimerKind.RECONNECT, delay_ms / 1000, self._reconnect)

    def _reconnect(self) -> None:
        if self.state is not ConnectionState.RECONNECTING:
            return
        self._connect()

    def _connect(self) -> bool:
        self.state = ConnectionState.CONNECTING
        self._teardown()
        transport = self._transport_factory(self.identity.client_id)
        self._transport = transport
        try:
            transport.connect()
        except Exception as exc:
            self.handle_error(exc)
            return False
        self._handle_ready()
        return True

    def _teardown(self) -> None:
        transport, self._transport = self._transport, None
        if transport is None:
            return
        try:
            transport.close()
        except Exception:
            logger.exception("Error closing the presence connection; continuing.")

    # -- identity switching ----------------------------------------------

    def _rate_limited(self) -> bool:
        if self.last_switch_at is None:
            return False
        return self._scheduler.now() - self.last_switch_at < SWITCH_MIN_INTERVAL_SECONDS

    def request_identity(self, identity: Identity) -> None:
        """Ask to publish under ``identity``, switching connections if needed."""
        if self.state is ConnectionState.STOPPED:
            return
        if identity == self.identity:
            if self._scheduler.cancel(TimerKind.SWITCH):
                logger.debug("Cancelled pending switch to %s.", self._pending_identity)
            self._pending_identity = None
            return
        if self._rate_limited():
            elapsed = self._scheduler.now() - (self.last_switch_at or 0.0)
            logger.info("Delaying app switch - last switch was %.1f seconds ago.", elapsed)
            return
        if identity == self._pending_identity and self.switching:
            return

        logger.info("Detected activity change to %s. Preparing to switch client...", identity.name)
        self._pending_identity = identity
        self._scheduler.schedule(TimerKind.SWITCH, SWITCH_DEBOUNCE_SECONDS, self._perform_switch)

    def _perform_switch(self) -> None:
        target, self._pending_identity = self._pending_identity, None
        if target is None or self.state is ConnectionState.STOPPED:
            return
        if self._rate_limited():
            logger.info("Dropping switch to %s; switched too recently.", target.name)
            return

        logger.info("Switching from %s to %s.", self.identity.client_id, target.client_id)
        self._scheduler.cancel(TimerKind.RECONNECT)
        self.identity = target
        if self._connect():
            self.last_switch_at = self._scheduler.now()

    # -- publishing ------------------------------------------------------

    def publish(self, payload: PresencePayload) -> bool:
        """Send ``payload``; returns whether the transport accepted it."""
        if self.state is not ConnectionState.CONNECTED or self._transport is None:
            logger.info("Client not connected, waiting for reconnect...")
            return False
        try:
            self._transport.publish(payload)
        except TransportDisconnected as exc:
            logger.warning("Presence pipe closed while publishing: %s", exc)
            self.handle_disconnected()
            return False
        except Exception:
            logger.exception("Error updating presence.")
            return False
        return True
