"""Presence transport backed by the Discord IPC pipe."""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Protocol

from pypresence import Presence
from pypresence.exceptions import InvalidPipe, PipeClosed

from .models import PresencePayload

logger = logging.getLogger(__name__)


class TransportDisconnected(Exception):
    """The IPC connection dropped while talking to the presence service."""


class PresenceTransport(Protocol):
    """A single connection bound to one client identity."""

    client_id: str

    def connect(self) -> None: ...

    def publish(self, payload: PresencePayload) -> None: ...

    def close(self) -> None: ...


TransportFactory = Callable[[str], PresenceTransport]


def payload_to_update(payload: PresencePayload) -> dict[str, Any]:
    """Translate a payload into ``Presence.update`` keyword arguments."""
    update: dict[str, Any] = {
        "details": payload.details,
        "state": payload.state,
        "large_image": payload.large_image_key,
        "large_text": payload.large_image_text,
        "start": payload.start_timestamp // 1000,
    }
    if payload.small_image_key:
        update["small_image"] = payload.small_image_key
    if payload.small_image_text:
        update["small_text"] = payload.small_image_text
    if payload.buttons:
        update["buttons"] = [{"label": button.label, "url": button.url} for button in payload.buttons]
    return update


class PypresenceTransport:
    def __init__(self, client_id: str) -> None:
        self.client_id = client_id
        self._rpc: Optional[Presence] = None

    def connect(self) -> None:
        rpc = Presence(self.client_id)
        rpc.connect()
        self._rpc = rpc
        logger.debug("Connected to the presence service as %s.", self.client_id)

    def publish(self, payload: PresencePayload) -> None:
        if self._rpc is None:
            raise TransportDisconnected("Not connected.")
        try:
            self._rpc.update(**payload_to_update(payload))
        except (InvalidPipe, PipeClosed, ConnectionError) as exc:
            raise TransportDisconnected(str(exc)) from exc

    def close(self) -> None:
        rpc, self._rpc = self._rpc, None
        if rpc is None:
            return
        try:
            rpc.clear()
        finally:
            rpc.close()
            logger.debug("Closed presence connection for %s.", self.client_id)
