from __future__ import annotations

import unittest
from unittest import mock

from pypresence.exceptions import InvalidPipe, PipeClosed

from activity_presence.models import PresenceButton, PresencePayload
from activity_presence.transport import PypresenceTransport, TransportDisconnected, payload_to_update

PAYLOAD = PresencePayload(
    details="Writing Code",
    state="Coding in Python | 5m 12s",
    large_image_key="vscode",
    large_image_text="Coding for 5m 12s",
    start_timestamp=1_700_000_000_999,
)


class PayloadToUpdateTests(unittest.TestCase):
    def test_required_fields_and_seconds_timestamp(self) -> None:
        self.assertEqual(
            payload_to_update(PAYLOAD),
            {
                "details": "Writing Code",
                "state": "Coding in Python | 5m 12s",
                "large_image": "vscode",
                "large_text": "Coding for 5m 12s",
                "start": 1_700_000_000,
            },
        )

    def test_optional_fields_and_buttons(self) -> None:
        payload = PresencePayload(
            details="d",
            state="s",
            large_image_key="default",
            large_image_text="t",
            start_timestamp=0,
            small_image_key="info",
            small_image_text="desk | Today: 1m 0s",
            buttons=(PresenceButton("Site", "https://example.com"),),
        )
        update = payload_to_update(payload)
        self.assertEqual(update["small_image"], "info")
        self.assertEqual(update["small_text"], "desk | Today: 1m 0s")
        self.assertEqual(update["buttons"], [{"label": "Site", "url": "https://example.com"}])


class PypresenceTransportTests(unittest.TestCase):
    def setUp(self) -> None:
        patcher = mock.patch("activity_presence.transport.Presence")
        self.presence_cls = patcher.start()
        self.addCleanup(patcher.stop)
        self.rpc = self.presence_cls.return_value

    def _connected(self) -> PypresenceTransport:
        transport = PypresenceTransport("123")
        transport.connect()
        return transport

    def test_connect_uses_client_id(self) -> None:
        self._connected()
        self.presence_cls.assert_called_once_with("123")
        self.rpc.connect.assert_called_once_with()

    def test_publish_sends_update(self) -> None:
        self._connected().publish(PAYLOAD)
        self.rpc.update.assert_called_once_with(**payload_to_update(PAYLOAD))

    def test_publish_before_connect_is_disconnected(self) -> None:
        with self.assertRaises(TransportDisconnected):
            PypresenceTransport("123").publish(PAYLOAD)

    def test_closed_pipe_becomes_disconnected(self) -> None:
        transport = self._connected()
        for error in (PipeClosed(), InvalidPipe(), ConnectionResetError("reset")):
            with self.subTest(error=type(error).__name__):
                self.rpc.update.side_effect = error
                with self.assertRaises(TransportDisconnected):
                    transport.publish(PAYLOAD)

    def test_other_errors_propagate(self) -> None:
        transport = self._connected()
        self.rpc.update.side_effect = ValueError("bad payload")
        with self.assertRaises(ValueError):
            transport.publish(PAYLOAD)

    def test_close_clears_then_closes(self) -> None:
        transport = self._connected()
        transport.close()
        self.rpc.clear.assert_called_once_with()
        self.rpc.close.assert_called_once_with()
        transport.close()
        self.rpc.close.assert_called_once_with()

    def test_close_still_closes_when_clear_fails(self) -> None:
        transport = self._connected()
        self.rpc.clear.side_effect = PipeClosed()
        with self.assertRaises(PipeClosed):
            transport.close()
        self.rpc.close.assert_called_once_with()
        with self.assertRaises(TransportDisconnected):
            transport.publish(PAYLOAD)


if __name__ == "__main__":
    unittest.main()
