from __future__ import annotations

import unittest

from activity_presence.connection import ConnectionManager, ConnectionState, backoff_delay_ms
from activity_presence.identity import Identity
from activity_presence.models import PresencePayload
from activity_presence.scheduler import CooperativeScheduler, TimerKind
from activity_presence.transport import TransportDisconnected

from fakes import FakeClock, FakeTransportFactory, advance

DEFAULT = Identity("default", "000")
GAMES = Identity("games", "111")
MUSIC = Identity("music", "222")

PAYLOAD = PresencePayload(
    details="Writing Code",
    state="Coding in Python | 1m 0s",
    large_image_key="vscode",
    large_image_text="Coding for 1m 0s",
    start_timestamp=0,
)


class ConnectionTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.clock = FakeClock()
        self.scheduler = CooperativeScheduler(clock=self.clock)
        self.factory = FakeTransportFactory()
        self.ready_calls = 0
        self.manager = ConnectionManager(self.factory, self.scheduler, DEFAULT, on_ready=self._on_ready)

    def _on_ready(self) -> None:
        self.ready_calls += 1

    def advance(self, seconds: float) -> None:
        advance(self.scheduler, self.clock, seconds)


class BackoffTests(unittest.TestCase):
    def test_backoff_sequence(self) -> None:
        self.assertEqual([backoff_delay_ms(n) for n in range(1, 5)], [15_000, 22_500, 33_750, 50_625])

    def test_backoff_is_capped(self) -> None:
        self.assertEqual(backoff_delay_ms(6), 113_906.25)
        self.assertEqual(backoff_delay_ms(7), 120_000)
        self.assertEqual(backoff_delay_ms(50), 120_000)


class LifecycleTests(ConnectionTestCase):
    def test_start_connects_with_default_identity(self) -> None:
        self.manager.start()
        self.assertIs(self.manager.state, ConnectionState.CONNECTED)
        self.assertEqual(self.factory.latest.client_id, "000")
        self.assertEqual(self.ready_calls, 1)

    def test_failed_connects_back_off(self) -> None:
        self.factory.fail_connect = True
        self.manager.start()

        delays = []
        for _ in range(4):
            self.assertIs(self.manager.state, ConnectionState.RECONNECTING)
            deadline = self.scheduler.next_deadline()
            assert deadline is not None
            delays.append(deadline - self.clock.now)
            self.advance(deadline - self.clock.now)

        for actual, expected in zip(delays, [15.0, 22.5, 33.75, 50.625]):
            self.assertAlmostEqual(actual, expected)
        self.assertEqual(self.ready_calls, 0)

    def test_success_resets_attempts(self) -> None:
        self.factory.fail_connect = True
        self.manager.start()
        self.advance(15)
        self.assertEqual(self.manager.reconnect_attempts, 2)

        self.factory.fail_connect = False
        self.advance(22.5)
        self.assertIs(self.manager.state, ConnectionState.CONNECTED)
        self.assertEqual(self.manager.reconnect_attempts, 0)
        self.assertEqual(self.ready_calls, 1)

    def test_error_while_reconnecting_is_ignored(self) -> None:
        self.manager.start()
        self.manager.handle_error(RuntimeError("pipe broke"))
        self.manager.handle_disconnected()
        self.assertEqual(self.manager.reconnect_attempts, 1)
        self.assertAlmostEqual(self.scheduler.next_deadline() or 0.0, 15.0)

    def test_disconnect_event_reconnects(self) -> None:
        self.manager.start()
        self.manager.handle_disconnected()
        self.assertIs(self.manager.state, ConnectionState.RECONNECTING)
        self.advance(15)
        self.assertIs(self.manager.state, ConnectionState.CONNECTED)
        self.assertEqual(len(self.factory.created), 2)
        self.assertTrue(self.factory.created[0].closed)

    def test_stop_cancels_every_timer(self) -> None:
        self.manager.start()
        self.manager.request_identity(GAMES)
        self.manager.handle_error(RuntimeError("boom"))
        self.assertTrue(self.scheduler.is_pending(TimerKind.SWITCH))
        self.assertTrue(self.scheduler.is_pending(TimerKind.RECONNECT))

        self.manager.stop()
        self.assertIsNone(self.scheduler.next_deadline())
        self.assertIs(self.manager.state, ConnectionState.STOPPED)
        self.advance(300)
        self.assertEqual(len(self.factory.created), 1)


class PublishTests(ConnectionTestCase):
    def test_publish_when_connected(self) -> None:
        self.manager.start()
        self.assertTrue(self.manager.publish(PAYLOAD))
        self.assertEqual(self.factory.latest.published, [PAYLOAD])

    def test_publish_while_disconnected_is_skipped(self) -> None:
        self.factory.fail_connect = True
        self.manager.start()
        self.assertFalse(self.manager.publish(PAYLOAD))

    def test_publish_error_keeps_state(self) -> None:
        self.manager.start()
        self.factory.publish_error = ValueError("bad payload")
        self.assertFalse(self.manager.publish(PAYLOAD))
        self.assertIs(self.manager.state, ConnectionState.CONNECTED)

    def test_closed_pipe_triggers_reconnect(self) -> None:
        self.manager.start()
        self.factory.publish_error = TransportDisconnected("pipe closed")
        self.assertFalse(self.manager.publish(PAYLOAD))
        self.assertIs(self.manager.state, ConnectionState.RECONNECTING)


class SwitchTests(ConnectionTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.manager.start()

    def test_switch_is_debounced(self) -> None:
        self.manager.request_identity(GAMES)
        self.assertTrue(self.manager.switching)
        self.advance(1)
        self.manager.request_identity(MUSIC)
        self.advance(2.5)
        self.assertEqual(self.manager.identity, DEFAULT)

        self.advance(1)
        self.assertEqual(self.manager.identity, MUSIC)
        self.assertEqual([t.client_id for t in self.factory.created], ["000", "222"])
        self.assertFalse(self.manager.switching)
        self.assertEqual(self.ready_calls, 2)

    def test_switch_tears_down_previous_connection(self) -> None:
        self.manager.request_identity(GAMES)
        self.advance(3)
        self.assertTrue(self.factory.created[0].closed)
        self.assertIs(self.manager.state, ConnectionState.CONNECTED)
        self.assertEqual(self.manager.last_switch_at, 3)

    def test_teardown_failure_does_not_block_switch(self) -> None:
        self.factory.close_error = OSError("already gone")
        with self.assertLogs("activity_presence.connection", level="ERROR"):
            self.manager.request_identity(GAMES)
            self.advance(3)
        self.assertEqual(self.manager.identity, GAMES)
        self.assertIs(self.manager.state, ConnectionState.CONNECTED)

    def test_rate_limit_drops_early_requests(self) -> None:
        self.manager.request_identity(GAMES)
        self.advance(3)
        self.assertEqual(self.manager.identity, GAMES)

        self.advance(10)
        self.manager.request_identity(MUSIC)
        self.assertFalse(self.manager.switching)
        self.advance(5)
        self.assertEqual(self.manager.identity, GAMES)

        self.advance(1)
        self.manager.request_identity(MUSIC)
        self.assertTrue(self.manager.switching)
        self.advance(3)
        self.assertEqual(self.manager.identity, MUSIC)

    def test_returning_to_current_identity_cancels_pending_switch(self) -> None:
        self.manager.request_identity(GAMES)
        self.advance(1)
        self.manager.request_identity(DEFAULT)
        self.assertFalse(self.manager.switching)
        self.advance(5)
        self.assertEqual(self.manager.identity, DEFAULT)
        self.assertEqual(len(self.factory.created), 1)

    def test_failed_switch_connect_retries_with_new_identity(self) -> None:
        self.factory.fail_connect = True
        self.manager.request_identity(GAMES)
        self.advance(3)
        self.assertIs(self.manager.state, ConnectionState.RECONNECTING)
        self.assertIsNone(self.manager.last_switch_at)

        self.factory.fail_connect = False
        self.advance(15)
        self.assertIs(self.manager.state, ConnectionState.CONNECTED)
        self.assertEqual(self.factory.latest.client_id, "111")


if __name__ == "__main__":
    unittest.main()
