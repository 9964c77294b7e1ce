from __future__ import annotations

import unittest

from activity_presence.session import SessionTracker

INTERVAL_SECONDS = 10


class SessionTrackerTests(unittest.TestCase):
    def test_start_resets_only_on_category_change(self) -> None:
        tracker = SessionTracker(INTERVAL_SECONDS)
        starts = []
        for tick, category in enumerate(["A", "A", "A", "B", "B"]):
            tracker.update(category, "proc", now_ms=tick * INTERVAL_SECONDS * 1000)
            starts.append(tracker.started_at)

        self.assertEqual(starts, [0, 0, 0, 30_000, 30_000])
        self.assertEqual(tracker.accumulated_for("A"), 3 * INTERVAL_SECONDS)
        self.assertEqual(tracker.accumulated_for("B"), 2 * INTERVAL_SECONDS)

    def test_process_change_alone_resets(self) -> None:
        tracker = SessionTracker(INTERVAL_SECONDS)
        tracker.update("browsing", "chrome", now_ms=1_000)
        tracker.update("browsing", "firefox", now_ms=11_000)
        self.assertEqual(tracker.started_at, 11_000)

    def test_returns_session_duration(self) -> None:
        tracker = SessionTracker(INTERVAL_SECONDS)
        self.assertEqual(tracker.update("coding", "Code", now_ms=5_000), 0)
        self.assertEqual(tracker.update("coding", "Code", now_ms=25_000), 20_000)

    def test_accumulation_ignores_wall_clock(self) -> None:
        tracker = SessionTracker(INTERVAL_SECONDS)
        tracker.update("music", "Spotify", now_ms=0)
        tracker.update("music", "Spotify", now_ms=500)
        self.assertEqual(tracker.accumulated_for("music"), 20)
        self.assertEqual(tracker.accumulated_for("gaming"), 0)
        self.assertEqual(tracker.totals(), {"music": 20})

    def test_fractional_interval_accumulates_exactly(self) -> None:
        tracker = SessionTracker(1.5)
        for tick in range(4):
            tracker.update("coding", "Code", now_ms=tick * 1500)
        self.assertEqual(tracker.accumulated_for("coding"), 6.0)


if __name__ == "__main__":
    unittest.main()
