"""Tests for widget rendering helpers."""

from datetime import datetime, timedelta, timezone

from gh_rivet.ui.widgets import status_badge, time_ago, truncate, visible_window


class TestHelpers:
    """Tests for pure rendering helpers."""

    def test_truncate(self):
        assert truncate("short", 10) == "short"
        assert truncate("a" * 20, 10) == "aaaaaaa..."

    def test_time_ago(self):
        now = datetime(2024, 3, 2, 12, 0, tzinfo=timezone.utc)
        assert time_ago(None) == "-"
        assert time_ago(now - timedelta(seconds=5), now) == "5s ago"
        assert time_ago(now - timedelta(minutes=3), now) == "3m ago"
        assert time_ago(now - timedelta(hours=2), now) == "2h ago"
        assert time_ago(now - timedelta(days=4), now) == "4d ago"

    def test_status_badge(self):
        assert status_badge("in_progress", "")[0] == "●"
        assert status_badge("queued", "")[0] == "○"
        assert status_badge("completed", "success") == ("✓", "green")
        assert status_badge("completed", "failure")[1] == "bold red"

    def test_visible_window_follows_cursor(self):
        assert visible_window(5, 0, 10) == range(5)
        assert visible_window(100, 0, 10) == range(0, 10)
        assert visible_window(100, 50, 10) == range(45, 55)
        assert visible_window(100, 99, 10) == range(90, 100)
