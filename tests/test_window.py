"""Tests for the time window policy."""

from datetime import datetime, timedelta, timezone

from calendar_watch.calendar.window import TimeWindowPolicy
from calendar_watch.models.event import NormalizedEvent

JST = timezone(timedelta(hours=9))


def _event(start: str, end: str) -> NormalizedEvent:
    return NormalizedEvent(id="e", title="t", start=start, end=end)


class TestWindow:
    """Tests for the full-scan window."""

    def test_today_start_is_civil_midnight(self, policy, now):
        """Test today starts at local midnight, not UTC midnight."""
        assert policy.today_start(now) == datetime(2025, 11, 6, 0, 0, tzinfo=JST)

    def test_today_start_across_utc_date_line(self, policy):
        """Test 16:00 UTC already belongs to the next civil day."""
        late = datetime(2025, 11, 6, 16, 0, tzinfo=timezone.utc)
        assert policy.today_start(late) == datetime(2025, 11, 7, 0, 0, tzinfo=JST)

    def test_window_span(self, policy, now):
        """Test the window covers window_days from local midnight."""
        start, end = policy.window(now)
        assert start == datetime(2025, 11, 6, 0, 0, tzinfo=JST)
        assert end == datetime(2025, 11, 20, 0, 0, tzinfo=JST)

    def test_custom_offset(self, now):
        """Test a different offset shifts the civil day."""
        policy = TimeWindowPolicy(utc_offset_hours=-5, window_days=7)
        start, end = policy.window(now)
        assert start.utcoffset() == timedelta(hours=-5)
        assert start.day == 5
        assert end - start == timedelta(days=7)


class TestIsFuture:
    """Tests for is_future."""

    def test_running_event_is_future(self, policy, now):
        """Test an event that started but has not ended is kept."""
        event = _event("2025-11-06T11:00:00+09:00", "2025-11-06T13:00:00+09:00")
        assert policy.is_future(event, now)

    def test_ended_event(self, policy, now):
        """Test an event that already ended is not future."""
        event = _event("2025-11-06T09:00:00+09:00", "2025-11-06T10:00:00+09:00")
        assert not policy.is_future(event, now)

    def test_end_equal_to_now(self, policy, now):
        """Test an event ending exactly now is not future."""
        event = _event("2025-11-06T11:00:00+09:00", "2025-11-06T12:00:00+09:00")
        assert not policy.is_future(event, now)

    def test_all_day_event_today_is_future(self, policy, now):
        """Test an all-day event for today (end = tomorrow) is future."""
        event = _event("2025-11-06", "2025-11-07")
        assert policy.is_future(event, now)

    def test_all_day_event_yesterday(self, policy, now):
        """Test an all-day event that ended at midnight is not future."""
        event = _event("2025-11-05", "2025-11-06")
        assert not policy.is_future(event, now)

    def test_monotonic_in_now(self, policy, now):
        """Test once an event stops being future it never becomes future again."""
        event = _event("2025-11-06T11:00:00+09:00", "2025-11-06T12:30:00+09:00")
        results = [
            policy.is_future(event, now + timedelta(minutes=15 * step))
            for step in range(8)
        ]
        assert results == sorted(results, reverse=True)
        assert results[0] and not results[-1]


class TestRendering:
    """Tests for civil-time conversion."""

    def test_to_civil_converts_utc(self, policy):
        """Test UTC timestamps are shown in the civil offset."""
        civil = policy.to_civil("2025-11-07T01:00:00Z")
        assert (civil.hour, civil.minute) == (10, 0)
        assert civil.utcoffset() == timedelta(hours=9)

    def test_starts_before(self, policy):
        """Test the window-end comparison."""
        bound = datetime(2025, 11, 20, 0, 0, tzinfo=JST)
        assert policy.starts_before(
            _event("2025-11-19T23:00:00+09:00", "2025-11-20T01:00:00+09:00"), bound
        )
        assert not policy.starts_before(_event("2025-11-20", "2025-11-21"), bound)
