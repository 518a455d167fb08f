"""Tests for reminder resolution and scheduling."""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock
from zoneinfo import ZoneInfo

import pytest
from apscheduler.triggers.date import DateTrigger

from clarity.core.entries import Entry, EntryType
from clarity.core.reminders import (
    PastInstantError,
    ReminderError,
    UnparsableTimeError,
    describe_reminder,
    parse_time_text,
    resolve_reminder,
)
from clarity.reminders import ReminderService


@pytest.fixture
def now():
    # Wednesday morning
    return datetime(2025, 1, 15, 10, 0)


class TestParseTimeText:
    def test_bare_time_later_today(self, now):
        assert parse_time_text("3pm", now) == datetime(2025, 1, 15, 15, 0)

    def test_clock_time(self, now):
        assert parse_time_text("8:30 PM", now) == datetime(2025, 1, 15, 20, 30)

    def test_passed_time_rolls_to_tomorrow(self, now):
        assert parse_time_text("8am", now) == datetime(2025, 1, 16, 8, 0)

    def test_relative_minutes(self, now):
        assert parse_time_text("in 20 minutes", now) == now + timedelta(minutes=20)

    def test_relative_hours(self, now):
        assert parse_time_text("In 2 hours", now) == now + timedelta(hours=2)

    def test_now(self, now):
        assert parse_time_text("now", now) == now

    def test_tomorrow_with_time(self, now):
        assert parse_time_text("tomorrow 9am", now) == datetime(2025, 1, 16, 9, 0)

    def test_time_then_day_word(self, now):
        assert parse_time_text("3pm Tomorrow", now) == datetime(2025, 1, 16, 15, 0)

    def test_bare_day_words(self, now):
        assert parse_time_text("tonight", now) == datetime(2025, 1, 15, 20, 0)
        assert parse_time_text("tomorrow", now) == datetime(2025, 1, 16, 9, 0)

    def test_weekday(self, now):
        assert parse_time_text("friday 9am", now) == datetime(2025, 1, 17, 9, 0)

    def test_iso_datetime_taken_literally(self, now):
        assert parse_time_text("2025-01-15 09:00", now) == datetime(2025, 1, 15, 9, 0)

    def test_iso_with_offset(self, now):
        parsed = parse_time_text("2025-01-15T14:30:00Z", now.replace(tzinfo=timezone.utc))
        assert parsed == datetime(2025, 1, 15, 14, 30, tzinfo=timezone.utc)

    def test_aware_now_keeps_timezone(self):
        toronto = ZoneInfo("America/Toronto")
        now = datetime(2025, 1, 15, 10, 0, tzinfo=toronto)
        parsed = parse_time_text("3pm", now)
        assert parsed.tzinfo == toronto
        assert parsed.hour == 15

    @pytest.mark.parametrize("text", ["asdlkj", "", "   ", "today"])
    def test_unparsable(self, now, text):
        with pytest.raises(UnparsableTimeError):
            parse_time_text(text, now)


class TestResolveReminder:
    def test_past_instant_rejected(self, now):
        one_hour_ago = (now - timedelta(hours=1)).strftime("%Y-%m-%d %H:%M")
        with pytest.raises(PastInstantError):
            resolve_reminder(one_hour_ago, now)

    def test_garbage_rejected(self, now):
        with pytest.raises(UnparsableTimeError):
            resolve_reminder("asdlkj", now)

    def test_errors_share_base(self, now):
        with pytest.raises(ReminderError):
            resolve_reminder("asdlkj", now)

    def test_offset_subtracted(self, now):
        resolved = resolve_reminder("3pm", now, offset_minutes=15)
        assert resolved.instant == datetime(2025, 1, 15, 14, 45)
        assert resolved.delay == timedelta(hours=4, minutes=45)
        assert resolved.is_same_day

    def test_offset_into_past_rejected(self, now):
        with pytest.raises(PastInstantError):
            resolve_reminder("in 10 minutes", now, offset_minutes=15)

    def test_now_is_not_in_future(self, now):
        with pytest.raises(PastInstantError):
            resolve_reminder("now", now)

    def test_cross_day(self, now):
        resolved = resolve_reminder("tomorrow 9am", now, offset_minutes=30)
        assert resolved.instant == datetime(2025, 1, 16, 8, 30)
        assert not resolved.is_same_day

    def test_negative_offset(self, now):
        with pytest.raises(ValueError):
            resolve_reminder("3pm", now, offset_minutes=-5)


class TestDescribeReminder:
    def test_with_offset(self):
        assert describe_reminder("8:00 AM", 15) == "15 mins before 8:00 AM"

    def test_without_offset(self):
        assert describe_reminder("8:00 AM") == "at 8:00 AM"


@pytest.fixture
def toronto_now():
    return datetime(2025, 1, 15, 10, 0, tzinfo=ZoneInfo("America/Toronto"))


@pytest.fixture
def entry():
    return Entry(
        id="abc123",
        text="Dentist",
        type=EntryType.EVENT,
        priority=3,
        created_at=datetime(2025, 1, 14, 9, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
def scheduler():
    scheduler = MagicMock()
    scheduler.add_job.return_value.id = "job-1"
    return scheduler


class TestReminderService:
    def test_schedules_same_day(self, scheduler, entry, toronto_now):
        notifier = MagicMock()
        service = ReminderService(scheduler, notifier, toronto_now.tzinfo)

        reminder = service.schedule(entry, "3pm", 15, now=toronto_now)

        assert reminder.is_scheduled
        assert reminder.job_id == "job-1"
        assert reminder.timing == "15 mins before 3pm"
        scheduler.add_job.assert_called_once()
        args, kwargs = scheduler.add_job.call_args
        assert args[0] == notifier.notify
        trigger = args[1]
        assert isinstance(trigger, DateTrigger)
        assert trigger.run_date == datetime(2025, 1, 15, 14, 45, tzinfo=toronto_now.tzinfo)
        assert kwargs["args"] == ["Reminder", "Dentist - 15 mins before 3pm"]
        assert kwargs["id"].startswith("reminder-abc123-")

    def test_cross_day_acknowledged_not_scheduled(self, scheduler, entry, toronto_now):
        service = ReminderService(scheduler, MagicMock(), toronto_now.tzinfo)

        reminder = service.schedule(entry, "tomorrow 9am", now=toronto_now)

        assert not reminder.is_scheduled
        assert reminder.resolved.instant.day == 16
        scheduler.add_job.assert_not_called()

    def test_past_time_schedules_nothing(self, scheduler, entry, toronto_now):
        service = ReminderService(scheduler, MagicMock(), toronto_now.tzinfo)

        with pytest.raises(PastInstantError):
            service.schedule(entry, "2025-01-15 09:00", now=toronto_now)
        scheduler.add_job.assert_not_called()

    def test_unparsable_schedules_nothing(self, scheduler, entry, toronto_now):
        service = ReminderService(scheduler, MagicMock(), toronto_now.tzinfo)

        with pytest.raises(UnparsableTimeError):
            service.schedule(entry, "asdlkj", now=toronto_now)
        scheduler.add_job.assert_not_called()
