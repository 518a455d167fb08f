"""One-shot local reminders for stored entries."""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, tzinfo

from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.date import DateTrigger

from .core.entries import Entry
from .core.reminders import ResolvedReminder, describe_reminder, resolve_reminder
from .ports.notifier import Notifier

logger = logging.getLogger(__name__)


@dataclass
class ScheduledReminder:
    """A reminder that was accepted. job_id is None when no timer was set."""

    entry: Entry
    resolved: ResolvedReminder
    timing: str
    job_id: str | None = None

    @property
    def is_scheduled(self) -> bool:
        return self.job_id is not None


class ReminderService:
    """
    Resolves reminder text and schedules same-day notifications.

    Timers live only in the given scheduler: they cannot be cancelled once
    set and are lost when the process exits. Reminders on another day are
    acknowledged but never fire.
    """

    def __init__(self, scheduler: BaseScheduler, notifier: Notifier, timezone: tzinfo | None = None):
        self.scheduler = scheduler
        self.notifier = notifier
        self.timezone = timezone

    def _now(self) -> datetime:
        return datetime.now(self.timezone) if self.timezone else datetime.now().astimezone()

    def schedule(
        self,
        entry: Entry,
        time_text: str,
        offset_minutes: int = 0,
        now: datetime | None = None,
    ) -> ScheduledReminder:
        """
        Set a reminder for an entry.

        Raises UnparsableTimeError or PastInstantError without scheduling anything.
        """
        now = now or self._now()
        resolved = resolve_reminder(time_text, now, offset_minutes)
        timing = describe_reminder(time_text, offset_minutes)
        reminder = ScheduledReminder(entry=entry, resolved=resolved, timing=timing)

        if not resolved.is_same_day:
            logger.info(
                f"Reminder for {entry.text!r} falls on {resolved.instant.date()}; "
                "acknowledged but not scheduled"
            )
            return reminder

        job = self.scheduler.add_job(
            self.notifier.notify,
            DateTrigger(run_date=resolved.instant, timezone=resolved.instant.tzinfo or self.timezone),
            args=["Reminder", f"{entry.text} - {timing}"],
            id=f"reminder-{entry.id}-{uuid.uuid4().hex[:8]}",
            misfire_grace_time=None,
        )
        reminder.job_id = job.id
        logger.info(f"Scheduled reminder for {entry.text!r} at {resolved.instant.strftime('%H:%M')}")
        return reminder
