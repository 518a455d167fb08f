"""Pure reminder time resolution - no I/O dependencies."""

import re
from dataclasses import dataclass
from datetime import datetime, time, timedelta

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta


class ReminderError(Exception):
    """The requested reminder cannot be set."""


class UnparsableTimeError(ReminderError):
    """No date or time could be extracted from the text."""


class PastInstantError(ReminderError):
    """The reminder would fire at or before now."""


@dataclass
class ResolvedReminder:
    """A reminder instant relative to the moment it was requested."""

    instant: datetime
    requested_at: datetime
    offset_minutes: int = 0

    @property
    def delay(self) -> timedelta:
        return self.instant - self.requested_at

    @property
    def is_same_day(self) -> bool:
        """Only same-day reminders get a local timer."""
        return self.instant.date() == self.requested_at.date()


_IN_PATTERN = re.compile(
    r"^in\s+(\d+)\s*(m|min|mins|minute|minutes|h|hr|hrs|hour|hours)$"
)
_DAY_WORDS = {"today": 0, "tonight": 0, "tomorrow": 1}
_WEEKDAY_PATTERN = re.compile(
    r"\b(mon|tue|tues|wed|thu|thur|thurs|fri|sat|sun)(day|nesday|sday|urday)?\b", re.IGNORECASE
)

# Time assumed when only a day word is given
_DAY_WORD_DEFAULT_TIMES = {"tonight": time(20, 0), "tomorrow": time(9, 0)}


def _align(value: datetime, now: datetime) -> datetime:
    """Express value in now's timezone (or local naive time if now is naive)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=now.tzinfo) if now.tzinfo else value
    if now.tzinfo is None:
        return value.astimezone().replace(tzinfo=None)
    return value.astimezone(now.tzinfo)


def _strip_day_word(text: str) -> tuple[str, str | None]:
    for word in _DAY_WORDS:
        pattern = rf"\b{word}\b"
        if re.search(pattern, text, re.IGNORECASE):
            return " ".join(re.sub(pattern, " ", text, flags=re.IGNORECASE).split()), word
    return text, None


def parse_time_text(text: str, now: datetime) -> datetime:
    """
    Parse a free-form time like "8:00 AM", "3pm tomorrow", "friday 9am",
    "in 20 minutes" or "2025-01-15 14:30" relative to now.

    Ambiguous phrases resolve forward: a bare time that has already passed
    today means tomorrow, a bare weekday means the next one. Fully dated
    text is taken literally, even if it is in the past.
    """
    cleaned = " ".join(text.split())
    if not cleaned:
        raise UnparsableTimeError("No time given")

    if cleaned.lower() == "now":
        return now

    match = _IN_PATTERN.match(cleaned.lower())
    if match:
        amount = int(match.group(1))
        unit = match.group(2)
        minutes = amount * 60 if unit.startswith("h") else amount
        return now + timedelta(minutes=minutes)

    cleaned, day_word = _strip_day_word(cleaned)
    base = (now + timedelta(days=_DAY_WORDS.get(day_word, 0))).replace(
        hour=0, minute=0, second=0, microsecond=0
    )

    if not cleaned:
        if day_word not in _DAY_WORD_DEFAULT_TIMES:
            raise UnparsableTimeError(f"No time found in '{text}'")
        return datetime.combine(base.date(), _DAY_WORD_DEFAULT_TIMES[day_word], tzinfo=base.tzinfo)

    try:
        raw = date_parser.parse(cleaned, default=base, fuzzy=True)
        # Parsing against shifted defaults reveals which date parts were implied
        year_probe = date_parser.parse(cleaned, default=base + relativedelta(years=1), fuzzy=True)
        day_probe = date_parser.parse(
            cleaned, default=base.replace(day=28 if base.day < 15 else 1), fuzzy=True
        )
    except (ValueError, OverflowError):
        raise UnparsableTimeError(f"Could not understand '{text}'")

    parsed = _align(raw, now)
    if day_word is None and parsed <= now:
        if raw.day != day_probe.day:
            days = 7 if _WEEKDAY_PATTERN.search(cleaned) else 1
            parsed += timedelta(days=days)
        elif raw.year != year_probe.year:
            parsed += relativedelta(years=1)

    return parsed


def resolve_reminder(
    time_text: str,
    now: datetime | None = None,
    offset_minutes: int = 0,
) -> ResolvedReminder:
    """
    Turn reminder text plus a lead time into a future instant.

    Raises UnparsableTimeError or PastInstantError.
    """
    if offset_minutes < 0:
        raise ValueError(f"Offset must not be negative, got {offset_minutes}")

    now = now or datetime.now().astimezone()
    instant = parse_time_text(time_text, now) - timedelta(minutes=offset_minutes)

    if instant <= now:
        raise PastInstantError(
            f"Reminder time {instant.strftime('%Y-%m-%d %H:%M')} has already passed"
        )

    return ResolvedReminder(instant=instant, requested_at=now, offset_minutes=offset_minutes)


def describe_reminder(time_text: str, offset_minutes: int = 0) -> str:
    """Human-readable timing, e.g. "15 mins before 8:00 AM" or "at 8:00 AM"."""
    if offset_minutes > 0:
        return f"{offset_minutes} mins before {time_text}"
    return f"at {time_text}"
