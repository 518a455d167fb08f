"""Pure planning view logic - no I/O dependencies.

Views are derived from the synchronized collection and never mutate it.
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum

from .entries import Entry, EntryType


class Scope(Enum):
    """Temporal filter window around "now"."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"
    ALL = "all"


class GroupingMode(Enum):
    PRIORITY = "priority"
    FOCUS = "focus"
    TYPE = "type"


PRIORITY_LABELS = {
    1: "Morning",
    2: "Midday",
    3: "Afternoon",
    4: "Evening",
    5: "Anytime / Flexible",
}

FOCUS_NOW = "Focus Now"
LATER = "Later"
NOTES = "Notes"

# Priorities at or below this count as "now" for unscheduled entries
FOCUS_PRIORITY_CUTOFF = 3

TYPE_ORDER = [EntryType.TASK, EntryType.EVENT, EntryType.IDEA, EntryType.FEELING, EntryType.NOTE]


@dataclass
class EntryGroup:
    """A labelled slice of a planning view."""

    label: str
    entries: list[Entry]


GroupedEntries = list[EntryGroup]


def _local(value: datetime, now: datetime) -> datetime:
    """Express value in now's timezone so calendar fields line up."""
    if value.tzinfo is not None and now.tzinfo is not None:
        return value.astimezone(now.tzinfo)
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    if now.tzinfo is not None:
        return value.replace(tzinfo=now.tzinfo)
    return value


def in_scope(start: datetime, scope: Scope, now: datetime) -> bool:
    """Check if a start time falls in the scope's calendar window containing now."""
    start = _local(start, now)
    match scope:
        case Scope.ALL:
            return True
        case Scope.DAY:
            return start.date() == now.date()
        case Scope.WEEK:
            # isocalendar weeks start on Monday
            return start.isocalendar()[:2] == now.isocalendar()[:2]
        case Scope.MONTH:
            return (start.year, start.month) == (now.year, now.month)
        case Scope.YEAR:
            return start.year == now.year
    return False


def filter_by_scope(entries: list[Entry], scope: Scope, now: datetime) -> list[Entry]:
    """
    Keep entries relevant to the scope.

    Unscheduled entries, and entries whose type carries no schedule, are
    never excluded by a time filter.
    """
    return [
        e
        for e in entries
        if not e.type.is_schedulable or e.start_time is None or in_scope(e.start_time, scope, now)
    ]


def group_by_priority(entries: list[Entry]) -> GroupedEntries:
    """
    Group entries under time-of-day labels in fixed Morning..Anytime order.

    Entries keep their collection order inside a group. Empty groups are omitted.
    """
    groups = []
    for priority, label in PRIORITY_LABELS.items():
        members = [e for e in entries if e.priority == priority]
        if members:
            groups.append(EntryGroup(label, members))
    return groups


def focus_bucket(entry: Entry, now: datetime) -> str:
    """Classify an entry as Focus Now, Later or Notes."""
    if not entry.type.is_schedulable:
        return NOTES
    if entry.start_time is None:
        return FOCUS_NOW if entry.priority <= FOCUS_PRIORITY_CUTOFF else LATER
    # Anything starting today counts, even later in the day
    return FOCUS_NOW if _local(entry.start_time, now).date() <= now.date() else LATER


def _schedule_key(now: datetime):
    def key(entry: Entry) -> tuple:
        if entry.start_time is None:
            return (1, 0.0, entry.priority)
        return (0, _local(entry.start_time, now).timestamp(), entry.priority)

    return key


def group_by_focus(entries: list[Entry], now: datetime) -> GroupedEntries:
    """
    Urgency grouping: Focus Now, Later, Notes.

    Focus Now and Later are sorted by start time (unscheduled last), then
    priority. Notes are sorted by creation time.
    """
    buckets: dict[str, list[Entry]] = {FOCUS_NOW: [], LATER: [], NOTES: []}
    for entry in entries:
        buckets[focus_bucket(entry, now)].append(entry)

    key = _schedule_key(now)
    buckets[FOCUS_NOW].sort(key=key)
    buckets[LATER].sort(key=key)
    buckets[NOTES].sort(key=lambda e: e.created_at.timestamp())

    return [EntryGroup(label, members) for label, members in buckets.items() if members]


def type_label(entry_type: EntryType) -> str:
    return f"{entry_type.value.capitalize()}s"


def group_by_type(entries: list[Entry]) -> GroupedEntries:
    """Overview grouping: Tasks, Events, Ideas, Feelings, Notes."""
    groups = []
    for entry_type in TYPE_ORDER:
        members = [e for e in entries if e.type == entry_type]
        if members:
            groups.append(EntryGroup(type_label(entry_type), members))
    return groups


def grouped_view(
    entries: list[Entry],
    scope: Scope = Scope.ALL,
    mode: GroupingMode = GroupingMode.PRIORITY,
    now: datetime | None = None,
) -> GroupedEntries:
    """
    Filter entries by scope and group them.

    Pure function - no I/O.
    """
    now = now or datetime.now().astimezone()
    visible = filter_by_scope(entries, scope, now)
    match mode:
        case GroupingMode.FOCUS:
            return group_by_focus(visible, now)
        case GroupingMode.TYPE:
            return group_by_type(visible)
        case _:
            return group_by_priority(visible)


def day_agenda(entries: list[Entry], target_date: date, now: datetime | None = None) -> list[Entry]:
    """
    Scheduled entries whose day span covers target_date, by start time.

    The span runs from the start day to the end day; an end before the
    start day is ignored.
    """
    now = now or datetime.now().astimezone()
    scheduled = []
    for entry in entries:
        if entry.start_time is None:
            continue
        start_day = _local(entry.start_time, now).date()
        end_day = start_day
        if entry.end_time is not None:
            candidate = _local(entry.end_time, now).date()
            if candidate >= start_day:
                end_day = candidate
        if start_day <= target_date <= end_day:
            scheduled.append(entry)
    return sorted(scheduled, key=lambda e: _local(e.start_time, now).timestamp())
