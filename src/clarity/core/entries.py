"""Pure entry domain logic - no I/O dependencies."""

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum


class EntryType(Enum):
    """What kind of thought an entry captures."""

    TASK = "task"
    EVENT = "event"
    IDEA = "idea"
    FEELING = "feeling"
    NOTE = "note"

    @property
    def is_schedulable(self) -> bool:
        """Tasks and events carry start/end times; the rest do not."""
        return self in (EntryType.TASK, EntryType.EVENT)

    @classmethod
    def parse(cls, value: str) -> "EntryType | None":
        """Case-insensitive lookup. Returns None for unknown types."""
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


DEFAULT_PRIORITY = 5
MIN_PRIORITY = 1
MAX_PRIORITY = 5

# Sentinel rank for entries without a sort order, after any real position
_UNRANKED = float("inf")


def parse_timestamp(value) -> datetime | None:
    """
    Parse an ISO-8601 timestamp string.

    Returns None for anything that is not a string or does not parse.
    A trailing "Z" is accepted as UTC.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def format_timestamp(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat()


@dataclass(frozen=True)
class Entry:
    """A single planning item."""

    id: str
    text: str
    type: EntryType
    priority: int
    created_at: datetime
    note: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    is_completed: bool = False
    sort_order: int | None = None

    @property
    def is_scheduled(self) -> bool:
        return self.start_time is not None

    def with_sort_order(self, sort_order: int) -> "Entry":
        return replace(self, sort_order=sort_order)

    def to_row(self, user_id: str) -> dict:
        """Serialize to a remote store row (snake_case columns)."""
        return {
            "id": self.id,
            "user_id": user_id,
            "text": self.text,
            "type": self.type.value,
            "priority": self.priority,
            "note": self.note,
            "created_at": format_timestamp(self.created_at),
            "start_time": format_timestamp(self.start_time),
            "end_time": format_timestamp(self.end_time),
            "is_completed": self.is_completed,
            "sort_order": self.sort_order,
        }

    @classmethod
    def from_row(cls, row: dict) -> "Entry":
        """Create Entry from a remote store row. Nulls map to defaults."""
        entry_type = EntryType.parse(row.get("type") or "") or EntryType.NOTE
        created_at = parse_timestamp(row.get("created_at"))
        if created_at is None:
            raise ValueError(f"Row {row.get('id')!r} has no valid created_at")
        return cls(
            id=str(row["id"]),
            text=row.get("text") or "",
            type=entry_type,
            priority=row.get("priority") or DEFAULT_PRIORITY,
            created_at=created_at,
            note=row.get("note"),
            start_time=parse_timestamp(row.get("start_time")),
            end_time=parse_timestamp(row.get("end_time")),
            is_completed=bool(row.get("is_completed") or False),
            sort_order=row.get("sort_order"),
        )


def ordering_key(entry: Entry) -> tuple:
    """
    Collection order: sort_order ascending, unranked entries last.

    Ties (and unranked entries among themselves) fall back to created_at,
    then id, so the order is deterministic.
    """
    rank = entry.sort_order if entry.sort_order is not None else _UNRANKED
    return (rank, entry.created_at.timestamp(), entry.id)


def sort_entries(entries: list[Entry]) -> list[Entry]:
    """Sort entries into collection order."""
    return sorted(entries, key=ordering_key)


def assign_positions(entries: list[Entry]) -> list[Entry]:
    """Return entries with a dense zero-based sort_order matching their index."""
    return [entry.with_sort_order(index) for index, entry in enumerate(entries)]


def find_entry(entries: list[Entry], entry_id: str) -> Entry | None:
    """Look up an entry by id."""
    return next((e for e in entries if e.id == entry_id), None)
