"""Tests for pure entry logic."""

from datetime import datetime, timedelta, timezone

import pytest

from clarity.core.entries import (
    DEFAULT_PRIORITY,
    Entry,
    EntryType,
    assign_positions,
    find_entry,
    parse_timestamp,
    sort_entries,
)


@pytest.fixture
def created():
    return datetime(2025, 1, 15, 9, 0, tzinfo=timezone.utc)


def make_entry(id, created, sort_order=None, **kwargs):
    defaults = dict(text=f"entry {id}", type=EntryType.TASK, priority=DEFAULT_PRIORITY)
    defaults.update(kwargs)
    return Entry(id=id, created_at=created, sort_order=sort_order, **defaults)


class TestEntryType:
    def test_parse_is_case_insensitive(self):
        assert EntryType.parse(" Event ") == EntryType.EVENT

    def test_parse_unknown_returns_none(self):
        assert EntryType.parse("reminder") is None

    def test_only_tasks_and_events_are_schedulable(self):
        assert EntryType.TASK.is_schedulable
        assert EntryType.EVENT.is_schedulable
        assert not EntryType.IDEA.is_schedulable
        assert not EntryType.FEELING.is_schedulable
        assert not EntryType.NOTE.is_schedulable


class TestParseTimestamp:
    def test_z_suffix_is_utc(self):
        parsed = parse_timestamp("2025-01-15T14:30:00Z")
        assert parsed == datetime(2025, 1, 15, 14, 30, tzinfo=timezone.utc)

    def test_offset(self):
        parsed = parse_timestamp("2025-01-15T14:30:00-05:00")
        assert parsed.utcoffset() == timedelta(hours=-5)

    def test_naive(self):
        assert parse_timestamp("2025-01-15T14:30:00") == datetime(2025, 1, 15, 14, 30)

    @pytest.mark.parametrize("value", [None, "", "tomorrow at noon", 1736951400, "2025-13-45"])
    def test_invalid_returns_none(self, value):
        assert parse_timestamp(value) is None


class TestRowMapping:
    def test_round_trip(self, created):
        entry = make_entry(
            "a",
            created,
            sort_order=3,
            note="bring id",
            start_time=created + timedelta(hours=2),
            end_time=created + timedelta(hours=3),
            is_completed=True,
        )
        row = entry.to_row("user-1")

        assert row["user_id"] == "user-1"
        assert row["type"] == "task"
        assert row["start_time"] == "2025-01-15T11:00:00+00:00"
        assert Entry.from_row(row) == entry

    def test_nulls_map_to_defaults(self, created):
        row = {
            "id": "a",
            "text": "Buy milk",
            "type": "task",
            "priority": None,
            "created_at": "2025-01-15T09:00:00Z",
            "note": None,
            "start_time": None,
            "end_time": None,
            "is_completed": None,
            "sort_order": None,
        }
        entry = Entry.from_row(row)

        assert entry.priority == DEFAULT_PRIORITY
        assert entry.is_completed is False
        assert entry.sort_order is None
        assert not entry.is_scheduled
        assert entry.created_at == created

    def test_unknown_type_reads_as_note(self):
        entry = Entry.from_row({"id": 1, "text": "x", "type": "memo", "created_at": "2025-01-15T09:00:00Z"})
        assert entry.type == EntryType.NOTE
        assert entry.id == "1"

    def test_missing_created_at_raises(self):
        with pytest.raises(ValueError, match="created_at"):
            Entry.from_row({"id": "a", "text": "x", "type": "task"})


class TestOrdering:
    def test_sort_order_ascending_unranked_last(self, created):
        entries = [
            make_entry("unranked", created),
            make_entry("second", created, sort_order=1),
            make_entry("first", created, sort_order=0),
        ]
        assert [e.id for e in sort_entries(entries)] == ["first", "second", "unranked"]

    def test_unranked_by_created_at(self, created):
        entries = [
            make_entry("newer", created + timedelta(minutes=5)),
            make_entry("older", created),
        ]
        assert [e.id for e in sort_entries(entries)] == ["older", "newer"]

    def test_ties_fall_back_to_created_at_then_id(self, created):
        entries = [
            make_entry("b", created, sort_order=0),
            make_entry("later", created + timedelta(seconds=1), sort_order=0),
            make_entry("a", created, sort_order=0),
        ]
        assert [e.id for e in sort_entries(entries)] == ["a", "b", "later"]

    def test_assign_positions_is_dense_and_zero_based(self, created):
        entries = [make_entry(id, created, sort_order=9) for id in "xyz"]
        positioned = assign_positions(entries)

        assert [e.sort_order for e in positioned] == [0, 1, 2]
        assert [e.id for e in positioned] == ["x", "y", "z"]
        # Originals are untouched
        assert all(e.sort_order == 9 for e in entries)

    def test_find_entry(self, created):
        entries = [make_entry("a", created), make_entry("b", created)]
        assert find_entry(entries, "b").id == "b"
        assert find_entry(entries, "c") is None
