"""Functional core - pure business logic with no I/O."""

from .entries import Entry, EntryType, sort_entries, assign_positions, find_entry
from .ingest import (
    Ok,
    Err,
    IngestResult,
    ValidationError,
    ParseError,
    FieldRepairWarning,
    ingest,
    build_classification_prompt,
)
from .views import Scope, GroupingMode, EntryGroup, grouped_view, day_agenda
from .reminders import (
    ResolvedReminder,
    ReminderError,
    UnparsableTimeError,
    PastInstantError,
    resolve_reminder,
)

__all__ = [
    # Entries
    "Entry",
    "EntryType",
    "sort_entries",
    "assign_positions",
    "find_entry",
    # Ingestion
    "Ok",
    "Err",
    "IngestResult",
    "ValidationError",
    "ParseError",
    "FieldRepairWarning",
    "ingest",
    "build_classification_prompt",
    # Views
    "Scope",
    "GroupingMode",
    "EntryGroup",
    "grouped_view",
    "day_agenda",
    # Reminders
    "ResolvedReminder",
    "ReminderError",
    "UnparsableTimeError",
    "PastInstantError",
    "resolve_reminder",
]
