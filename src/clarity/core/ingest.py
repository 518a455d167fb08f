"""Ingestion of untrusted classifier output - no I/O dependencies.

Raw text goes through three steps:

1. extract: locate the JSON object (the classifier may wrap it in prose)
2. validate: every element needs string text, string type, numeric priority.
   Any failure rejects the whole batch.
3. repair: drop optional fields that are unparsable or inconsistent. Never fails.

Accepted elements are finalized with a fresh id and created_at.
"""

import json
import logging
import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from .entries import (
    DEFAULT_PRIORITY,
    MAX_PRIORITY,
    MIN_PRIORITY,
    Entry,
    EntryType,
    parse_timestamp,
)

logger = logging.getLogger(__name__)


class ValidationError(Exception):
    """Classifier output was rejected. No entries are admitted."""

    def __init__(self, reason: str, raw: str):
        super().__init__(reason)
        self.reason = reason
        self.raw = raw


class ParseError(ValidationError):
    """No JSON object could be parsed from the classifier output."""


@dataclass
class FieldRepairWarning:
    """An optional field was dropped or narrowed during ingestion."""

    index: int
    field: str
    reason: str

    def __str__(self) -> str:
        return f"entry {self.index}: {self.field} {self.reason}"


@dataclass
class ProtoEntry:
    """An Entry-shaped record before id and created_at are assigned."""

    text: str
    type: EntryType
    priority: int
    note: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None

    def finalize(self, created_at: datetime) -> Entry:
        return Entry(
            id=str(uuid.uuid4()),
            text=self.text,
            type=self.type,
            priority=self.priority,
            created_at=created_at,
            note=self.note,
            start_time=self.start_time,
            end_time=self.end_time,
        )


@dataclass
class Ok:
    entries: list[Entry]
    warnings: list[FieldRepairWarning] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return True

    def unwrap(self) -> list[Entry]:
        return self.entries


@dataclass
class Err:
    error: ValidationError

    @property
    def ok(self) -> bool:
        return False

    @property
    def reason(self) -> str:
        return self.error.reason

    def unwrap(self) -> list[Entry]:
        raise self.error


IngestResult = Ok | Err


def extract_json(raw: str) -> dict:
    """
    Parse the JSON object embedded in raw text.

    Uses the span from the first "{" to the last "}" when both exist,
    otherwise the whole text. Raises ParseError if no object results.
    """
    start = raw.find("{")
    end = raw.rfind("}")
    candidate = raw[start : end + 1] if start != -1 and end > start else raw
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as e:
        raise ParseError(f"Classifier output is not valid JSON: {e.msg}", raw)
    if not isinstance(data, dict):
        raise ParseError("Classifier output is not a JSON object", raw)
    return data


def _is_number(value) -> bool:
    # json.loads accepts NaN and Infinity literals
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not isinstance(value, float) or math.isfinite(value)


def validate_elements(data: dict, raw: str) -> list[dict]:
    """Check required fields on every element. Raises ValidationError."""
    elements = data.get("entries")
    if not isinstance(elements, list):
        raise ValidationError('Classifier output has no "entries" array', raw)

    for index, element in enumerate(elements):
        if not isinstance(element, dict):
            raise ValidationError(f"Entry {index} is not an object", raw)
        text = element.get("text")
        if not isinstance(text, str) or not text.strip():
            raise ValidationError(f"Entry {index} is missing text", raw)
        if not isinstance(element.get("type"), str):
            raise ValidationError(f"Entry {index} is missing type", raw)
        if not _is_number(element.get("priority")):
            raise ValidationError(f"Entry {index} is missing a numeric priority", raw)
    return elements


def repair_element(index: int, element: dict) -> tuple[ProtoEntry, list[FieldRepairWarning]]:
    """
    Narrow a validated element into a ProtoEntry.

    Total: never raises. Every dropped or adjusted field yields a warning.
    """
    warnings = []

    entry_type = EntryType.parse(element["type"])
    if entry_type is None:
        warnings.append(FieldRepairWarning(index, "type", f"{element['type']!r} unknown, using note"))
        entry_type = EntryType.NOTE

    priority = int(round(element["priority"]))
    if not MIN_PRIORITY <= priority <= MAX_PRIORITY:
        warnings.append(FieldRepairWarning(index, "priority", f"{element['priority']!r} out of range, using {DEFAULT_PRIORITY}"))
        priority = DEFAULT_PRIORITY

    note = element.get("note")
    if note is not None and not isinstance(note, str):
        warnings.append(FieldRepairWarning(index, "note", "not a string, dropped"))
        note = None

    start_time = None
    if element.get("startTime") is not None:
        start_time = parse_timestamp(element["startTime"])
        if start_time is None:
            warnings.append(FieldRepairWarning(index, "startTime", "unparsable, dropped"))

    end_time = None
    if element.get("endTime") is not None:
        end_time = parse_timestamp(element["endTime"])
        if end_time is None:
            warnings.append(FieldRepairWarning(index, "endTime", "unparsable, dropped"))

    if end_time is not None and start_time is None:
        warnings.append(FieldRepairWarning(index, "endTime", "present without startTime, dropped"))
        end_time = None
    elif start_time is not None and end_time is not None and not _is_after(end_time, start_time):
        warnings.append(FieldRepairWarning(index, "endTime", "not after startTime, dropped"))
        end_time = None

    proto = ProtoEntry(
        text=element["text"].strip(),
        type=entry_type,
        priority=priority,
        note=note,
        start_time=start_time,
        end_time=end_time,
    )
    return proto, warnings


def _is_after(later: datetime, earlier: datetime) -> bool:
    # Mixed naive/aware pairs cannot be ordered; treat as inconsistent
    try:
        return later > earlier
    except TypeError:
        return False


def ingest(raw: str, now: datetime | None = None) -> IngestResult:
    """
    Turn raw classifier output into finalized entries.

    Returns Ok(entries, warnings) or Err(ValidationError). Ids and created_at
    are always generated here, never taken from the input.
    """
    now = now or datetime.now(timezone.utc)
    try:
        data = extract_json(raw)
        elements = validate_elements(data, raw)
    except ValidationError as e:
        logger.error(f"Rejected classifier output: {e.reason}")
        logger.error(f"Raw classifier output: {raw}")
        return Err(e)

    entries = []
    warnings = []
    for index, element in enumerate(elements):
        proto, repaired = repair_element(index, element)
        for warning in repaired:
            logger.warning(f"Field repair: {warning}")
        warnings.extend(repaired)
        entries.append(proto.finalize(now))

    return Ok(entries, warnings)


def build_classification_prompt(text: str) -> str:
    """Prompt asking the classifier to categorise a free-form text dump."""
    if not text.strip():
        raise ValueError("Please enter some text before submitting.")

    return f"""Analyze the following text dump from a user. Categorize each distinct thought or item into one of the following types: 'task', 'event', 'idea', 'feeling', or 'note'.
For each item categorized as 'task' or 'event', also determine a likely priority based on typical daily schedules or logical sequence. Assign a numerical priority: 1 for morning, 2 for midday, 3 for afternoon, 4 for evening, 5 for anytime/flexible. For other types ('idea', 'feeling', 'note'), assign priority 5.
If an item mentions a specific date or time, you may add "startTime" and "endTime" keys as ISO-8601 timestamps.
Structure the output as a JSON object with a single key "entries", which is an array of objects. Each object in the array must have a "text" key with the original text snippet, a "type" key with its determined category, and a "priority" key with the assigned numerical priority (1-5). Ensure the output is valid JSON.

Text dump:
---
{text}
---

JSON Output:"""


SAMPLE_DUMP = """Book dentist appointment for Tuesday afternoon.
Team meeting at 2pm tomorrow.
Feeling a bit overwhelmed today.
Idea: New structure for project notes.
Remember to buy milk.
Pay electricity bill.
Vacation next thursday for 3 days."""
