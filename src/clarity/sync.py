"""Synchronization engine - the live entry collection for one user session.

Non-reorder mutations write to the remote store and then rebuild the whole
collection from it, whether the write succeeded or not. Reorder is the one
local-first operation: the new order is applied immediately and only
reverted (by reloading) if any position write fails.

Every reload is tagged with a generation number. A reload that resolves
after a newer reload was issued, or after an optimistic reorder, is
discarded instead of overwriting newer state.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Awaitable, Callable

from .core.entries import (
    DEFAULT_PRIORITY,
    Entry,
    EntryType,
    assign_positions,
    find_entry,
    format_timestamp,
    parse_timestamp,
    sort_entries,
)
from .core.views import GroupedEntries, GroupingMode, Scope, grouped_view
from .ports.entry_store import RemoteEntryStore, StoreError

logger = logging.getLogger(__name__)


class RemoteOperationError(Exception):
    """A remote write or read failed. Local state was reconciled afterwards."""

    def __init__(self, action: str, detail: str):
        super().__init__(f"Failed to {action}: {detail}")
        self.action = action
        self.detail = detail


class InvalidFieldError(ValueError):
    """A field value would break an entry invariant. Nothing was written."""


class EntryNotFoundError(LookupError):
    """No entry with that id in the local collection."""


class MutationState(Enum):
    APPLYING = "applying"
    CONFIRMED = "confirmed"
    REVERTED = "reverted"


@dataclass
class Mutation:
    """Outcome of one user action against the collection."""

    action: str
    entry_id: str | None = None
    state: MutationState = MutationState.APPLYING
    error: RemoteOperationError | None = None

    @property
    def ok(self) -> bool:
        return self.state == MutationState.CONFIRMED


# Field names accepted by set_field, mapped to their update method
FIELD_ALIASES = {
    "category": "category",
    "type": "category",
    "note": "note",
    "title": "title",
    "text": "title",
    "start_time": "start_time",
    "starttime": "start_time",
    "start": "start_time",
    "end_time": "end_time",
    "endtime": "end_time",
    "end": "end_time",
    "completion": "completion",
    "completed": "completion",
    "is_completed": "completion",
}


def _coerce_timestamp(field_name: str, value: datetime | str | None) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    parsed = parse_timestamp(value)
    if parsed is None:
        raise InvalidFieldError(f"{field_name} must be an ISO-8601 timestamp, got {value!r}")
    return parsed


def _is_after(later: datetime, earlier: datetime) -> bool:
    try:
        return later > earlier
    except TypeError:
        raise InvalidFieldError("Cannot compare a timezone-aware time with a naive one")


class SyncEngine:
    """
    Owns the in-memory collection mirroring one user's remote entries.

    Consumers read `entries`, `is_loading` and `last_error`, and change
    state only through the mutation methods.
    """

    def __init__(self, store: RemoteEntryStore, user_id: str):
        if not user_id:
            raise ValueError("A user id is required to scope remote calls")
        self.store = store
        self.user_id = user_id
        self.last_error: RemoteOperationError | None = None
        self._entries: list[Entry] = []
        self._generation = 0
        self._busy = 0
        self._pending_reloads = 0

    @property
    def entries(self) -> tuple[Entry, ...]:
        return tuple(self._entries)

    @property
    def is_loading(self) -> bool:
        """True while a mutation or reload is waiting on the remote store."""
        return self._busy > 0

    @property
    def generation(self) -> int:
        return self._generation

    def find(self, entry_id: str) -> Entry | None:
        return find_entry(self._entries, entry_id)

    def clear_error(self) -> None:
        self.last_error = None

    # ============== Reconciliation ==============

    async def _reload(self) -> bool:
        """Replace local state with the store's. Returns False if discarded or failed."""
        self._generation += 1
        generation = self._generation
        logger.debug(f"Reloading entries (generation {generation})")

        self._pending_reloads += 1
        try:
            fetched = await self.store.list_entries(self.user_id)
        except StoreError as e:
            if generation == self._generation:
                self.last_error = RemoteOperationError("load entries", str(e))
                logger.error(str(self.last_error))
            return False
        finally:
            self._pending_reloads -= 1

        if generation != self._generation:
            logger.info(f"Discarding stale reload (generation {generation}, latest {self._generation})")
            return False

        self._entries = sort_entries(fetched)
        return True

    async def refresh(self) -> bool:
        """Full reload from the remote store."""
        self._busy += 1
        try:
            return await self._reload()
        finally:
            self._busy -= 1

    async def _mutate(
        self,
        action: str,
        entry_id: str | None,
        write: Callable[[], Awaitable[None]],
    ) -> Mutation:
        """Write, then always rebuild from the store."""
        mutation = Mutation(action, entry_id)
        self.last_error = None
        self._busy += 1
        try:
            try:
                await write()
            except StoreError as e:
                mutation.error = RemoteOperationError(action, str(e))
                mutation.state = MutationState.REVERTED
                self.last_error = mutation.error
                logger.error(str(mutation.error))
            else:
                mutation.state = MutationState.CONFIRMED
            await self._reload()
        finally:
            self._busy -= 1
        return mutation

    def _update(self, action: str, entry_id: str, fields: dict) -> Awaitable[Mutation]:
        return self._mutate(
            action,
            entry_id,
            lambda: self.store.update(entry_id, self.user_id, fields),
        )

    # ============== Field mutations ==============

    async def update_category(self, entry_id: str, category: EntryType | str) -> Mutation:
        entry_type = category if isinstance(category, EntryType) else EntryType.parse(category)
        if entry_type is None:
            raise InvalidFieldError(f"Unknown category {category!r}")
        return await self._update("update category", entry_id, {"type": entry_type.value})

    async def update_note(self, entry_id: str, note: str | None) -> Mutation:
        return await self._update("update note", entry_id, {"note": note})

    async def update_title(self, entry_id: str, title: str) -> Mutation:
        if not title or not title.strip():
            raise InvalidFieldError("Title must not be empty")
        return await self._update("update title", entry_id, {"text": title.strip()})

    async def update_start_time(self, entry_id: str, start_time: datetime | str | None) -> Mutation:
        """Set or clear the start time. Clearing it also clears the end time."""
        start_time = _coerce_timestamp("start_time", start_time)
        fields = {"start_time": format_timestamp(start_time)}
        if start_time is None:
            fields["end_time"] = None
        else:
            entry = self.find(entry_id)
            if entry and entry.end_time is not None and not _is_after(entry.end_time, start_time):
                logger.info(f"Clearing end time of {entry_id}: no longer after the new start")
                fields["end_time"] = None
        return await self._update("update start time", entry_id, fields)

    async def update_end_time(self, entry_id: str, end_time: datetime | str | None) -> Mutation:
        """Set or clear the end time. A new end time must follow the start time."""
        end_time = _coerce_timestamp("end_time", end_time)
        if end_time is not None:
            entry = self.find(entry_id)
            if entry is None:
                raise EntryNotFoundError(entry_id)
            if entry.start_time is None:
                raise InvalidFieldError("Set a start time before setting an end time")
            if not _is_after(end_time, entry.start_time):
                raise InvalidFieldError("End time must be after start time")
        return await self._update("update end time", entry_id, {"end_time": format_timestamp(end_time)})

    async def toggle_complete(self, entry_id: str) -> Mutation:
        """Flip completion based on the current local state."""
        entry = self.find(entry_id)
        if entry is None:
            raise EntryNotFoundError(entry_id)
        return await self._update("toggle complete", entry_id, {"is_completed": not entry.is_completed})

    async def set_field(self, entry_id: str, field_name: str, value) -> Mutation:
        """Dispatch a named field mutation."""
        match FIELD_ALIASES.get(field_name.lower().replace("-", "_")):
            case "category":
                return await self.update_category(entry_id, value)
            case "note":
                return await self.update_note(entry_id, value)
            case "title":
                return await self.update_title(entry_id, value)
            case "start_time":
                return await self.update_start_time(entry_id, value)
            case "end_time":
                return await self.update_end_time(entry_id, value)
            case "completion":
                entry = self.find(entry_id)
                if entry is None:
                    raise EntryNotFoundError(entry_id)
                if bool(value) == entry.is_completed:
                    return Mutation("toggle complete", entry_id, MutationState.CONFIRMED)
                return await self.toggle_complete(entry_id)
        raise InvalidFieldError(f"Unknown field {field_name!r}")

    # ============== Create / delete ==============

    async def add_direct(self, text: str, now: datetime | None = None) -> Mutation:
        """Create a single task with default priority and no schedule."""
        if not text or not text.strip():
            raise InvalidFieldError("Task text must not be empty")
        entry = Entry(
            id=str(uuid.uuid4()),
            text=text.strip(),
            type=EntryType.TASK,
            priority=DEFAULT_PRIORITY,
            created_at=now or datetime.now(timezone.utc),
        )
        return await self._mutate(
            "add task",
            entry.id,
            lambda: self.store.insert(self.user_id, [entry]),
        )

    async def add_entries(self, entries: list[Entry]) -> Mutation:
        """Persist ingested entries in one atomic insert."""
        return await self._mutate(
            "save entries",
            None,
            lambda: self.store.insert(self.user_id, list(entries)),
        )

    async def delete(self, entry_id: str) -> Mutation:
        """Delete an entry. Not reversible."""
        return await self._mutate(
            "delete entry",
            entry_id,
            lambda: self.store.delete(entry_id, self.user_id),
        )

    # ============== Reorder ==============

    async def reorder(self, ordered: list[Entry]) -> Mutation:
        """
        Apply a new manual order immediately, then persist positions.

        All position writes run concurrently. If any fails, the optimistic
        order is discarded by reloading. If all succeed, no reload happens
        unless this order superseded a reload that was still in flight; that
        reload is replaced by one issued after the writes.

        Raises InvalidFieldError unless ordered holds exactly the current entries.
        """
        ordered = list(ordered)
        ordered_ids = [e.id for e in ordered]
        if len(set(ordered_ids)) != len(ordered_ids) or set(ordered_ids) != {e.id for e in self._entries}:
            raise InvalidFieldError("Reorder must list every current entry exactly once")

        mutation = Mutation("reorder entries")
        self.last_error = None

        positioned = assign_positions(ordered)
        superseded = self._pending_reloads > 0
        # Supersede any reload still in flight so it cannot undo this order
        self._generation += 1
        self._entries = positioned

        results = await asyncio.gather(
            *(
                self.store.update(entry.id, self.user_id, {"sort_order": entry.sort_order})
                for entry in positioned
            ),
            return_exceptions=True,
        )
        failures = [r for r in results if isinstance(r, BaseException)]
        if not failures:
            mutation.state = MutationState.CONFIRMED
            if superseded:
                logger.debug("Reloading to pick up writes from a superseded reload")
                await self._reload()
            return mutation

        mutation.state = MutationState.REVERTED
        unexpected = next((f for f in failures if not isinstance(f, StoreError)), None)
        if unexpected is None:
            mutation.error = RemoteOperationError(mutation.action, str(failures[0]))
            self.last_error = mutation.error
            logger.error(f"{mutation.error} ({len(failures)} of {len(positioned)} writes failed)")
        await self._reload()
        if unexpected is not None:
            raise unexpected
        return mutation

    async def move(self, entry_id: str, position: int) -> Mutation:
        """Move one entry to a zero-based position and reorder the rest."""
        entry = self.find(entry_id)
        if entry is None:
            raise EntryNotFoundError(entry_id)
        ordered = [e for e in self._entries if e.id != entry_id]
        position = max(0, min(position, len(ordered)))
        ordered.insert(position, entry)
        return await self.reorder(ordered)

    # ============== Views ==============

    def grouped_view(
        self,
        scope: Scope = Scope.ALL,
        mode: GroupingMode = GroupingMode.PRIORITY,
        now: datetime | None = None,
    ) -> GroupedEntries:
        """Grouped planning view over the current collection."""
        return grouped_view(list(self._entries), scope, mode, now)
