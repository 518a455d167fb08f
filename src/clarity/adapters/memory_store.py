"""In-memory entry store adapter."""

import asyncio
import copy

from clarity.core.entries import Entry, sort_entries
from clarity.ports.entry_store import StoreError


class InMemoryEntryStore:
    """
    Process-local entry store.

    Implements RemoteEntryStore protocol. Rows are kept in the same shape as
    the remote table, so reads go through the same row mapping. Every call
    yields to the event loop once, like a network round trip would.
    """

    def __init__(self, rows: list[dict] | None = None):
        self._rows: dict[str, dict] = {}
        for row in rows or []:
            self._rows[str(row["id"])] = dict(row)

    def rows(self, user_id: str | None = None) -> list[dict]:
        """Raw rows, optionally scoped to one user."""
        return [
            copy.deepcopy(row)
            for row in self._rows.values()
            if user_id is None or row.get("user_id") == user_id
        ]

    def _owned(self, entry_id: str, user_id: str) -> dict | None:
        row = self._rows.get(entry_id)
        if row is None or row.get("user_id") != user_id:
            return None
        return row

    async def list_entries(self, user_id: str) -> list[Entry]:
        await asyncio.sleep(0)
        try:
            entries = [Entry.from_row(row) for row in self.rows(user_id)]
        except (ValueError, KeyError) as e:
            raise StoreError(f"Malformed entry row: {e}") from e
        return sort_entries(entries)

    async def insert(self, user_id: str, entries: list[Entry]) -> None:
        await asyncio.sleep(0)
        duplicates = [e.id for e in entries if e.id in self._rows]
        if duplicates:
            raise StoreError(f"duplicate key value violates unique constraint: {duplicates[0]}")
        for entry in entries:
            self._rows[entry.id] = entry.to_row(user_id)

    async def update(self, entry_id: str, user_id: str, fields: dict) -> None:
        await asyncio.sleep(0)
        row = self._owned(entry_id, user_id)
        # Like a filtered UPDATE, no matching row is not an error
        if row is not None:
            row.update(fields)

    async def delete(self, entry_id: str, user_id: str) -> None:
        await asyncio.sleep(0)
        if self._owned(entry_id, user_id) is not None:
            del self._rows[entry_id]
