"""Remote entry store interface."""

from typing import Protocol

from clarity.core.entries import Entry


class StoreError(Exception):
    """A remote store call failed."""


class RemoteEntryStore(Protocol):
    """
    Interface for the authoritative, per-user entry store.

    Every call is scoped by user_id. Failures raise StoreError.
    """

    async def list_entries(self, user_id: str) -> list[Entry]:
        """Fetch all entries owned by the user."""
        ...

    async def insert(self, user_id: str, entries: list[Entry]) -> None:
        """Insert entries for the user in one atomic write."""
        ...

    async def update(self, entry_id: str, user_id: str, fields: dict) -> None:
        """Update columns of one entry owned by the user."""
        ...

    async def delete(self, entry_id: str, user_id: str) -> None:
        """Delete one entry owned by the user."""
        ...
