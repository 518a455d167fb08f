"""Supabase/PostgREST adapter - HTTP client for the entries table."""

import asyncio
import logging

import requests

from clarity.config import Config, load_config
from clarity.core.entries import Entry
from clarity.ports.entry_store import StoreError

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30


class PostgrestEntryStore:
    """
    PostgREST entries adapter.

    Implements RemoteEntryStore protocol. Every request carries an explicit
    user_id filter on top of whatever row-level security the server applies.
    Blocking HTTP calls run in a worker thread so callers can await them.
    """

    def __init__(self, config: Config | None = None, session: requests.Session | None = None):
        self.config = config or load_config()
        if not self.config.supabase_url:
            raise ValueError("SUPABASE_URL not configured. Add it to clarity.conf")
        self.base_url = f"{self.config.supabase_url.rstrip('/')}/rest/v1/{self.config.entries_table}"
        self._session = session or requests.Session()

    def _headers(self, prefer: str | None = None) -> dict[str, str]:
        token = self.config.supabase_access_token or self.config.supabase_key
        headers = {
            "apikey": self.config.supabase_key,
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    def _request(
        self,
        method: str,
        params: dict | None = None,
        json: list | dict | None = None,
        prefer: str | None = None,
    ) -> requests.Response:
        """Make an authenticated request. Raises StoreError on any failure."""
        try:
            resp = self._session.request(
                method,
                self.base_url,
                params=params,
                json=json,
                headers=self._headers(prefer),
                timeout=REQUEST_TIMEOUT,
            )
        except requests.RequestException as e:
            raise StoreError(f"Could not reach entry store: {e}") from e

        if resp.status_code >= 400:
            message = resp.text
            try:
                message = resp.json().get("message", message)
            except ValueError:
                pass
            raise StoreError(f"{resp.status_code} {message}")
        return resp

    def _list_entries(self, user_id: str) -> list[Entry]:
        resp = self._request(
            "GET",
            params={
                "select": "*",
                "user_id": f"eq.{user_id}",
                "order": "sort_order.asc.nullslast",
            },
        )
        try:
            return [Entry.from_row(row) for row in resp.json()]
        except (ValueError, KeyError, AttributeError, TypeError) as e:
            raise StoreError(f"Malformed entry row: {e}") from e

    def _insert(self, user_id: str, entries: list[Entry]) -> None:
        rows = [entry.to_row(user_id) for entry in entries]
        # One POST with an array is a single statement on the server
        self._request("POST", json=rows, prefer="return=minimal")

    def _update(self, entry_id: str, user_id: str, fields: dict) -> None:
        self._request(
            "PATCH",
            params={"id": f"eq.{entry_id}", "user_id": f"eq.{user_id}"},
            json=fields,
            prefer="return=minimal",
        )

    def _delete(self, entry_id: str, user_id: str) -> None:
        self._request(
            "DELETE",
            params={"id": f"eq.{entry_id}", "user_id": f"eq.{user_id}"},
        )

    async def list_entries(self, user_id: str) -> list[Entry]:
        """Fetch all entries owned by the user."""
        return await asyncio.to_thread(self._list_entries, user_id)

    async def insert(self, user_id: str, entries: list[Entry]) -> None:
        """Insert entries in one request."""
        if not entries:
            return
        await asyncio.to_thread(self._insert, user_id, entries)

    async def update(self, entry_id: str, user_id: str, fields: dict) -> None:
        """Update columns of one entry."""
        await asyncio.to_thread(self._update, entry_id, user_id, fields)

    async def delete(self, entry_id: str, user_id: str) -> None:
        """Delete one entry."""
        await asyncio.to_thread(self._delete, entry_id, user_id)
