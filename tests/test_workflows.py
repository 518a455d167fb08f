"""Tests for the shared workflow layer."""

import asyncio
import json
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from clarity.adapters.memory_store import InMemoryEntryStore
from clarity.config import Config
from clarity.core.entries import EntryType
from clarity.sync import MutationState, SyncEngine
from clarity.workflows import build_classifier, build_engine, commit_raw, dump_thoughts

USER = "user-1"


@pytest.fixture
def now():
    return datetime(2025, 1, 15, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def store():
    return InMemoryEntryStore()


@pytest.fixture
def engine(store):
    return SyncEngine(store, USER)


@pytest.fixture
def classifier():
    classifier = MagicMock()
    classifier.generate.return_value = "Here is the JSON:\n" + json.dumps(
        {
            "entries": [
                {"text": "Pay electricity bill", "type": "task", "priority": 1},
                {"text": "Team meeting at 2pm tomorrow", "type": "event", "priority": 3,
                 "startTime": "2025-01-16T14:00:00Z"},
                {"text": "Feeling a bit overwhelmed today", "type": "feeling", "priority": 5},
            ]
        }
    )
    return classifier


class TestBuilders:
    def test_build_engine_requires_user_id(self):
        with pytest.raises(ValueError, match="USER_ID"):
            build_engine(Config(supabase_url="https://demo.supabase.co"))

    def test_build_engine(self):
        engine = build_engine(Config(supabase_url="https://demo.supabase.co", user_id=USER))
        assert engine.user_id == USER

    def test_build_classifier_uses_config(self):
        classifier = build_classifier(Config(classifier_command="llm -m mini", classifier_timeout=30))
        assert classifier.command == ["llm", "-m", "mini"]
        assert classifier.timeout == 30


class TestDumpThoughts:
    def test_classifies_and_saves(self, classifier, engine, store, now):
        outcome = asyncio.run(dump_thoughts("Pay electricity bill...", classifier, engine, now))

        assert outcome.ok
        prompt = classifier.generate.call_args.args[0]
        assert "Pay electricity bill..." in prompt
        assert len(store.rows(USER)) == 3
        assert {e.type for e in engine.entries} == {EntryType.TASK, EntryType.EVENT, EntryType.FEELING}

    def test_invalid_output_saves_nothing(self, classifier, engine, store, now):
        classifier.generate.return_value = "Sorry, I can't help with that."

        outcome = asyncio.run(dump_thoughts("anything", classifier, engine, now))

        assert not outcome.ok
        assert outcome.mutation is None
        assert store.rows(USER) == []

    def test_empty_text_rejected_before_classifying(self, classifier, engine):
        with pytest.raises(ValueError):
            asyncio.run(dump_thoughts("  ", classifier, engine))
        classifier.generate.assert_not_called()


class TestCommitRaw:
    def test_empty_entry_list_is_confirmed(self, engine, store, now):
        outcome = asyncio.run(commit_raw('{"entries": []}', engine, now))

        assert outcome.ok
        assert outcome.mutation.state == MutationState.CONFIRMED
        assert store.rows(USER) == []

    def test_entries_get_fresh_ids(self, engine, store, now):
        raw = '{"entries": [{"id": "fixed", "text": "Buy milk", "type": "task", "priority": 2}]}'
        outcome = asyncio.run(commit_raw(raw, engine, now))

        assert outcome.ok
        (row,) = store.rows(USER)
        assert row["id"] != "fixed"
        assert row["created_at"] == now.isoformat()
