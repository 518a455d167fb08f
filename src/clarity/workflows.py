"""Shared workflow layer between the CLI and other front ends.

Builders wire adapters from config. dump_thoughts runs the whole
text -> classify -> ingest -> commit pipeline.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime

from .adapters.cli_classifier import CLIClassifier
from .adapters.postgrest_store import PostgrestEntryStore
from .config import CLARITY_HOME, Config
from .core.ingest import IngestResult, build_classification_prompt, ingest
from .ports.classifier import Classifier
from .sync import Mutation, MutationState, SyncEngine

logger = logging.getLogger(__name__)


@dataclass
class DumpOutcome:
    """Result of committing a text dump. mutation is None if ingestion failed."""

    result: IngestResult
    mutation: Mutation | None = None

    @property
    def ok(self) -> bool:
        return self.result.ok and self.mutation is not None and self.mutation.ok


def build_engine(config: Config) -> SyncEngine:
    """Sync engine backed by the configured remote store."""
    if not config.user_id:
        raise ValueError("USER_ID not configured. Add it to clarity.conf")
    return SyncEngine(PostgrestEntryStore(config), config.user_id)


def build_classifier(config: Config) -> CLIClassifier:
    return CLIClassifier(
        command=config.classifier_command,
        cwd=CLARITY_HOME if CLARITY_HOME.exists() else None,
        timeout=config.classifier_timeout,
    )


async def commit_raw(raw: str, engine: SyncEngine, now: datetime | None = None) -> DumpOutcome:
    """Ingest raw classifier output and persist the entries if it validates."""
    result = ingest(raw, now)
    if not result.ok:
        return DumpOutcome(result)
    if not result.entries:
        logger.info("Classifier returned no entries")
        return DumpOutcome(result, Mutation("save entries", state=MutationState.CONFIRMED))
    mutation = await engine.add_entries(result.entries)
    return DumpOutcome(result, mutation)


async def dump_thoughts(
    text: str,
    classifier: Classifier,
    engine: SyncEngine,
    now: datetime | None = None,
) -> DumpOutcome:
    """Classify a free-form text dump and commit the resulting entries."""
    prompt = build_classification_prompt(text)
    raw = await asyncio.to_thread(classifier.generate, prompt)
    return await commit_raw(raw, engine, now)