"""Adapters - I/O implementations of ports."""

from .postgrest_store import PostgrestEntryStore
from .memory_store import InMemoryEntryStore
from .cli_classifier import CLIClassifier, ClassifierError
from .console_notifier import ConsoleNotifier

__all__ = [
    "PostgrestEntryStore",
    "InMemoryEntryStore",
    "CLIClassifier",
    "ClassifierError",
    "ConsoleNotifier",
]
