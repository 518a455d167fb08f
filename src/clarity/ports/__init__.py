"""Ports - interfaces/protocols for external dependencies."""

from .entry_store import RemoteEntryStore, StoreError
from .classifier import Classifier
from .notifier import Notifier

__all__ = [
    "RemoteEntryStore",
    "StoreError",
    "Classifier",
    "Notifier",
]
