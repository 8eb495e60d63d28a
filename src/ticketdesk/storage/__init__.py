"""Offline store backends.

Modules
-------
base        OfflineStore protocol + schema version
memory      InMemoryOfflineStore -- dicts, nothing persisted
sqlite      SQLiteOfflineStore -- file-backed, version-gated tables
"""

from ticketdesk.storage.base import SCHEMA_VERSION, OfflineStore
from ticketdesk.storage.memory import InMemoryOfflineStore
from ticketdesk.storage.sqlite import SQLiteOfflineStore

__all__ = [
    "SCHEMA_VERSION",
    "OfflineStore",
    "InMemoryOfflineStore",
    "SQLiteOfflineStore",
]
