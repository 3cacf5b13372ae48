"""
Persistent Storage Module.

Provides SQLite-backed persistence for:
- Campaign records
- Claim ledger
- Distributor metadata (pause flag, id counter)
"""

from merkledrop.core.storage.sqlite_adapter import SQLiteAdapter
from merkledrop.core.storage.storage_manager import StorageManager

__all__ = ["SQLiteAdapter", "StorageManager"]
