"""
In-memory data store.

Responsibilities:
- Hold every directory collection in process memory.
- Restore the seed collections on reset.
- Expose explicit repository methods so call sites never touch raw lists.
"""
from .repository import DataStore, generate_id, get_store

__all__ = ["DataStore", "generate_id", "get_store"]
