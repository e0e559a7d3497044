"""
Storage infrastructure - local key/value persistence.
"""

from .key_value_store import KeyValueStore, InMemoryKeyValueStore, SQLiteKeyValueStore

__all__ = [
    'KeyValueStore',
    'InMemoryKeyValueStore',
    'SQLiteKeyValueStore'
]
