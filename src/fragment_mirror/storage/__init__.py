"""
Storage protocols and backends for fragments and their payloads.

Provides protocol definitions for storage backends. Implementations can use
various databases (SQLite, PostgreSQL, Redis, in-memory, etc.) as long as they
satisfy the protocol interface. The Redis payload backend needs the optional
``redis`` extra; it raises ImportError on construction when it is missing.
"""

from fragment_mirror.storage.fragments.memory import InMemoryFragmentStore
from fragment_mirror.storage.fragments.sqlalchemy import SQLAlchemyFragmentStore
from fragment_mirror.storage.payloads.memory import InMemoryPayloadStore
from fragment_mirror.storage.payloads.redis import RedisPayloadStore
from fragment_mirror.storage.protocols import FragmentStore, PayloadStore

__all__ = [
    # Protocols
    "FragmentStore",
    "PayloadStore",
    # Fragment stores
    "InMemoryFragmentStore",
    "SQLAlchemyFragmentStore",
    # Payload stores
    "InMemoryPayloadStore",
    "RedisPayloadStore",
]
