"""
In-memory fragment storage implementation.

Keeps payload-free fragment records in a dictionary and delegates binary
payloads to any PayloadStore (in-memory by default, Redis for a shared
payload backend). Suitable for testing and single-process use.
"""

import logging
import threading
from typing import Dict, List, Optional

from fragment_mirror.errors import NotFoundError, NotInitializedError
from fragment_mirror.models import Fragment, PatternInsight, ReflectionSession
from fragment_mirror.storage.payloads.memory import InMemoryPayloadStore
from fragment_mirror.storage.protocols import PayloadStore
from fragment_mirror.storage.records import (
    FragmentRecord,
    iter_stale_keys,
    join_fragment,
    split_fragment,
)

logger = logging.getLogger(__name__)


class InMemoryFragmentStore:
    """
    In-memory implementation of the FragmentStore protocol.

    A save writes every payload first and the record last. If any write
    fails, payloads it overwrote are put back and keys it created are
    removed, so the previously stored record and its payloads stay intact.
    """

    def __init__(self, payload_store: Optional[PayloadStore] = None):
        """
        Initialize the store.

        Args:
            payload_store: Where binary payloads live (default: InMemoryPayloadStore)
        """
        self._payloads = payload_store if payload_store is not None else InMemoryPayloadStore()
        self._records: Dict[str, FragmentRecord] = {}
        self._sessions: Dict[str, ReflectionSession] = {}
        self._patterns: Dict[str, PatternInsight] = {}
        self._lock = threading.RLock()
        self._initialized = False

        logger.info("InMemoryFragmentStore created")

    def initialize(self) -> None:
        self._initialized = True
        logger.info("InMemoryFragmentStore initialized")

    def _check_initialized(self) -> None:
        if not self._initialized:
            raise NotInitializedError(type(self).__name__)

    def save(self, fragment: Fragment) -> str:
        """Upsert a fragment and every nested payload."""
        self._check_initialized()
        record, payloads = split_fragment(fragment)

        with self._lock:
            previous = self._records.get(fragment.id)
            created_keys = []
            overwritten = {}
            try:
                for key, data in payloads:
                    existing = self._payloads.get(key)
                    if existing is None:
                        created_keys.append(key)
                    else:
                        overwritten[key] = existing
                    self._payloads.put(key, data)
            except Exception as e:
                logger.error(f"Failed to save payloads for fragment {fragment.id}: {e}")
                for key, data in overwritten.items():
                    self._payloads.put(key, data)
                for key in created_keys:
                    self._payloads.delete(key)
                raise

            self._records[fragment.id] = record

            for key in iter_stale_keys(previous, record):
                self._payloads.delete(key)

        logger.info(
            f"Saved fragment {fragment.id} "
            f"({len(payloads)} payloads, {len(fragment.tags)} tags, {len(fragment.ratings)} ratings)"
        )
        return fragment.id

    def get(self, fragment_id: str) -> Fragment:
        """Load a fragment and rehydrate all of its payloads."""
        self._check_initialized()
        with self._lock:
            record = self._records.get(fragment_id)
            if record is None:
                raise NotFoundError("Fragment", fragment_id)
            return join_fragment(record, self._payloads.get)

    def get_all(self) -> List[Fragment]:
        """Load every fragment with payloads rehydrated."""
        self._check_initialized()
        with self._lock:
            records = list(self._records.values())
            fragments = [join_fragment(record, self._payloads.get) for record in records]

        logger.debug(f"Loaded {len(fragments)} fragments")
        return fragments

    def delete(self, fragment_id: str) -> bool:
        """Remove a fragment record and every payload it references."""
        self._check_initialized()
        with self._lock:
            record = self._records.pop(fragment_id, None)
            if record is None:
                logger.debug(f"Delete of unknown fragment {fragment_id} ignored")
                return False

            for key in record.payload_keys():
                self._payloads.delete(key)

        logger.info(f"Deleted fragment {fragment_id} ({len(record.payload_keys())} payloads)")
        return True

    def count(self) -> int:
        self._check_initialized()
        return len(self._records)

    def save_session(self, session: ReflectionSession) -> str:
        """Upsert a reflection session."""
        self._check_initialized()
        self._sessions[session.id] = session
        logger.debug(f"Saved session {session.id} ({len(session.fragment_ids)} fragments)")
        return session.id

    def get_session(self, session_id: str) -> Optional[ReflectionSession]:
        self._check_initialized()
        return self._sessions.get(session_id)

    def get_sessions(self) -> List[ReflectionSession]:
        self._check_initialized()
        return sorted(self._sessions.values(), key=lambda s: s.start_time)

    def save_pattern(self, insight: PatternInsight) -> str:
        """Upsert a pattern insight."""
        self._check_initialized()
        self._patterns[insight.id] = insight
        logger.debug(f"Saved {insight.type} insight {insight.id}")
        return insight.id

    def get_patterns(self) -> List[PatternInsight]:
        self._check_initialized()
        return sorted(self._patterns.values(), key=lambda p: (p.timestamp, p.id))
