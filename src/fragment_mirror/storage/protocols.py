"""
Storage protocol definitions for fragments and their binary payloads.

These protocols define the interface that storage implementations must provide.
They are implementation-agnostic and can be backed by various databases
(SQLite, PostgreSQL, Redis, in-memory, etc.).
"""

from typing import List, Optional, Protocol

from fragment_mirror.models import Fragment, PatternInsight, ReflectionSession


class PayloadStore(Protocol):
    """
    Protocol for keyed binary payload storage.

    Holds the large video/audio blobs of fragments, variations and
    responses, separately from their structured metadata.
    """

    def put(self, key: str, data: bytes) -> None:
        """
        Store a payload under a key, replacing any existing payload.

        Args:
            key: The payload key (the owning object's id)
            data: Raw payload bytes
        """
        ...

    def get(self, key: str) -> Optional[bytes]:
        """
        Retrieve a payload.

        Args:
            key: The payload key

        Returns:
            The payload bytes if present, None otherwise
        """
        ...

    def delete(self, key: str) -> bool:
        """
        Remove a payload.

        Args:
            key: The payload key

        Returns:
            True if a payload was removed, False if none existed
        """
        ...

    def exists(self, key: str) -> bool:
        """
        Check whether a payload is stored under a key.

        Args:
            key: The payload key

        Returns:
            True if present
        """
        ...


class FragmentStore(Protocol):
    """
    Protocol for durable fragment storage.

    Implementations must split binary payloads from metadata, persist a
    fragment together with all of its nested payloads as one unit, and
    reject every call made before ``initialize()``.
    """

    def initialize(self) -> None:
        """Perform one-time setup (create tables, open connections)."""
        ...

    def save(self, fragment: Fragment) -> str:
        """
        Upsert a fragment and every nested payload.

        Args:
            fragment: The fragment to persist

        Returns:
            The fragment ID

        Raises:
            NotInitializedError: if called before initialize()
        """
        ...

    def get(self, fragment_id: str) -> Fragment:
        """
        Load a fragment and rehydrate all of its payloads.

        Args:
            fragment_id: The fragment ID

        Returns:
            The fully rehydrated fragment

        Raises:
            NotFoundError: if no record exists for the ID
            PayloadMissingError: if a referenced payload is absent
        """
        ...

    def get_all(self) -> List[Fragment]:
        """
        Load every fragment with payloads rehydrated.

        Returns:
            All fragments, in no particular order
        """
        ...

    def delete(self, fragment_id: str) -> bool:
        """
        Remove a fragment record and every payload it references.

        Args:
            fragment_id: The fragment ID

        Returns:
            True if a fragment was deleted, False if it did not exist
        """
        ...

    def count(self) -> int:
        """Number of stored fragments."""
        ...

    def save_session(self, session: ReflectionSession) -> str:
        """Upsert a reflection session and return its ID."""
        ...

    def get_session(self, session_id: str) -> Optional[ReflectionSession]:
        """Retrieve a session by ID, None if absent."""
        ...

    def get_sessions(self) -> List[ReflectionSession]:
        """All sessions, oldest first."""
        ...

    def save_pattern(self, insight: PatternInsight) -> str:
        """Upsert a pattern insight and return its ID."""
        ...

    def get_patterns(self) -> List[PatternInsight]:
        """Every stored insight (all analysis runs), oldest first."""
        ...
