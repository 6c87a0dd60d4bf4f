"""
In-memory payload storage implementation.

Provides a simple dictionary-backed store for binary payloads, suitable
for testing and single-process use. Data is lost on restart.
"""

import logging
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class InMemoryPayloadStore:
    """In-memory implementation of the PayloadStore protocol."""

    def __init__(self):
        self._payloads: Dict[str, bytes] = {}

        logger.info("InMemoryPayloadStore initialized")

    def put(self, key: str, data: bytes) -> None:
        """Store a payload under a key."""
        self._payloads[key] = bytes(data)
        logger.debug(f"Stored payload {key} ({len(data)} bytes)")

    def get(self, key: str) -> Optional[bytes]:
        """Retrieve a payload."""
        return self._payloads.get(key)

    def delete(self, key: str) -> bool:
        """Remove a payload."""
        if key not in self._payloads:
            return False

        del self._payloads[key]
        logger.debug(f"Deleted payload {key}")
        return True

    def exists(self, key: str) -> bool:
        return key in self._payloads

    def __len__(self) -> int:
        return len(self._payloads)
