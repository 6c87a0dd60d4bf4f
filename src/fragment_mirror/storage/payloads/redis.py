"""
Redis payload storage implementation.

Provides a Redis-backed store for binary payloads, so large video blobs
can live outside the process while metadata stays in the fragment store.
"""

import logging
from typing import Optional

try:
    import redis
except ImportError:
    redis = None  # type: ignore

logger = logging.getLogger(__name__)


class RedisPayloadStore:
    """
    Redis implementation of the PayloadStore protocol.

    Each payload is a plain binary string value under ``<key_prefix><key>``.
    Survives restarts and can be shared across processes.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        db: int = 0,
        key_prefix: str = "fragment-payload:",
    ):
        """
        Initialize the Redis store.

        Args:
            host: Redis host
            port: Redis port
            db: Redis database number
            key_prefix: Prefix for Redis keys (default: "fragment-payload:")
        """
        if redis is None:
            raise ImportError(
                "redis package is required for RedisPayloadStore. "
                "Install with: pip install fragment-mirror[redis]"
            )

        # Payloads are binary, so responses are not decoded.
        self.client = redis.Redis(host=host, port=port, db=db, decode_responses=False)
        self._key_prefix = key_prefix

        try:
            self.client.ping()
            logger.info(f"RedisPayloadStore initialized (host={host}:{port}, db={db})")
        except redis.ConnectionError as e:
            logger.error(f"Failed to connect to Redis: {e}")
            raise

    def _get_key(self, key: str) -> str:
        return f"{self._key_prefix}{key}"

    def put(self, key: str, data: bytes) -> None:
        """Store a payload under a key."""
        self.client.set(self._get_key(key), bytes(data))
        logger.debug(f"Stored payload {key} ({len(data)} bytes)")

    def get(self, key: str) -> Optional[bytes]:
        """Retrieve a payload."""
        return self.client.get(self._get_key(key))

    def delete(self, key: str) -> bool:
        """Remove a payload."""
        removed = self.client.delete(self._get_key(key))
        if removed:
            logger.debug(f"Deleted payload {key}")
        return bool(removed)

    def exists(self, key: str) -> bool:
        return bool(self.client.exists(self._get_key(key)))
