"""
Storage Factory following Black Box Design principles.

Constructs the account store selected by configuration and hides which
backend was chosen.
"""

import logging
from typing import Any, Optional

import redis.asyncio as redis

from .base import AccountStore
from .file import FileAccountStore
from .memory import MemoryAccountStore
from .redis_store import RedisAccountStore
from ...config.provider import StorageConfig

logger = logging.getLogger(__name__)


def create_redis_client(storage_config: StorageConfig) -> redis.Redis:
    """Create Redis client from configuration."""
    # Password passed separately to avoid URL encoding issues
    redis_url = f"redis://{storage_config.redis_host}:{storage_config.redis_port}/{storage_config.redis_db}"

    return redis.from_url(
        redis_url,
        password=storage_config.redis_password,
        encoding="utf-8",
        decode_responses=True,
    )


class StorageFactory:
    """Factory for building the account store."""

    @staticmethod
    def build(storage_config: StorageConfig, redis_client: Optional[Any] = None) -> AccountStore:
        """
        Build the configured account store.

        Args:
            storage_config: Storage configuration
            redis_client: Existing Redis client to reuse (redis backend only)

        Returns:
            AccountStore implementation

        Raises:
            ValueError: Unknown backend name
        """
        backend = storage_config.backend

        if backend == "memory":
            logger.warning("Using in-memory account store - accounts are lost on restart")
            return MemoryAccountStore()

        if backend == "file":
            logger.info("Building file account store")
            return FileAccountStore(storage_config.data_dir)

        if backend == "redis":
            logger.info(
                f"Building redis account store at {storage_config.redis_host}:{storage_config.redis_port}"
            )
            return RedisAccountStore(redis_client or create_redis_client(storage_config))

        raise ValueError(f"Unknown storage backend: {backend}")
