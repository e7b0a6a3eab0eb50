"""
Redis-backed account store.

Each account is one JSON string at ``globalauth:account:<username>``.
Creation uses SET NX; commits use WATCH/MULTI/EXEC so a record that
changed since it was loaded is never overwritten.
"""

import logging

from redis.exceptions import RedisError, WatchError

from globalauth.errors import Conflict, NotFound, StorageError
from globalauth.modules.api.models import Account

from .base import deserialize, next_version, serialize

logger = logging.getLogger(__name__)

KEY_PREFIX = "globalauth:account:"


def account_key(username: str) -> str:
    """Stable Redis key for a username."""
    return f"{KEY_PREFIX}{username}"


class RedisAccountStore:
    """Account store using optimistic transactions on Redis."""

    def __init__(self, redis_client):
        """
        Initialize redis store.

        Args:
            redis_client: Async Redis client (decode_responses=True)
        """
        self.redis = redis_client

    async def load(self, username: str) -> Account:
        try:
            raw = await self.redis.get(account_key(username))
        except RedisError as e:
            raise StorageError(f"Failed to read account '{username}': {e}") from e

        if raw is None:
            raise NotFound(f"Account '{username}' does not exist")
        return deserialize(raw, username)

    async def create(self, account: Account) -> Account:
        stored = account.model_copy(update={"version": 1})
        try:
            created = await self.redis.set(account_key(account.username), serialize(stored), nx=True)
        except RedisError as e:
            raise StorageError(f"Failed to create account '{account.username}': {e}") from e

        if not created:
            raise Conflict(f"Account '{account.username}' already exists")
        return stored

    async def commit(self, account: Account) -> Account:
        key = account_key(account.username)
        stored = next_version(account)

        try:
            async with self.redis.pipeline(transaction=True) as pipe:
                await pipe.watch(key)

                raw = await pipe.get(key)
                if raw is None:
                    raise NotFound(f"Account '{account.username}' does not exist")

                current = deserialize(raw, account.username)
                if current.version != account.version:
                    raise Conflict(
                        f"Account '{account.username}' changed since load "
                        f"(stored v{current.version}, loaded v{account.version})"
                    )

                pipe.multi()
                pipe.set(key, serialize(stored))
                await pipe.execute()
        except WatchError:
            raise Conflict(f"Account '{account.username}' changed during commit")
        except RedisError as e:
            raise StorageError(f"Failed to write account '{account.username}': {e}") from e

        return stored

    async def exists(self, username: str) -> bool:
        try:
            return await self.redis.exists(account_key(username)) > 0
        except RedisError as e:
            raise StorageError(f"Failed to check account '{username}': {e}") from e

    async def ping(self) -> bool:
        try:
            return bool(await self.redis.ping())
        except RedisError:
            logger.warning("Redis ping failed")
            return False

    async def close(self) -> None:
        await self.redis.close()
