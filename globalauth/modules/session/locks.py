import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional


class KeyedLock:
    """
    Lock table: one asyncio.Lock per key, created on demand.

    Holders of different keys never block each other. A key's lock is
    dropped as soon as nobody holds or waits for it, so the table only
    grows with the number of keys in use at the same time.
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str, timeout: Optional[float] = None) -> AsyncIterator[None]:
        """
        Hold the lock for key.

        Args:
            key: Lock key (a username)
            timeout: Max seconds to wait for the lock (None = wait forever)

        Raises:
            asyncio.TimeoutError: Lock not acquired in time
        """
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1

        try:
            if timeout is None:
                await lock.acquire()
            else:
                await asyncio.wait_for(lock.acquire(), timeout=max(timeout, 0))
            try:
                yield
            finally:
                lock.release()
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)

    def locked(self, key: str) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()
