"""In-process account store for development and tests."""

import logging
from typing import Dict

from globalauth.errors import Conflict, NotFound
from globalauth.modules.api.models import Account

from .base import deserialize, next_version, serialize

logger = logging.getLogger(__name__)


class MemoryAccountStore:
    """
    Account store backed by a dict of serialized documents.

    Each check-and-swap runs without an intervening await, so it is atomic
    with respect to every other task on the event loop.
    """

    def __init__(self):
        self._records: Dict[str, str] = {}

    async def load(self, username: str) -> Account:
        raw = self._records.get(username)
        if raw is None:
            raise NotFound(f"Account '{username}' does not exist")
        return deserialize(raw, username)

    async def create(self, account: Account) -> Account:
        if account.username in self._records:
            raise Conflict(f"Account '{account.username}' already exists")

        stored = account.model_copy(update={"version": 1})
        self._records[account.username] = serialize(stored)
        logger.debug(f"Created record for {account.username}")
        return stored

    async def commit(self, account: Account) -> Account:
        raw = self._records.get(account.username)
        if raw is None:
            raise NotFound(f"Account '{account.username}' does not exist")

        current = deserialize(raw, account.username)
        if current.version != account.version:
            raise Conflict(
                f"Account '{account.username}' changed since load "
                f"(stored v{current.version}, loaded v{account.version})"
            )

        stored = next_version(account)
        self._records[account.username] = serialize(stored)
        return stored

    async def exists(self, username: str) -> bool:
        return username in self._records

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        self._records.clear()
