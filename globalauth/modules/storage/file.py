"""
File-per-record account store.

Layout: one ``user-<username>.json`` document per account under a data
directory. Writes go to a temporary file in the same directory which is
fsynced and atomically renamed over the record, so readers only ever see
complete documents.
"""

import asyncio
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator

from globalauth.errors import Conflict, InvalidInput, NotFound, StorageError
from globalauth.modules.api.models import Account, validate_username

from .base import deserialize, next_version, serialize

logger = logging.getLogger(__name__)


class FileAccountStore:
    """
    Account store keeping each record in its own JSON file.

    Commits are serialized per username by a thread lock (the I/O runs in
    worker threads) and version-checked. Only one process may own a data
    directory.
    """

    def __init__(self, data_dir: str = "data/users"):
        """
        Initialize file store.

        Args:
            data_dir: Directory holding the account documents (created if missing)
        """
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)

        self._locks: Dict[str, threading.Lock] = {}
        self._lock_users: Dict[str, int] = {}
        self._locks_guard = threading.Lock()

        logger.info(f"File account store at {self.data_dir}")

    def _path(self, username: str) -> Path:
        try:
            validate_username(username)
        except ValueError as e:
            raise InvalidInput(str(e)) from e
        return self.data_dir / f"user-{username}.json"

    @contextmanager
    def _hold(self, username: str) -> Iterator[None]:
        """Hold username's commit lock; the entry is dropped once nobody uses it."""
        with self._locks_guard:
            lock = self._locks.setdefault(username, threading.Lock())
            self._lock_users[username] = self._lock_users.get(username, 0) + 1

        try:
            with lock:
                yield
        finally:
            with self._locks_guard:
                self._lock_users[username] -= 1
                if self._lock_users[username] == 0:
                    del self._lock_users[username]
                    del self._locks[username]

    def _write_temp(self, document: str) -> str:
        """Write document to a synced temp file next to the records; return its path."""
        fd, tmp_path = tempfile.mkstemp(dir=self.data_dir, prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(document)
                f.flush()
                os.fsync(f.fileno())
        except BaseException:
            os.unlink(tmp_path)
            raise
        return tmp_path

    def _read(self, path: Path, username: str) -> Account:
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise NotFound(f"Account '{username}' does not exist")
        except OSError as e:
            raise StorageError(f"Failed to read account '{username}': {e}") from e
        return deserialize(raw, username)

    def _create_sync(self, account: Account) -> Account:
        path = self._path(account.username)
        stored = account.model_copy(update={"version": 1})

        try:
            tmp_path = self._write_temp(serialize(stored))
            try:
                # link() refuses to overwrite, so an existing record fails atomically
                os.link(tmp_path, path)
            finally:
                os.unlink(tmp_path)
        except FileExistsError:
            raise Conflict(f"Account '{account.username}' already exists")
        except OSError as e:
            raise StorageError(f"Failed to create account '{account.username}': {e}") from e

        return stored

    def _commit_sync(self, account: Account) -> Account:
        path = self._path(account.username)

        with self._hold(account.username):
            current = self._read(path, account.username)
            if current.version != account.version:
                raise Conflict(
                    f"Account '{account.username}' changed since load "
                    f"(stored v{current.version}, loaded v{account.version})"
                )

            stored = next_version(account)
            try:
                tmp_path = self._write_temp(serialize(stored))
            except OSError as e:
                raise StorageError(f"Failed to write account '{account.username}': {e}") from e

            try:
                os.replace(tmp_path, path)
            except OSError as e:
                os.unlink(tmp_path)
                raise StorageError(f"Failed to write account '{account.username}': {e}") from e

        return stored

    async def load(self, username: str) -> Account:
        path = self._path(username)
        return await asyncio.to_thread(self._read, path, username)

    async def create(self, account: Account) -> Account:
        return await asyncio.to_thread(self._create_sync, account)

    async def commit(self, account: Account) -> Account:
        return await asyncio.to_thread(self._commit_sync, account)

    async def exists(self, username: str) -> bool:
        return await asyncio.to_thread(self._path(username).exists)

    async def ping(self) -> bool:
        return self.data_dir.is_dir() and os.access(self.data_dir, os.W_OK)

    async def close(self) -> None:
        return None
