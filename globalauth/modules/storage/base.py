"""Account store interface shared by every storage backend."""

from typing import Protocol

from pydantic import ValidationError

from globalauth.errors import StorageError
from globalauth.modules.api.models import Account


class AccountStore(Protocol):
    """
    Protocol for account stores - allows swappable backends.

    Every backend keeps exactly one whole document per username and
    guarantees readers never observe a half-written record.
    """

    async def load(self, username: str) -> Account:
        """
        Load the latest committed record.

        Raises:
            NotFound: No account for this username
            StorageError: Backend failure
        """
        ...

    async def create(self, account: Account) -> Account:
        """
        Persist a brand new record at version 1.

        Raises:
            Conflict: Username already taken
            StorageError: Backend failure
        """
        ...

    async def commit(self, account: Account) -> Account:
        """
        Replace the whole record if nobody committed since it was loaded.

        The stored version must equal account.version; the returned record
        carries the incremented version.

        Raises:
            Conflict: Stored version advanced since load
            NotFound: Record disappeared
            StorageError: Backend failure
        """
        ...

    async def exists(self, username: str) -> bool:
        """Check whether a record exists for username."""
        ...

    async def ping(self) -> bool:
        """Check backend health."""
        ...

    async def close(self) -> None:
        """Release backend resources."""
        ...


def serialize(account: Account) -> str:
    """Encode a record as one JSON document."""
    return account.model_dump_json()


def deserialize(raw, username: str) -> Account:
    """Decode a stored document, wrapping corruption as a storage failure."""
    try:
        return Account.model_validate_json(raw)
    except ValidationError as e:
        raise StorageError(f"Stored record for '{username}' is corrupt") from e


def next_version(account: Account) -> Account:
    """Copy of account with the version a successful commit stores."""
    return account.model_copy(update={"version": account.version + 1})
