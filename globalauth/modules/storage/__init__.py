"""
Storage Module - Black Box Interface

Purpose: Durable, keyed persistence of one account record per username
Interface: load(), create(), commit(), exists()
Hidden: Backend specifics, serialization, atomic write strategy, versioning

Can be replaced with any storage backend without affecting other modules.
"""

from .base import AccountStore
from .factory import StorageFactory, create_redis_client
from .file import FileAccountStore
from .memory import MemoryAccountStore
from .redis_store import RedisAccountStore, account_key

__all__ = [
    "AccountStore",
    "StorageFactory",
    "create_redis_client",
    "MemoryAccountStore",
    "FileAccountStore",
    "RedisAccountStore",
    "account_key",
]
