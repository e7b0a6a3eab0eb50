"""
Shared pytest fixtures for GlobalAuth tests.

This module provides common fixtures including:
- Fast credential verifier (minimum bcrypt cost)
- In-memory account stores, including one that yields to the event loop
  at every step so concurrent operations really interleave
- Orchestrator and FastAPI test client wiring
"""

import asyncio
from typing import Optional

import pytest
from fastapi.testclient import TestClient

from globalauth.config.provider import AdmissionConfig, APIConfig, SecurityConfig, StorageConfig
from globalauth.errors import Conflict
from globalauth.main import create_app
from globalauth.modules.credentials import CredentialVerifier
from globalauth.modules.session import AuditTrail, SessionOrchestrator
from globalauth.modules.storage import MemoryAccountStore


# =============================================================================
# Stores
# =============================================================================


class YieldingMemoryStore(MemoryAccountStore):
    """Memory store that suspends before every step, like a real backend would."""

    def __init__(self):
        super().__init__()
        self.commits = 0
        self.conflicts = 0

    async def load(self, username):
        await asyncio.sleep(0)
        return await super().load(username)

    async def commit(self, account):
        await asyncio.sleep(0)
        try:
            stored = await super().commit(account)
        except Conflict:
            self.conflicts += 1
            raise
        self.commits += 1
        return stored


class AlwaysConflictingStore(MemoryAccountStore):
    """Every commit loses the version race."""

    def __init__(self):
        super().__init__()
        self.commit_attempts = 0

    async def commit(self, account):
        self.commit_attempts += 1
        raise Conflict("stored version advanced")


class SlowStore(MemoryAccountStore):
    """Loads take longer than any test deadline."""

    def __init__(self, delay: float = 1.0):
        super().__init__()
        self.delay = delay
        self.slow = False

    async def load(self, username):
        if self.slow:
            await asyncio.sleep(self.delay)
        return await super().load(username)


# =============================================================================
# Config
# =============================================================================


class StaticConfigProvider:
    """Config provider with test-friendly values."""

    def __init__(self, rate_limit: int = 0, backend: str = "memory", data_dir: str = "data/users"):
        self.rate_limit = rate_limit
        self.backend = backend
        self.data_dir = data_dir

    def get_api_config(self) -> APIConfig:
        return APIConfig(cors_origins=["*"], server_name="GlobalAuth-Test")

    def get_storage_config(self) -> StorageConfig:
        return StorageConfig(
            backend=self.backend,
            data_dir=self.data_dir,
            redis_host="localhost",
            redis_port=6379,
            redis_db=0,
            redis_password=None,
        )

    def get_security_config(self) -> SecurityConfig:
        return SecurityConfig(
            bcrypt_rounds=4,
            token_bytes=12,
            commit_retries=5,
            operation_timeout=None,
            audit_max_events=100,
        )

    def get_admission_config(self) -> AdmissionConfig:
        return AdmissionConfig(limit=self.rate_limit, window_seconds=60)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def verifier():
    """bcrypt at minimum cost so tests stay fast."""
    return CredentialVerifier(rounds=4)


@pytest.fixture
def store():
    """Store whose operations suspend, exposing interleavings."""
    return YieldingMemoryStore()


@pytest.fixture
def audit():
    return AuditTrail(max_events=100)


@pytest.fixture
def orchestrator(store, verifier, audit):
    """Orchestrator over the yielding memory store."""
    return SessionOrchestrator(store=store, verifier=verifier, audit=audit)


def make_orchestrator(store, verifier, max_retries: int = 5, default_timeout: Optional[float] = None):
    """Build an extra orchestrator sharing a store (simulates another process)."""
    return SessionOrchestrator(
        store=store,
        verifier=verifier,
        max_retries=max_retries,
        default_timeout=default_timeout,
    )


@pytest.fixture
def client(orchestrator):
    """FastAPI test client with an injected orchestrator and no rate limit."""
    app = create_app(config_provider=StaticConfigProvider(), orchestrator=orchestrator)
    with TestClient(app) as test_client:
        yield test_client
